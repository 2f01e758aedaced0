# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Sample functions exposed to the model by the service and the console loop.
"""

import math

from .registry import FunctionRegistry


def Sqrt(number1: float) -> float:
    """Take the square root of a number"""
    return math.sqrt(number1)


def Add(number1: float, number2: float) -> float:
    """Add two numbers"""
    return number1 + number2


def Summarize(text: str) -> str:
    """Gets the summary of a text"""
    return f"The summary of {text}"


def build_default_registry() -> FunctionRegistry:
    registry = FunctionRegistry()
    registry.register(Sqrt, parameter_descriptions={"number1": "The number to take a square root of"})
    registry.register(Add, parameter_descriptions={
        "number1": "The first number to add",
        "number2": "The second number to add",
    })
    registry.register(Summarize, parameter_descriptions={"text": "The text to summarize"})
    return registry
