# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Textcall Core - function calling on top of raw text-completion models.
"""

__version__ = "1.0.0"

# Re-export commonly used components for convenience
from .dialogue import Dialogue
from .errors import (
    CallParseError,
    DispatchError,
    FunctionBindingError,
    FunctionCallError,
    FunctionInvocationError,
    FunctionNotFoundError,
    ModelBackendError,
)
from .models import CallRequest, DialogueMessage, FunctionDescriptor, GenerationSettings, ParameterSpec, Role
from .orchestrator import FunctionCallOrchestrator
from .registry import FunctionRegistry
from .upstream_model import HttpCompletionModel, TextCompletionModel

__all__ = [
    'Dialogue',
    'CallParseError',
    'DispatchError',
    'FunctionBindingError',
    'FunctionCallError',
    'FunctionInvocationError',
    'FunctionNotFoundError',
    'ModelBackendError',
    'CallRequest',
    'DialogueMessage',
    'FunctionDescriptor',
    'GenerationSettings',
    'ParameterSpec',
    'Role',
    'FunctionCallOrchestrator',
    'FunctionRegistry',
    'HttpCompletionModel',
    'TextCompletionModel',
]
