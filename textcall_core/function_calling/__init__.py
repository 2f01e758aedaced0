# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Function calling module for Textcall.
"""

from .parser import clean_call_text, extract_call
from .prompt import PromptFormatter, PromptMode, generate_function_prompt
from .streaming import DEFAULT_STOP_LABELS, StopSequenceTransform

__all__ = [
    'clean_call_text',
    'extract_call',
    'PromptFormatter',
    'PromptMode',
    'generate_function_prompt',
    'DEFAULT_STOP_LABELS',
    'StopSequenceTransform',
]
