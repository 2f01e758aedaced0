# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Dispatch of decoded calls to registered functions.
"""

import inspect
import json
import logging
from typing import Any, Mapping

from .errors import FunctionBindingError, FunctionInvocationError, FunctionNotFoundError
from .models import CallRequest
from .registry import FunctionRegistry

logger = logging.getLogger(__name__)


def format_function_result(value: Any) -> str:
    """Convert a function's return value to text for re-injection into the dialogue."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


async def dispatch(call: CallRequest, registry: FunctionRegistry) -> str:
    """
    Resolve, bind and invoke a call. Returns the result as text.

    Raises:
        FunctionNotFoundError: the name is not registered
        FunctionBindingError: arguments do not fit, or the function rejected their types
        FunctionInvocationError: the function raised
    """
    descriptor = registry.lookup(call.name)
    if descriptor is None:
        raise FunctionNotFoundError(f"Function '{call.name}' is not registered", call.name)

    try:
        inspect.signature(descriptor.function).bind(**call.parameters)
    except TypeError as e:
        raise FunctionBindingError(f"Cannot bind arguments for '{call.name}': {e}", call.name) from e

    logger.debug(f"🔧 Invoking {call.name} with {dict(call.parameters)}")
    try:
        value = await descriptor.invoke(dict(call.parameters))
    except TypeError as e:
        raise FunctionBindingError(f"Function '{call.name}' rejected its arguments: {e}", call.name) from e
    except Exception as e:
        raise FunctionInvocationError(f"Function '{call.name}' raised {type(e).__name__}: {e}", call.name) from e

    result = format_function_result(value)
    logger.debug(f"🔧 {call.name} returned {repr(result[:200])}")
    return result
