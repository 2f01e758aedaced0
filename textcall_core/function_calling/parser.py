# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Tolerant extraction of a call object from raw model output.
"""

import json
import logging
import math
from typing import Any, Dict

from pydantic import ValidationError

from ..errors import CallParseError
from ..models import CallRequest
from .prompt import CALL_OBJECT_PREFIX

logger = logging.getLogger(__name__)

# Cleanup rules, applied in this order.
ROLE_LABELS = ("System:", "User:", "Assistant:")
TRAILING_MARKERS = ("Answer:", "Result:")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _parse_float(literal: str) -> float:
    """Reject literals that overflow to infinity."""
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {literal}")
    return value


def _parse_int(literal: str):
    """Integer literals that fit a signed 64-bit integer stay integers; larger ones become floats."""
    value = int(literal)
    if INT64_MIN <= value <= INT64_MAX:
        return value
    return _parse_float(literal)


def _reject_constant(literal: str):
    raise ValueError(f"Unsupported JSON constant: {literal}")


def clean_call_text(raw_text: str) -> str:
    """
    Isolate the call object in raw model output.
    1. Remove role labels leaked by the model
    2. Drop trailing commentary starting at "Answer:", or else at "Result:"
    3. Restore the opening '{"' that the call cue supplied before generation
    """
    text = raw_text
    for label in ROLE_LABELS:
        text = text.replace(label, "")

    # Only the first marker found in this order is cut
    for marker in TRAILING_MARKERS:
        marker_pos = text.find(marker)
        if marker_pos != -1:
            text = text[:marker_pos]
            break

    if not text.startswith("{"):
        text = CALL_OBJECT_PREFIX + text

    return text


def _validate_parameters(parameters: Dict[str, Any], call_text: str) -> None:
    for key, value in parameters.items():
        # bool is a subclass of int and must be rejected explicitly
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise CallParseError(
                f"Unsupported value type for parameter '{key}': {type(value).__name__}", call_text)


def extract_call(raw_text: str) -> CallRequest:
    """
    Decode a CallRequest from raw model output.

    Permissive about where the call text starts and ends, strict about its
    structure once isolated. Raises CallParseError on any decode failure.
    """
    logger.debug(f"🔧 Extracting call from output, input length: {len(raw_text) if raw_text else 0}")
    call_text = clean_call_text(raw_text or "")
    logger.debug(f"🔧 Cleaned call text: {repr(call_text[:200])}")

    try:
        payload = json.loads(call_text, parse_int=_parse_int, parse_float=_parse_float, parse_constant=_reject_constant)
    except ValueError as e:
        raise CallParseError(f"Malformed call object: {e}", call_text) from e

    if not isinstance(payload, dict):
        raise CallParseError(f"Call object must be a JSON object, got {type(payload).__name__}", call_text)

    parameters = payload.get("parameters")
    if parameters is not None:
        if not isinstance(parameters, dict):
            raise CallParseError(f"'parameters' must be an object, got {type(parameters).__name__}", call_text)
        _validate_parameters(parameters, call_text)

    try:
        call = CallRequest.model_validate(payload)
    except ValidationError as e:
        raise CallParseError(f"Invalid call object: {e.error_count()} validation error(s)", call_text) from e

    logger.debug(f"🔧 Extracted call: {call.name} with {len(call.parameters)} parameter(s)")
    return call
