# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Exception types for the function-call protocol.

Everything deriving from FunctionCallError is recovered inside a turn by
falling back to a plain completion. ModelBackendError is a transport failure
and reaches the caller unchanged.
"""


class FunctionCallError(Exception):
    """Base class for recoverable function-call failures."""


class CallParseError(FunctionCallError):
    """Model output did not contain a decodable call object."""

    def __init__(self, message: str, call_text: str = ""):
        super().__init__(message)
        self.call_text = call_text


class DispatchError(FunctionCallError):
    """A decoded call could not be executed."""

    def __init__(self, message: str, function_name: str):
        super().__init__(message)
        self.function_name = function_name


class FunctionNotFoundError(DispatchError):
    """The call names a function that is not registered."""


class FunctionBindingError(DispatchError):
    """The call's arguments do not fit the function's parameters."""


class FunctionInvocationError(DispatchError):
    """The invoked function raised."""


class ModelBackendError(Exception):
    """The text-completion backend failed."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
