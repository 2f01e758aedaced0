# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Function registry and catalog.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .models import FunctionDescriptor, ParameterSpec

logger = logging.getLogger(__name__)

# Python annotation -> JSON schema type tag
TYPE_TAGS = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}


def describe_function(
    func: Callable[..., Any],
    name: Optional[str] = None,
    description: Optional[str] = None,
    parameter_descriptions: Optional[Dict[str, str]] = None,
) -> FunctionDescriptor:
    """Build a descriptor from a Python function's signature."""
    parameter_descriptions = parameter_descriptions or {}
    signature = inspect.signature(func)

    specs: List[ParameterSpec] = []
    for param in signature.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        specs.append(ParameterSpec(
            name=param.name,
            type=TYPE_TAGS.get(param.annotation, "string"),
            description=parameter_descriptions.get(param.name, ""),
            required=param.default is inspect.Parameter.empty,
        ))

    if description is None:
        doc = inspect.getdoc(func) or ""
        description = doc.splitlines()[0] if doc else ""

    return FunctionDescriptor(
        name=name or func.__name__,
        description=description,
        parameters=specs,
        function=func,
    )


class FunctionRegistry:
    """
    Closed table of callable functions, resolved by exact name.

    Populated at build time and read-only while turns run.
    """

    def __init__(self):
        self._functions: Dict[str, FunctionDescriptor] = {}

    def add(self, descriptor: FunctionDescriptor) -> FunctionDescriptor:
        if descriptor.name in self._functions:
            raise ValueError(f"Function '{descriptor.name}' is already registered")
        self._functions[descriptor.name] = descriptor
        logger.debug(f"🔧 Registered function {descriptor.name} ({len(descriptor.parameters)} parameters)")
        return descriptor

    def register(
        self,
        func: Optional[Callable[..., Any]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameter_descriptions: Optional[Dict[str, str]] = None,
    ):
        """Register a function. Usable as `@registry.register` or `@registry.register(name=...)`."""
        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self.add(describe_function(f, name, description, parameter_descriptions))
            return f

        if func is not None:
            return decorator(func)
        return decorator

    def lookup(self, name: str) -> Optional[FunctionDescriptor]:
        return self._functions.get(name)

    async def invoke(self, name: str, args: Dict[str, Any]) -> Any:
        """Invoke a registered function. Errors raised by the function propagate."""
        descriptor = self.lookup(name)
        if descriptor is None:
            raise KeyError(name)
        return await descriptor.invoke(args)

    def catalog(self) -> List[Dict[str, Any]]:
        """Catalog entries for every registered function, in registration order."""
        return [d.to_catalog_entry() for d in self._functions.values()]

    def catalog_json(self) -> Union[Dict[str, Any], List[Dict[str, Any]], None]:
        """Catalog as embedded in the instructions: a single object when only one function exists."""
        entries = self.catalog()
        if not entries:
            return None
        if len(entries) == 1:
            return entries[0]
        return entries

    def names(self) -> List[str]:
        return list(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[FunctionDescriptor]:
        return iter(list(self._functions.values()))
