# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Data models shared by the dialogue orchestrator.
"""

import inspect
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator


class Role(str, Enum):
    """Dialogue roles. The value doubles as the label rendered into prompts."""
    SYSTEM = "System"
    USER = "User"
    ASSISTANT = "Assistant"
    FUNCTION_CALL = "FunctionCall"
    FUNCTION_RESULT = "FunctionResult"


class DialogueMessage(BaseModel):
    """A single dialogue entry, immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Author role")
    content: str = Field(default="", description="Message text")


# Scalar parameter values produced by the call extractor.
ParameterValue = Union[StrictInt, StrictFloat, StrictStr]


class CallRequest(BaseModel):
    """A function call decoded from model output."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: StrictStr = Field(description="Registered function name")
    parameters: Dict[str, ParameterValue] = Field(default_factory=dict, description="Arguments by parameter name")

    @field_validator('parameters', mode='before')
    def validate_parameters(cls, v):
        # A null parameters field means the call takes no arguments
        if v is None:
            return {}
        return v


class GenerationSettings(BaseModel):
    """Per-request generation settings."""
    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(default=256, ge=1, description="Maximum tokens to generate")
    temperature: float = Field(default=0.0, ge=0.0, description="Sampling temperature")
    top_p: float = Field(default=0.0, ge=0.0, le=1.0, description="Nucleus sampling threshold")
    stop_sequences: FrozenSet[str] = Field(default_factory=frozenset, description="Extra stop sequences")
    auto_invoke: bool = Field(default=False, description="Run the function-call protocol")

    @field_validator('stop_sequences')
    def validate_stop_sequences(cls, v):
        return frozenset(s for s in v if s)


class ParameterSpec(BaseModel):
    """Describes one parameter of a registered function."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True


class FunctionDescriptor(BaseModel):
    """A registered function together with its parameter schema."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: List[ParameterSpec] = Field(default_factory=list)
    function: Callable[..., Any]

    async def invoke(self, args: Dict[str, Any]) -> Any:
        """Call the function with keyword arguments, awaiting it when needed."""
        result = self.function(**args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def to_catalog_entry(self) -> Dict[str, Any]:
        """Render this descriptor in the catalog shape referenced by the instructions."""
        properties: Dict[str, Any] = {}
        for param in self.parameters:
            properties[param.name] = {"type": param.type, "description": param.description}
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {"type": "object", "properties": properties},
            },
        }
