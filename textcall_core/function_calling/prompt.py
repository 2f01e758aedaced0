# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Prompt rendering and function-calling instructions.
"""

import json
import logging
from enum import Enum
from typing import Iterable, Optional, TYPE_CHECKING

from ..models import DialogueMessage, Role

if TYPE_CHECKING:
    from ..registry import FunctionRegistry

logger = logging.getLogger(__name__)

# The call cue already supplies the opening brace and quote of the call object.
CALL_OBJECT_PREFIX = '{"'


class PromptMode(str, Enum):
    CONTINUATION = "continuation"
    CALL_ELICIT = "call_elicit"


class PromptFormatter:
    """Renders a dialogue into model-ready text."""

    def format_message(self, message: DialogueMessage) -> str:
        return f"{message.role.value}: {message.content}\n"

    def cue(self, mode: PromptMode) -> str:
        if mode == PromptMode.CALL_ELICIT:
            return f"{Role.FUNCTION_CALL.value}: {CALL_OBJECT_PREFIX}"
        return f"{Role.ASSISTANT.value}: "

    def render(self, dialogue: Iterable[DialogueMessage], mode: PromptMode = PromptMode.CONTINUATION) -> str:
        """Render all messages in order, followed by the cue for the given mode."""
        history = "".join(self.format_message(m) for m in dialogue)
        return history + self.cue(mode)


def get_function_call_prompt_template(custom_template: str = None) -> str:
    """
    Return the instruction template. The `{functions}` placeholder receives the catalog.
    """
    if custom_template:
        logger.info("🔧 Using custom prompt template from configuration")
        return custom_template

    return """Answer in short and concise sentences
When you call a function you MUST call it in this format: {"type":"function","name":"functionName","parameters":{"parameterName":"parameterValue"}}
You will not output anything before or after the curly brackets seen in specified format, you will not include the answer in the function call
If you have a function for an action, ALWAYS use the function instead of trying to solve it otherwise
You have access to the following functions. Use them if required:
{functions}"""


def generate_function_prompt(registry: "FunctionRegistry", custom_template: Optional[str] = None) -> str:
    """
    Generate the system instructions that teach the model the call format.

    Args:
        registry: Registry whose catalog is embedded in the prompt
        custom_template: Template with a `{functions}` placeholder (optional)

    Returns: the instruction text
    """
    catalog = registry.catalog_json()
    functions_block = json.dumps(catalog, ensure_ascii=False, indent=2) if catalog is not None else "None"

    prompt_template = get_function_call_prompt_template(custom_template)
    prompt_content = prompt_template.replace("{functions}", functions_block)

    logger.debug(f"🔧 Generated function prompt: {len(prompt_content)} chars, {len(registry)} functions")
    return prompt_content
