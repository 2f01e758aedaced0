# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Per-turn function-call dialogue orchestration.

A turn either streams a plain continuation, or first elicits a call object
from the model, dispatches it, and streams a continuation conditioned on the
result. Any parse or dispatch failure rolls back the speculative messages and
falls back to a plain continuation of the pre-turn dialogue.
"""

import logging
from typing import AsyncIterator, Iterable, List, Optional

from .dialogue import Dialogue, SpeculativeAppends
from .dispatcher import dispatch
from .errors import FunctionCallError
from .function_calling import (
    DEFAULT_STOP_LABELS,
    PromptFormatter,
    PromptMode,
    StopSequenceTransform,
    extract_call,
)
from .models import GenerationSettings, Role
from .registry import FunctionRegistry
from .upstream_model import TextCompletionModel

logger = logging.getLogger(__name__)


class FunctionCallOrchestrator:
    """Runs dialogue turns against a text-completion model, invoking functions on request."""

    def __init__(
        self,
        model: TextCompletionModel,
        default_settings: Optional[GenerationSettings] = None,
        formatter: Optional[PromptFormatter] = None,
        stop_labels: Iterable[str] = DEFAULT_STOP_LABELS,
    ):
        self.model = model
        self.default_settings = default_settings or GenerationSettings()
        self.formatter = formatter or PromptFormatter()
        self.stop_labels = frozenset(s for s in stop_labels if s)

    def create_dialogue(self, instructions: str = "") -> Dialogue:
        return Dialogue.create(instructions)

    def _effective_settings(self, settings: Optional[GenerationSettings]) -> GenerationSettings:
        settings = settings or self.default_settings
        return settings.model_copy(update={"stop_sequences": settings.stop_sequences | self.stop_labels})

    def _generate(
        self, prompt: str, settings: GenerationSettings, sent_prompts: Optional[List[str]] = None
    ) -> AsyncIterator[str]:
        if sent_prompts is not None:
            sent_prompts.append(prompt)
        transform = StopSequenceTransform(settings.stop_sequences)
        return transform.transform(self.model.infer(prompt, settings))

    async def _collect(
        self, prompt: str, settings: GenerationSettings, sent_prompts: Optional[List[str]] = None
    ) -> str:
        stream = self._generate(prompt, settings, sent_prompts)
        try:
            return "".join([fragment async for fragment in stream])
        finally:
            await stream.aclose()

    async def _try_function_call(
        self,
        dialogue: Dialogue,
        settings: GenerationSettings,
        registry: FunctionRegistry,
        sent_prompts: Optional[List[str]] = None,
    ) -> bool:
        """
        Elicit, extract and dispatch a call.
        Returns True when the call and its result were committed to the dialogue.
        """
        prompt = self.formatter.render(dialogue, PromptMode.CALL_ELICIT)
        logger.debug(f"🔧 Eliciting function call, prompt length: {len(prompt)}")
        call_output = await self._collect(prompt, settings, sent_prompts)
        logger.debug(f"🔧 Call-eliciting output: {repr(call_output[:200])}")

        speculative = SpeculativeAppends(dialogue)
        try:
            call = extract_call(call_output)
            speculative.append(Role.FUNCTION_CALL, call.model_dump_json())
            result = await dispatch(call, registry)
            speculative.append(Role.FUNCTION_RESULT, result)
        except FunctionCallError as e:
            removed = speculative.rollback()
            logger.warning(f"⚠️  Function call failed ({type(e).__name__}): {e}. Falling back to plain completion")
            logger.debug(f"🔧 Discarded call text: {repr(call_output)}, rolled back {removed} message(s)")
            return False
        except BaseException:
            # Cancellation or an unexpected error must not leave an orphaned call behind
            speculative.rollback()
            raise

        speculative.commit()
        logger.info(f"📝 Function {call.name} invoked, result length: {len(result)}")
        return True

    async def _stream_completion(
        self, dialogue: Dialogue, settings: GenerationSettings, sent_prompts: Optional[List[str]] = None
    ) -> AsyncIterator[str]:
        prompt = self.formatter.render(dialogue, PromptMode.CONTINUATION)
        fragments = []
        stream = self._generate(prompt, settings, sent_prompts)
        try:
            async for fragment in stream:
                fragments.append(fragment)
                yield fragment
        finally:
            await stream.aclose()

        if not fragments:
            yield ""
        # Only reached when the stream completed; abandoned streams leave the dialogue untouched
        dialogue.add_assistant_message("".join(fragments))

    async def stream_turn(
        self,
        dialogue: Dialogue,
        settings: Optional[GenerationSettings] = None,
        registry: Optional[FunctionRegistry] = None,
        sent_prompts: Optional[List[str]] = None,
    ) -> AsyncIterator[str]:
        """
        Run one turn and yield the assistant's reply as fragments.

        When `sent_prompts` is given, every prompt sent to the model during the
        turn is appended to it.
        """
        settings = self._effective_settings(settings)

        if not settings.auto_invoke or registry is None:
            logger.debug("🔧 Function calling inactive for this turn, streaming plain completion")
        elif await self._try_function_call(dialogue, settings, registry, sent_prompts):
            logger.debug("🔧 Streaming completion conditioned on function result")
        else:
            logger.debug("🔧 Streaming fallback completion")

        completion = self._stream_completion(dialogue, settings, sent_prompts)
        try:
            async for fragment in completion:
                yield fragment
        finally:
            await completion.aclose()

    async def complete_turn(
        self,
        dialogue: Dialogue,
        settings: Optional[GenerationSettings] = None,
        registry: Optional[FunctionRegistry] = None,
        sent_prompts: Optional[List[str]] = None,
    ) -> str:
        """Run one turn and return the full assistant reply."""
        fragments = [fragment async for fragment in self.stream_turn(dialogue, settings, registry, sent_prompts)]
        return "".join(fragments)
