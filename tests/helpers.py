"""Shared test helpers and stub classes."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Sequence, Union

from textcall_core.models import GenerationSettings

Script = Union[Sequence[str], Exception]


class FakeModel:
    """Scripted text-completion model.

    Each call to `infer` consumes the next script: a list of fragments to
    yield, or an exception to raise before yielding anything. Prompts and
    settings are recorded for assertions.
    """

    def __init__(self, *scripts: Script) -> None:
        self.scripts: List[Script] = list(scripts)
        self.prompts: List[str] = []
        self.settings: List[GenerationSettings] = []
        self.closed = 0

    async def infer(self, prompt: str, settings: GenerationSettings) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        self.settings.append(settings)
        script = self.scripts.pop(0) if self.scripts else []
        try:
            if isinstance(script, Exception):
                raise script
            for fragment in script:
                await asyncio.sleep(0)
                yield fragment
        finally:
            self.closed += 1


class BlockingModel:
    """Model that yields some fragments, then waits forever (for cancellation tests)."""

    def __init__(self, fragments: Sequence[str] = ()) -> None:
        self.fragments = list(fragments)
        self.cancelled = False
        self.started = asyncio.Event()

    async def infer(self, prompt: str, settings: GenerationSettings) -> AsyncIterator[str]:
        for fragment in self.fragments:
            yield fragment
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        yield ""  # pragma: no cover


async def fragments_of(*items: str) -> AsyncIterator[str]:
    for item in items:
        await asyncio.sleep(0)
        yield item


async def collect(stream: AsyncIterator[str]) -> List[str]:
    return [fragment async for fragment in stream]
