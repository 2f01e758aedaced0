# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Streaming stop-sequence truncation for model output.
"""

import logging
from typing import AsyncIterator, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_STOP_LABELS = ("User:", "Assistant:", "System:")


class StopSequenceTransform:
    """Truncates a fragment stream at the first stop sequence.

    Core features:
    1. Text that cannot be the start of a stop sequence is passed through immediately
    2. Only the tail that may still grow into a stop sequence is held back
    3. The stop sequence itself is never emitted
    """

    def __init__(self, stop_sequences: Iterable[str] = DEFAULT_STOP_LABELS):
        self.stop_sequences = tuple(sorted({s for s in stop_sequences if s}, key=len, reverse=True))
        self.reset()

    def reset(self):
        self.content_buffer = ""
        self.state = "streaming"  # streaming, stopped

    def process_chunk(self, delta_content: str) -> Tuple[bool, str]:
        """
        Process a streamed fragment.
        Returns: (is_stop_detected, content_to_yield)
        """
        if self.state == "stopped":
            return True, ""
        if not delta_content:
            return False, ""

        self.content_buffer += delta_content

        stop_pos = self._find_stop_position()
        if stop_pos is not None:
            content_to_yield = self.content_buffer[:stop_pos]
            logger.debug(f"🔧 Stop sequence detected at buffer position {stop_pos}: {repr(self.content_buffer[stop_pos:stop_pos + 20])}")
            self.content_buffer = ""
            self.state = "stopped"
            return True, content_to_yield

        split_at = len(self.content_buffer) - self._pending_prefix_length()
        content_to_yield = self.content_buffer[:split_at]
        self.content_buffer = self.content_buffer[split_at:]
        return False, content_to_yield

    def _find_stop_position(self) -> Optional[int]:
        positions = [self.content_buffer.find(stop) for stop in self.stop_sequences]
        positions = [pos for pos in positions if pos != -1]
        return min(positions) if positions else None

    def _pending_prefix_length(self) -> int:
        """Length of the longest buffer suffix that is a proper prefix of a stop sequence."""
        longest = 0
        for stop in self.stop_sequences:
            for length in range(min(len(stop) - 1, len(self.content_buffer)), longest, -1):
                if self.content_buffer.endswith(stop[:length]):
                    longest = length
                    break
        return longest

    def finalize(self) -> str:
        """Flush held-back text once the upstream stream has ended."""
        remaining = "" if self.state == "stopped" else self.content_buffer
        self.content_buffer = ""
        return remaining

    async def transform(self, fragments: AsyncIterator[str]) -> AsyncIterator[str]:
        """
        Yield cleaned fragments from `fragments`.

        The upstream iterator is closed when a stop sequence is found, when the
        consumer stops early, or on cancellation, which aborts the generation.
        """
        self.reset()
        try:
            async for fragment in fragments:
                is_stopped, content_to_yield = self.process_chunk(fragment)
                if content_to_yield:
                    yield content_to_yield
                if is_stopped:
                    return

            remaining = self.finalize()
            if remaining:
                yield remaining
        finally:
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                await aclose()
