# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Ordered dialogue history and the per-turn undo log.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from .models import DialogueMessage, Role

logger = logging.getLogger(__name__)


class Dialogue:
    """Ordered sequence of dialogue messages. Insertion order defines prompt order."""

    def __init__(self, messages: Optional[List[DialogueMessage]] = None):
        self._messages: List[DialogueMessage] = list(messages or [])

    @classmethod
    def create(cls, instructions: str = "") -> "Dialogue":
        """Start a dialogue, seeded with a system message when instructions are given."""
        dialogue = cls()
        if instructions:
            dialogue.add_system_message(instructions)
        return dialogue

    @classmethod
    def from_list(cls, messages: Iterable[Union[DialogueMessage, Dict[str, Any]]]) -> "Dialogue":
        """Build a dialogue from role/content mappings or already validated messages."""
        return cls([DialogueMessage.model_validate(m) for m in messages])

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.model_dump(mode="json") for m in self._messages]

    def append(self, message: DialogueMessage) -> int:
        """Append a message and return its index."""
        self._messages.append(message)
        return len(self._messages) - 1

    def add_message(self, role: Role, content: str) -> int:
        return self.append(DialogueMessage(role=role, content=content))

    def add_system_message(self, content: str) -> int:
        return self.add_message(Role.SYSTEM, content)

    def add_user_message(self, content: str) -> int:
        return self.add_message(Role.USER, content)

    def add_assistant_message(self, content: str) -> int:
        return self.add_message(Role.ASSISTANT, content)

    def remove_at(self, index: int) -> DialogueMessage:
        return self._messages.pop(index)

    @property
    def messages(self) -> List[DialogueMessage]:
        """Snapshot of the current messages."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[DialogueMessage]:
        return iter(list(self._messages))

    def __getitem__(self, index):
        return self._messages[index]

    def __repr__(self) -> str:
        return f"Dialogue({len(self._messages)} messages)"


class SpeculativeAppends:
    """
    Undo log for messages appended during one turn.

    Records the index of every speculative append so a failed turn can remove
    exactly those entries, most recent first, before falling back.
    """

    def __init__(self, dialogue: Dialogue):
        self.dialogue = dialogue
        self._indices: List[int] = []

    def append(self, role: Role, content: str) -> int:
        index = self.dialogue.add_message(role, content)
        self._indices.append(index)
        logger.debug(f"🔧 Speculatively appended {role.value} message at index {index}")
        return index

    def rollback(self) -> int:
        """Remove all recorded messages. Returns how many were removed."""
        removed = 0
        while self._indices:
            index = self._indices.pop()
            message = self.dialogue.remove_at(index)
            removed += 1
            logger.debug(f"🔧 Rolled back {message.role.value} message at index {index}")
        return removed

    def commit(self) -> None:
        """Keep the recorded messages; later rollbacks no longer touch them."""
        self._indices.clear()

    def __len__(self) -> int:
        return len(self._indices)
