"""Tests for dialogue.py and the shared models."""

import pytest
from pydantic import ValidationError

from textcall_core.dialogue import Dialogue, SpeculativeAppends
from textcall_core.models import DialogueMessage, GenerationSettings, Role


class TestDialogue:
    def test_create_with_and_without_instructions(self):
        assert len(Dialogue.create()) == 0
        dialogue = Dialogue.create("Be brief")
        assert dialogue[0] == DialogueMessage(role=Role.SYSTEM, content="Be brief")

    def test_round_trip_through_list(self):
        dialogue = Dialogue.from_list([
            {"role": "System", "content": "s"},
            {"role": "User", "content": "u"},
        ])
        dialogue.add_assistant_message("a")
        assert dialogue.to_list() == [
            {"role": "System", "content": "s"},
            {"role": "User", "content": "u"},
            {"role": "Assistant", "content": "a"},
        ]

    def test_from_list_accepts_validated_messages(self):
        system = DialogueMessage(role=Role.SYSTEM, content="s")
        dialogue = Dialogue.from_list([system, {"role": "User", "content": "u"}])
        assert dialogue[0] == system
        assert dialogue[1] == DialogueMessage(role=Role.USER, content="u")

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            Dialogue.from_list([{"role": "Narrator", "content": "x"}])

    def test_messages_are_immutable(self):
        message = DialogueMessage(role=Role.USER, content="hi")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_messages_property_is_a_snapshot(self):
        dialogue = Dialogue.create("s")
        snapshot = dialogue.messages
        dialogue.add_user_message("u")
        assert len(snapshot) == 1
        assert len(dialogue) == 2


class TestSpeculativeAppends:
    def test_rollback_removes_only_recorded_messages(self):
        dialogue = Dialogue.create("s")
        dialogue.add_user_message("u")
        speculative = SpeculativeAppends(dialogue)
        speculative.append(Role.FUNCTION_CALL, "{}")
        speculative.append(Role.FUNCTION_RESULT, "5")
        assert len(dialogue) == 4

        assert speculative.rollback() == 2
        assert [m.role for m in dialogue] == [Role.SYSTEM, Role.USER]
        assert speculative.rollback() == 0

    def test_commit_keeps_messages(self):
        dialogue = Dialogue()
        speculative = SpeculativeAppends(dialogue)
        speculative.append(Role.FUNCTION_CALL, "{}")
        speculative.commit()
        assert len(speculative) == 0
        assert speculative.rollback() == 0
        assert len(dialogue) == 1


class TestGenerationSettings:
    def test_defaults(self):
        settings = GenerationSettings()
        assert settings.max_tokens == 256
        assert settings.temperature == 0.0
        assert settings.top_p == 0.0
        assert settings.stop_sequences == frozenset()
        assert settings.auto_invoke is False

    def test_empty_stop_sequences_dropped(self):
        assert GenerationSettings(stop_sequences=["", "END"]).stop_sequences == frozenset({"END"})

    def test_immutable(self):
        with pytest.raises(ValidationError):
            GenerationSettings().auto_invoke = True
