"""Unit tests for promptshield/guard/state.py — PendingAction and ReplayToken."""

from __future__ import annotations

import dataclasses

import pytest

from promptshield.guard.state import GuardState, PendingAction, ReplayToken, text_digest
from promptshield.models.events import KeyChord, TriggerEvent, TriggerKind


class TestKeyChord:
    @pytest.mark.parametrize(
        "chord,expected",
        [
            (KeyChord(), True),
            (KeyChord(shift=True), False),
            (KeyChord(shift=True, ctrl=True), True),
            (KeyChord(shift=True, meta=True), True),
            (KeyChord(ctrl=True), True),
            (KeyChord(key="a"), False),
            (KeyChord(key="Tab", ctrl=True), False),
        ],
    )
    def test_is_confirmation(self, chord: KeyChord, expected: bool) -> None:
        assert chord.is_confirmation() is expected


class TestPendingAction:
    def test_pointer_replay_event(self) -> None:
        action = PendingAction("01J0", TriggerKind.POINTER, target="button", field="field")
        event = action.replay_event()
        assert event.kind is TriggerKind.POINTER
        assert event.target == "button"
        assert event.replay_token == "01J0"
        assert not event.cancelled

    def test_keyboard_replay_keeps_chord(self) -> None:
        chord = KeyChord(ctrl=True)
        action = PendingAction("01J1", TriggerKind.KEYBOARD, target="field", field="field", chord=chord)
        event = action.replay_event()
        assert event.kind is TriggerKind.KEYBOARD
        assert event.target == "field"
        assert event.chord == chord

    def test_keyboard_replay_default_chord(self) -> None:
        action = PendingAction("01J2", TriggerKind.KEYBOARD, target="field", field="field")
        assert action.replay_event().chord == KeyChord()

    def test_frozen(self) -> None:
        action = PendingAction("01J3", TriggerKind.POINTER, target=None, field=None)
        with pytest.raises(dataclasses.FrozenInstanceError):
            action.action_id = "other"  # type: ignore[misc]


class TestReplayToken:
    def test_action_token_matches_only_its_replay(self) -> None:
        token = ReplayToken.for_action("A")
        assert token.matches_event(TriggerEvent.click("b", replay_token="A"))
        assert not token.matches_event(TriggerEvent.click("b", replay_token="B"))
        assert not token.matches_event(TriggerEvent.click("b"))
        assert not token.text_bound

    def test_text_token_never_matches_events(self) -> None:
        token = ReplayToken.for_text("hello")
        assert token.text_bound
        assert not token.matches_event(TriggerEvent.click("b"))
        assert token.matches_text("hello")
        assert not token.matches_text("hello ")

    def test_action_token_never_matches_text(self) -> None:
        assert not ReplayToken.for_action("A").matches_text("A")

    def test_digest_is_sha256_hex(self) -> None:
        digest = text_digest("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_token_does_not_retain_text(self) -> None:
        assert "secret-value" not in repr(ReplayToken.for_text("secret-value"))

    def test_states(self) -> None:
        assert {s.value for s in GuardState} == {"idle", "awaiting_decision", "replay_armed"}
