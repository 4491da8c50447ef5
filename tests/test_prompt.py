"""Tests for system prompt assembly."""

from jabber.ledger.models import MemoryNote
from jabber.prompt import build_system_prompt, format_notes


def test_format_notes_bullets() -> None:
    notes = [MemoryNote(text="buy milk"), MemoryNote(text="call mum")]
    assert format_notes(notes) == "- buy milk\n- call mum"


def test_prompt_without_notes() -> None:
    prompt = build_system_prompt([])
    assert prompt.startswith('You are "Jabber"')
    assert prompt.endswith("(no memories yet)")


def test_prompt_uses_assistant_name() -> None:
    prompt = build_system_prompt([], name="Jib")
    assert 'You are "Jib"' in prompt


def test_prompt_lists_notes() -> None:
    prompt = build_system_prompt([MemoryNote(text="likes tea")])
    assert "Memory (latest):\n- likes tea" in prompt
