"""System prompt assembly for chat requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jabber.ledger.models import MemoryNote

PERSONA = """You are "{name}", a helpful assistant for the user. Be concise when possible.
- Always be friendly.
- If a clear factual answer is requested, answer directly.
- Web searches and image generation are handled outside this conversation; \
do not claim to browse the web or draw images yourself."""


def format_notes(notes: list[MemoryNote]) -> str:
    """Render remembered notes as a bullet list."""
    return "\n".join(f"- {note.text}" for note in notes)


def build_system_prompt(notes: list[MemoryNote], name: str = "Jabber") -> str:
    """Return the fixed persona followed by the user's latest remembered notes."""
    remembered = format_notes(notes) or "(no memories yet)"
    return f"{PERSONA.format(name=name)}\n\nMemory (latest):\n{remembered}"
