"""Format ranked knowledge entries for LLM context injection."""

from collections.abc import Sequence

from travel_journal.core.schemas_knowledge import KnowledgeEntry

ENTRY_SEPARATOR = "\n\n"


def format_entry(entry: KnowledgeEntry) -> str:
    """Render one entry, tagged with its location when it has one."""
    if entry.location:
        return f"[Location: {entry.location}] {entry.content}"
    return entry.content


def assemble_context(entries: Sequence[KnowledgeEntry]) -> str:
    """
    Join ranked entries into one grounding string, preserving their order.

    An empty string means no grounding exists; the chat prompt switches to
    its "no first-hand experience" mode on it. No length truncation: the
    search limit already bounds the entry count.
    """
    if not entries:
        return ""
    return ENTRY_SEPARATOR.join(format_entry(entry) for entry in entries)
