"""Relevance ranking of knowledge entries against a free-text query.

A cheap bag-of-substrings heuristic, not linguistic search. Changing it
changes which entries cross the ``score > 0`` inclusion threshold, so the
scoring rules below are kept exactly:

    score = distinct query tokens found as substrings of content + location
          + LOCATION_BOOST when the whole query contains the entry's location
"""

from collections.abc import Sequence

from travel_journal.core.schemas_knowledge import KnowledgeEntry

LOCATION_BOOST = 5


def tokenize_query(query: str) -> set[str]:
    """Lowercase the query and split it into distinct non-empty tokens."""
    return set(query.lower().split())


def score_entry(query: str, entry: KnowledgeEntry) -> int:
    """
    Score one entry against a query.

    Args:
        query: Raw user query
        entry: Candidate knowledge entry

    Returns:
        Non-negative integer relevance score
    """
    normalized_query = query.lower()
    haystack = f"{entry.content} {entry.location or ''}".lower()

    score = sum(1 for token in tokenize_query(query) if token in haystack)

    if entry.location and entry.location.lower() in normalized_query:
        score += LOCATION_BOOST

    return score


def rank_entries(
    query: str,
    candidates: Sequence[KnowledgeEntry],
    limit: int,
) -> list[KnowledgeEntry]:
    """
    Rank candidates by relevance to the query.

    Entries scoring zero are dropped, so a query that matches nothing
    yields an empty list. Equal scores keep the candidates' input
    (recency) order.

    Args:
        query: Raw user query
        candidates: Entries to rank, newest first
        limit: Maximum number of entries to return (>= 1)

    Returns:
        At most ``limit`` entries, highest score first

    Raises:
        ValueError: If limit is not positive
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    scored = [(score_entry(query, entry), entry) for entry in candidates]
    scored = [item for item in scored if item[0] > 0]
    # sorted() is stable: ties keep recency order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)

    return [entry for _, entry in scored[:limit]]
