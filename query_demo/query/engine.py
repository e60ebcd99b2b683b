"""
Query engine for the in-memory record collection.

This module filters records by case-insensitive substring match on name or
category, ranks the matches by score, and explains the result in prose.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple
from dataclasses import dataclass

from ..models.entities import Record


EMPTY_QUERY_EXPLANATION = "Type a query and press Search. Results are mocked for demo."
EMPTY_QUERY_TIPS = ("Filtering matches on name or category (case-insensitive).",)

EXPLANATION_TEMPLATE = (
    'Showing {count} result(s) for "{query}". This mocked search filters by '
    'name/category and sorts by mocked "score" (desc).'
)
FILTER_TIP_TEMPLATE = 'Filter: name/category contains "{query}" (case-insensitive).'
SORT_TIP = "Sort: score descending."
BACKEND_TIP = "To go real, replace the mocked search with an API call."


@dataclass(frozen=True)
class QueryResult:
    """Data class for a ranked search result with its explanation."""
    items: Tuple[Record, ...]
    explanation: str
    tips: Tuple[str, ...]

    @property
    def total_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form used by the CLI and the REST API."""
        return {
            "items": [item.model_dump() for item in self.items],
            "explanation": self.explanation,
            "tips": list(self.tips),
            "total_count": self.total_count,
        }


def normalize_query(query: str) -> str:
    """Strip surrounding whitespace and lowercase."""
    return query.strip().lower()


def matches(record: Record, normalized_query: str) -> bool:
    """True when the record's name or category contains the normalized query."""
    return (
        normalized_query in record.name.lower()
        or normalized_query in record.category.lower()
    )


def search(query: str, records: Sequence[Record]) -> QueryResult:
    """
    Filter and rank records for a free-text query.

    Args:
        query: Raw query text as the user typed it
        records: Collection to search; never modified

    Returns:
        QueryResult with matching records ordered by score, highest first.
        Equal scores keep their order from ``records``.
    """
    normalized = normalize_query(query)
    if not normalized:
        return QueryResult(
            items=(),
            explanation=EMPTY_QUERY_EXPLANATION,
            tips=EMPTY_QUERY_TIPS
        )

    # sorted() is stable, so ties stay in source order
    items = tuple(sorted(
        (record for record in records if matches(record, normalized)),
        key=lambda record: record.score,
        reverse=True
    ))

    return QueryResult(
        items=items,
        explanation=EXPLANATION_TEMPLATE.format(count=len(items), query=query),
        tips=(
            FILTER_TIP_TEMPLATE.format(query=query),
            SORT_TIP,
            BACKEND_TIP,
        )
    )


class QueryEngine:
    """
    Search front end bound to one record collection.

    The collection is injected so tests can search arbitrary fixtures.
    The engine remembers the last query and its result; submitting the
    same query string again returns the remembered result.
    """

    def __init__(self, records: Sequence[Record]):
        """Initialize the query engine over a read-only record collection."""
        self.records: Tuple[Record, ...] = tuple(records)
        self.logger = logging.getLogger(__name__)
        self._last_query: Optional[str] = None
        self._last_result: Optional[QueryResult] = None

    def search(self, query: str) -> QueryResult:
        """
        Search the bound collection.

        Args:
            query: Raw query text

        Returns:
            QueryResult for the query
        """
        if self._last_result is not None and query == self._last_query:
            return self._last_result

        result = search(query, self.records)
        self.logger.debug(
            "Search for %r returned %d result(s)", query, result.total_count,
            extra={"query": query, "result_count": result.total_count}
        )

        self._last_query = query
        self._last_result = result
        return result
