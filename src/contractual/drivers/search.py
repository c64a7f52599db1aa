"""Relevance ranking shared by drivers without native text search.

Relevance is the number of query-term occurrences across a record's string
values (nested lists and objects included), case-insensitive. Ranking is a
stable sort, so equally relevant records keep their insertion order.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

TOKEN_PATTERN = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    return [token.lower() for token in TOKEN_PATTERN.findall(text)]


def _string_values(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for nested in value.values():
            yield from _string_values(nested)
    elif isinstance(value, list | tuple):
        for nested in value:
            yield from _string_values(nested)


def search_terms(record: Mapping[str, Any]) -> list[str]:
    """Lowercased tokens of every string value in ``record``, in order."""
    return [token for text in _string_values(record) for token in tokenize(text)]


def relevance(record: Mapping[str, Any], terms: Iterable[str]) -> int:
    """Count occurrences of ``terms`` among the record's string values."""
    wanted = set(terms)
    if not wanted:
        return 0
    return sum(1 for token in search_terms(record) if token in wanted)


def rank(records: Iterable[Mapping[str, Any]], query: str) -> list[dict[str, Any]]:
    """Return records matching ``query``, most relevant first.

    Args:
        records: Candidate records in insertion order
        query: Free text; a query without word characters matches nothing
    """
    terms = tokenize(query)
    if not terms:
        return []
    scored = [(relevance(record, terms), dict(record)) for record in records]
    matching = [pair for pair in scored if pair[0] > 0]
    matching.sort(key=lambda pair: -pair[0])
    return [record for _, record in matching]
