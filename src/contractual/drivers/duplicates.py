"""Content fingerprints for re-post detection.

A create whose fingerprint matches the fingerprint of a prior create is a
re-post and is rejected with DuplicateContentError, independently of id
collisions. Fingerprints are taken at create time and stay with the record
until it is deleted.
"""

from collections.abc import Mapping
from typing import Any

from contractual.contracts.enums import DuplicateContentMode
from contractual.core.canonical import stable_hash
from contractual.core.config import DuplicateContentPolicy


class ContentFingerprinter:
    """Computes fingerprints according to a DuplicateContentPolicy."""

    def __init__(self, policy: DuplicateContentPolicy) -> None:
        self._policy = policy

    def fingerprint(self, record: Mapping[str, Any]) -> str | None:
        """SHA-256 of the canonical compared content, or None when not compared.

        In ``fields`` mode only the listed fields that are present take part;
        a record with none of them present is never a duplicate.
        """
        mode = self._policy.mode
        if mode == DuplicateContentMode.DISABLED:
            return None
        if mode == DuplicateContentMode.FULL_RECORD:
            return stable_hash(dict(record))
        compared = {name: record[name] for name in self._policy.fields if name in record}
        if not compared:
            return None
        return stable_hash(compared)
