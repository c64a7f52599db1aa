"""Caller identity.

These types answer: "Who is calling?"
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller as seen by authorization.

    Unauthenticated calls carry no identity at all (None), never an
    identity with an empty subject.

    Attributes:
        subject: Stable caller id, compared against record owner fields
        roles: Role names granted to the caller
    """

    subject: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if type(self.subject) is not str or not self.subject:
            raise ValueError(f"CallerIdentity.subject must be a non-empty string, got {self.subject!r}")
        # Accept any iterable of role names but store them frozen.
        if not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))

    @classmethod
    def of(cls, subject: str, roles: Iterable[str] = ()) -> "CallerIdentity":
        """Create an identity from a subject and role names."""
        return cls(subject=subject, roles=frozenset(roles))

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "CallerIdentity":
        """Create an identity from token-style claims.

        Args:
            claims: Mapping with ``sub`` and an optional ``permissions`` list

        Raises:
            ValueError: If ``sub`` is missing or not a string
        """
        subject = claims.get("sub")
        if not isinstance(subject, str):
            raise ValueError(f"Claims must carry a string 'sub', got {subject!r}")
        return cls.of(subject, claims.get("permissions") or ())

    def has_role(self, role: str) -> bool:
        return role in self.roles
