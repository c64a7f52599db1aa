"""Authorization rules and access scopes.

Registration input for a rule is either ``False`` (no authentication) or a
list of alternatives, each a role name or an ownership rule written as
``{"userId": "<owner field>"}``:

    authentication: ["admin", {"userId": "ownerId"}]

Any satisfied alternative grants access.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from contractual.contracts.identity import CallerIdentity

# Key used by registration input for ownership alternatives.
OWNERSHIP_KEY = "userId"


@dataclass(frozen=True)
class OwnershipRule:
    """Grants access when ``record[owner_field]`` equals the caller subject."""

    owner_field: str

    def __post_init__(self) -> None:
        if type(self.owner_field) is not str or not self.owner_field:
            raise ValueError(f"OwnershipRule.owner_field must be a non-empty string, got {self.owner_field!r}")

    def to_dict(self) -> dict[str, str]:
        return {OWNERSHIP_KEY: self.owner_field}


Alternative: TypeAlias = str | OwnershipRule
AuthorizationRule: TypeAlias = Literal[False] | tuple[Alternative, ...]


def parse_authentication(value: Any) -> AuthorizationRule:
    """Normalize registration input into an AuthorizationRule.

    Args:
        value: ``False``, or a list/tuple of role names and
            ``{"userId": field}`` mappings (OwnershipRule instances pass through)

    Returns:
        ``False`` or a tuple of alternatives in declaration order

    Raises:
        ValueError: On ``True``, an empty list, or a malformed alternative
    """
    if value is False:
        return False
    if value is True:
        raise ValueError("authentication=True is ambiguous; list the roles or ownership rules that grant access")
    if not isinstance(value, list | tuple):
        raise ValueError(f"authentication must be False or a list of alternatives, got {type(value).__name__}")
    if not value:
        raise ValueError("authentication list is empty; use False to disable authentication")

    alternatives: list[Alternative] = []
    for index, item in enumerate(value):
        if isinstance(item, OwnershipRule):
            alternatives.append(item)
        elif isinstance(item, str):
            if not item:
                raise ValueError(f"authentication[{index}] is an empty role name")
            alternatives.append(item)
        elif isinstance(item, Mapping):
            if set(item) != {OWNERSHIP_KEY}:
                raise ValueError(f"authentication[{index}] must be {{'{OWNERSHIP_KEY}': <field>}}, got keys {sorted(item)}")
            alternatives.append(OwnershipRule(item[OWNERSHIP_KEY]))
        else:
            raise ValueError(f"authentication[{index}] must be a role name or ownership mapping, got {type(item).__name__}")
    return tuple(alternatives)


def role_alternatives(rule: AuthorizationRule) -> tuple[str, ...]:
    if rule is False:
        return ()
    return tuple(alt for alt in rule if isinstance(alt, str))


def ownership_alternatives(rule: AuthorizationRule) -> tuple[OwnershipRule, ...]:
    if rule is False:
        return ()
    return tuple(alt for alt in rule if isinstance(alt, OwnershipRule))


@dataclass(frozen=True)
class AccessScope:
    """Which records a driver call may see or touch.

    ``owner_fields=None`` sees every record. Otherwise only records where at
    least one owner field equals the caller subject are visible; an empty
    tuple sees nothing.

    Attributes:
        identity: Caller identity, None for unauthenticated calls
        owner_fields: Owner fields the caller is matched against
    """

    identity: CallerIdentity | None = None
    owner_fields: tuple[str, ...] | None = None

    @classmethod
    def unrestricted(cls, identity: CallerIdentity | None = None) -> AccessScope:
        return cls(identity=identity)

    @classmethod
    def for_rule(cls, rule: AuthorizationRule, identity: CallerIdentity | None) -> AccessScope:
        """Scope granted to a caller by a rule.

        A matching role (or no rule) grants everything; otherwise the caller
        is limited to the records the rule's ownership alternatives give them.
        """
        if rule is False:
            return cls.unrestricted(identity)
        if identity is not None and any(identity.has_role(role) for role in role_alternatives(rule)):
            return cls.unrestricted(identity)
        return cls(identity=identity, owner_fields=tuple(alt.owner_field for alt in ownership_alternatives(rule)))

    @property
    def is_restricted(self) -> bool:
        return self.owner_fields is not None

    def permits(self, record: Mapping[str, Any]) -> bool:
        """Check whether the record is visible under this scope."""
        if self.owner_fields is None:
            return True
        if self.identity is None:
            return False
        subject = self.identity.subject
        return any(record.get(field) == subject for field in self.owner_fields)
