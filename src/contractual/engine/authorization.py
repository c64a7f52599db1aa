# src/contractual/engine/authorization.py
"""Authorization evaluation.

Alternatives are tried in declaration order and the first satisfied one
allows the call. Role checks never touch storage; ownership checks need the
target record, which is resolved lazily and at most once per call, so a
rule like ``["admin", {"userId": "ownerId"}]`` costs no lookup for admins.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from contractual.contracts.auth import AuthorizationRule, OwnershipRule
from contractual.contracts.enums import AuthDecision
from contractual.contracts.identity import CallerIdentity

logger = structlog.get_logger(__name__)

# Zero-argument callable returning an awaitable record (None if missing), or
# None itself when the call addresses no single record.
ResolveTarget = Callable[[], Awaitable[Mapping[str, Any] | None] | None]

_UNRESOLVED = object()


async def evaluate(
    rule: AuthorizationRule,
    identity: CallerIdentity | None,
    resolve_target: ResolveTarget | None = None,
) -> AuthDecision:
    """Decide whether a caller may perform an operation.

    Args:
        rule: False (open) or the tuple of alternatives
        identity: Caller, None when unauthenticated
        resolve_target: Resolver for the addressed record; required for
            ownership alternatives to match anything but multi-record calls

    Returns:
        ALLOW, DENY_UNAUTHENTICATED, DENY_UNAUTHORIZED, or TARGET_MISSING when
        an ownership alternative needed a record that does not exist and no
        other alternative matched
    """
    if rule is False:
        return AuthDecision.ALLOW
    if identity is None:
        return AuthDecision.DENY_UNAUTHENTICATED

    target: Any = _UNRESOLVED
    addresses_single_record = True
    for alternative in rule:
        if isinstance(alternative, str):
            if identity.has_role(alternative):
                return AuthDecision.ALLOW
            continue

        if target is _UNRESOLVED:
            pending = resolve_target() if resolve_target is not None else None
            if pending is None:
                addresses_single_record = False
                target = None
            else:
                target = await pending
        if not addresses_single_record:
            # Multi-record call: allowed, results are scoped to the caller's records.
            return AuthDecision.ALLOW
        if target is not None and _owns(alternative, target, identity):
            return AuthDecision.ALLOW

    if target is None and addresses_single_record:
        logger.debug("authorization_target_missing", subject=identity.subject)
        return AuthDecision.TARGET_MISSING
    return AuthDecision.DENY_UNAUTHORIZED


def _owns(alternative: OwnershipRule, record: Mapping[str, Any], identity: CallerIdentity) -> bool:
    return record.get(alternative.owner_field) == identity.subject
