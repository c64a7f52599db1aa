"""Contract and driver binding definitions.

A Contract is the registered, immutable description of one operation. It is
built once at startup (see contractual.engine.assembly) and then only read.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from contractual.contracts.auth import AuthorizationRule, ownership_alternatives, parse_authentication
from contractual.contracts.enums import HttpMethod, SearchMode

if TYPE_CHECKING:
    from contractual.schema.factory import CompiledSchema

# handler(payload) or handler(payload, identity); sync or async
Handler: TypeAlias = Callable[..., Any]

# Returns an awaitable resolving to the addressed record (None if missing),
# or None when the payload does not address a single record.
TargetResolver: TypeAlias = Callable[[Mapping[str, Any]], Awaitable[Mapping[str, Any] | None] | None]


@dataclass(frozen=True)
class DriverBinding:
    """Declarative mapping from a contract to a storage backend.

    Resolved once at registration into a dispatch strategy; never
    interpreted per call.

    Attributes:
        store_kind: Driver name, e.g. "memory" or "sql"
        collection: Collection/table/index the records live in
        id_field: Record field holding the id (defaults to the contract's)
        search_mode: How ``get`` payloads are interpreted
        search_field: Payload field carrying free-text queries
    """

    store_kind: str
    collection: str
    id_field: str | None = None
    search_mode: SearchMode = SearchMode.ID_ONLY
    search_field: str = "search"

    def __post_init__(self) -> None:
        for name in ("store_kind", "collection"):
            value = getattr(self, name)
            if type(value) is not str or not value:
                raise ValueError(f"DriverBinding.{name} must be a non-empty string, got {value!r}")
        object.__setattr__(self, "search_mode", SearchMode(self.search_mode))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DriverBinding:
        """Create a binding from registration input.

        Accepts snake_case keys plus ``storeKind``/``idField``/``searchMode``.
        """
        aliases = {"storeKind": "store_kind", "idField": "id_field", "searchMode": "search_mode", "searchField": "search_field"}
        normalized = {aliases.get(key, key): value for key, value in data.items()}
        return cls(**normalized)


def _handler_takes_identity(handler: Handler) -> bool:
    """Decide once whether a handler is called with (payload, identity).

    A second required positional parameter, or one named ``identity``, takes
    the caller. Optional parameters with other names are left to their defaults.
    """
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        # Builtins and some C callables have no signature; assume payload only.
        return False
    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in signature.parameters.values()):
        return True
    if len(positional) < 2:
        return False
    second = positional[1]
    return second.default is inspect.Parameter.empty or second.name == "identity"


@dataclass(frozen=True)
class Contract:
    """Registered operation description.

    Attributes:
        name: Operation name, unique per verb
        method: Verb the operation is exposed under
        input_schema: Compiled schema for the payload
        output_schema: Compiled schema for the handler result
        authentication: False or tuple of alternatives
        handler: Callable producing the result; None reports 501
        id_field: Record id field for ownership lookups
        binding: Storage binding the handler was resolved from, if any
        target_resolver: Resolves the record ownership rules are checked against
    """

    name: str
    method: HttpMethod
    input_schema: CompiledSchema
    output_schema: CompiledSchema
    authentication: AuthorizationRule = False
    handler: Handler | None = None
    id_field: str = "id"
    binding: DriverBinding | None = None
    target_resolver: TargetResolver | None = None
    handler_takes_identity: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        if type(self.name) is not str or not self.name:
            raise ValueError(f"Contract.name must be a non-empty string, got {self.name!r}")
        object.__setattr__(self, "method", HttpMethod(self.method))
        object.__setattr__(self, "authentication", parse_authentication(self.authentication))
        if self.handler is not None:
            object.__setattr__(self, "handler_takes_identity", _handler_takes_identity(self.handler))

    @property
    def requires_target(self) -> bool:
        """True when the rule has ownership alternatives."""
        return bool(ownership_alternatives(self.authentication))
