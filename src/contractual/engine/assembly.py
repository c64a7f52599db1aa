# src/contractual/engine/assembly.py
"""Assemble a MethodRegistry from contract definitions.

Definitions are plain mappings (or ready Contract objects):

    {
        "name": "notes",
        "method": "get",
        "authentication": ["admin", {"userId": "ownerId"}],
        "id_field": "id",
        "binding": {"store_kind": "memory", "collection": "notes", "search_mode": "free_text"},
        "input_schema": {"id?": "str|str[]", "search?": "str"},
        "output_schema": AnyOf({"id": "str", "ownerId": "str", "text": "str"}, [...]),
        "validate_output": True,
    }

Exactly one of ``handler`` or ``binding`` may be given; neither means the
operation reports 501. camelCase keys (idField, inputSchema, outputSchema,
driverBinding, validateOutput, targetResolver) are accepted as aliases.
Everything is checked and compiled here, once; a bad definition raises
ContractDefinitionError before any call is served.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from pydantic import PydanticUserError

from contractual.contracts.contract import Contract, DriverBinding
from contractual.contracts.errors import ContractDefinitionError
from contractual.core.config import ContractualSettings
from contractual.drivers.base import DataDriver
from contractual.drivers.binding import resolve_binding
from contractual.drivers.discovery import DriverFactory
from contractual.engine.processor import ProcessedOperation, wrap
from contractual.engine.registry import MethodRegistry
from contractual.schema import compile_schema

logger = structlog.get_logger(__name__)

_ALIASES = {
    "idField": "id_field",
    "inputSchema": "input_schema",
    "outputSchema": "output_schema",
    "driverBinding": "binding",
    "driver_binding": "binding",
    "validateOutput": "validate_output",
    "targetResolver": "target_resolver",
}
_KNOWN_KEYS = frozenset(
    {
        "name",
        "method",
        "authentication",
        "id_field",
        "handler",
        "binding",
        "input_schema",
        "output_schema",
        "validate_output",
        "target_resolver",
    }
)
_REQUIRED_KEYS = ("name", "method", "input_schema", "output_schema")


def _model_name(contract_name: str, suffix: str) -> str:
    parts = [part for part in re.split(r"\W+", contract_name) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts) + suffix


def _normalize(definition: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in definition.items():
        canonical = _ALIASES.get(key, key)
        if canonical in normalized:
            raise ContractDefinitionError(str(definition.get("name", "<unknown>")), f"'{key}' given twice (with alias)")
        normalized[canonical] = value
    return normalized


def build_contract(definition: Mapping[str, Any], factory: DriverFactory) -> tuple[Contract, bool | None]:
    """Turn one definition mapping into a Contract.

    Returns:
        The contract and the definition's own validate_output (None when unset)

    Raises:
        ContractDefinitionError: On any problem with the definition
    """
    data = _normalize(definition)
    name = data.get("name")
    label = name if isinstance(name, str) and name else "<unknown>"

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ContractDefinitionError(label, f"Unknown definition keys: {unknown}")
    missing = [key for key in _REQUIRED_KEYS if key not in data]
    if missing:
        raise ContractDefinitionError(label, f"Missing definition keys: {missing}")
    if data.get("handler") is not None and data.get("binding") is not None:
        raise ContractDefinitionError(label, "Give either a handler or a binding, not both")
    validate_output = data.get("validate_output")
    if validate_output is not None and type(validate_output) is not bool:
        raise ContractDefinitionError(label, f"validate_output must be a bool, got {validate_output!r}")

    try:
        input_schema = compile_schema(data["input_schema"], _model_name(label, "Input"))
        output_schema = compile_schema(data["output_schema"], _model_name(label, "Output"))
        contract = Contract(
            name=name,  # type: ignore[arg-type]
            method=data["method"],
            input_schema=input_schema,
            output_schema=output_schema,
            authentication=data.get("authentication", False),
            handler=data.get("handler"),
            id_field=data.get("id_field", "id"),
            target_resolver=data.get("target_resolver"),
        )
        binding_spec = data.get("binding")
        if binding_spec is not None:
            binding = binding_spec if isinstance(binding_spec, DriverBinding) else DriverBinding.from_dict(binding_spec)
            contract = _bind(contract, binding, factory.get(binding.store_kind))
    except (TypeError, ValueError, PydanticUserError) as e:
        raise ContractDefinitionError(label, str(e)) from e

    return contract, validate_output


def _bind(contract: Contract, binding: DriverBinding, driver: DataDriver) -> Contract:
    strategy = resolve_binding(binding, contract.method, driver, contract.authentication, contract.id_field)
    return Contract(
        name=contract.name,
        method=contract.method,
        input_schema=contract.input_schema,
        output_schema=contract.output_schema,
        authentication=contract.authentication,
        handler=strategy,
        id_field=binding.id_field or contract.id_field,
        binding=binding,
        target_resolver=contract.target_resolver or strategy.resolve_target,
    )


def build_registry(
    definitions: Iterable[Mapping[str, Any] | Contract],
    settings: ContractualSettings | None = None,
    *,
    driver_plugins: Iterable[Any] = (),
    drivers: Mapping[str, DataDriver] | None = None,
) -> MethodRegistry:
    """Compile, bind and wrap every definition into a MethodRegistry.

    Args:
        definitions: Definition mappings and/or ready Contract objects
        settings: Settings for policies and driver options (defaults apply)
        driver_plugins: Extra pluggy plugins providing drivers
        drivers: Pre-built driver instances keyed by store kind

    Raises:
        ContractDefinitionError: Bad definition, ownership rule without a
            target resolver, or duplicate (verb, name)
        DriverRegistrationError: Unknown store kind or driver discovery failure
    """
    settings = settings or ContractualSettings()
    factory = DriverFactory(settings, driver_plugins=driver_plugins, drivers=drivers)

    operations: list[ProcessedOperation] = []
    for definition in definitions:
        if isinstance(definition, Contract):
            contract, own_validate_output = definition, None
        else:
            contract, own_validate_output = build_contract(definition, factory)

        if contract.requires_target and contract.target_resolver is None:
            raise ContractDefinitionError(
                contract.name,
                "Ownership rules need the target record; give a binding or a target_resolver",
            )
        validate_output = settings.validate_output if own_validate_output is None else own_validate_output
        operations.append(wrap(contract, validate_output, missing_target_policy=settings.missing_target_policy))

    registry = MethodRegistry(operations)
    logger.info(
        "registry_built",
        operations=len(registry),
        bound=sum(1 for method in registry if method.operation.contract.binding is not None),
        store_kinds=sorted({op.contract.binding.store_kind for op in operations if op.contract.binding is not None}),
    )
    return registry
