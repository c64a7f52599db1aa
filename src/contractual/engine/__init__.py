"""Contract pipeline: authorization, processing, registry, assembly.

Typical startup:

    from contractual.engine import build_registry

    registry = build_registry(definitions, settings)
    method = registry.lookup("get", "notes")
    result = await method.handle({"id": "n1"}, identity)
"""

from contractual.engine.assembly import build_contract, build_registry
from contractual.engine.authorization import evaluate
from contractual.engine.processor import ProcessedOperation, add_validation_to_contracts, wrap
from contractual.engine.registry import MethodRegistry, RegisteredMethod, register_rest_methods

__all__ = [
    "MethodRegistry",
    "ProcessedOperation",
    "RegisteredMethod",
    "add_validation_to_contracts",
    "build_contract",
    "build_registry",
    "evaluate",
    "register_rest_methods",
    "wrap",
]
