# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from hypothesis import Phase, Verbosity, settings

from contractual.contracts import AnyOf, CallerIdentity, Contract
from contractual.drivers import DataDriver, MemoryDriver, SqlDriver
from contractual.schema import compile_schema

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Schemas and identities
# =============================================================================

NOTE_SPEC: dict[str, Any] = {"id": "str", "ownerId": "str", "text": "str", "tags?": "str[]"}
NOTE_PATCH_SPEC: dict[str, Any] = {"id": "str", "ownerId?": "str", "text?": "str", "tags?": "str[]"}
READ_INPUT_SPEC: dict[str, Any] = {"id?": "str|str[]", "search?": "str"}
NOTE_OUTPUT_SPEC = AnyOf(NOTE_SPEC, [NOTE_SPEC])
ID_INPUT_SPEC: dict[str, Any] = {"id": "str"}


def note(record_id: str, owner: str = "alice", text: str = "hello", **extra: Any) -> dict[str, Any]:
    """Build a note record."""
    return {"id": record_id, "ownerId": owner, "text": text, **extra}


def make_contract(
    name: str = "echo",
    method: str = "post",
    *,
    input_schema: Any = None,
    output_schema: Any = None,
    authentication: Any = False,
    handler: Any = None,
    target_resolver: Any = None,
) -> Contract:
    """Build a Contract with permissive defaults for processor tests."""
    return Contract(
        name=name,
        method=method,  # type: ignore[arg-type]
        input_schema=compile_schema(input_schema if input_schema is not None else {"name": "str"}, f"{name}In"),
        output_schema=compile_schema(output_schema if output_schema is not None else {"name": "str"}, f"{name}Out"),
        authentication=authentication,
        handler=handler,
        target_resolver=target_resolver,
    )


@pytest.fixture
def alice() -> CallerIdentity:
    return CallerIdentity.of("alice", ["user"])


@pytest.fixture
def bob() -> CallerIdentity:
    return CallerIdentity.of("bob", ["user"])


@pytest.fixture
def admin() -> CallerIdentity:
    return CallerIdentity.of("root", ["admin"])


# =============================================================================
# Drivers
# =============================================================================


@pytest.fixture
def memory_driver() -> MemoryDriver:
    return MemoryDriver()


@pytest_asyncio.fixture
async def sql_driver(tmp_path: Path) -> AsyncIterator[SqlDriver]:
    driver = SqlDriver({"url": f"sqlite:///{tmp_path / 'records.db'}"})
    yield driver
    await driver.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def driver(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncIterator[DataDriver]:
    """Every built-in driver, for tests of the shared verb contract."""
    instance: DataDriver
    if request.param == "memory":
        instance = MemoryDriver()
    else:
        instance = SqlDriver({"url": f"sqlite:///{tmp_path / 'records.db'}"})
    yield instance
    await instance.close()


@pytest.fixture
def call_recorder() -> Callable[..., Any]:
    """Sync handler that records its calls and echoes the payload."""
    calls: list[tuple[Any, ...]] = []

    def handler(payload: Any) -> Any:
        calls.append((payload,))
        return payload

    handler.calls = calls  # type: ignore[attr-defined]
    return handler
