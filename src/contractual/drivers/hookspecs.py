# src/contractual/drivers/hookspecs.py
"""pluggy hook specifications for storage drivers.

Driver packages implement these hooks to make their store kinds available
to bindings.

Usage (implementing a driver plugin):
    from contractual.drivers.hookspecs import hookimpl

    class RedisDriverPlugin:
        @hookimpl
        def contractual_get_drivers(self):
            return [RedisDriver]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from contractual.drivers.base import DataDriver

PROJECT_NAME = "contractual"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ContractualDriverSpec:
    """Hook specifications for driver plugins."""

    @hookspec
    def contractual_get_drivers(self) -> list[type["DataDriver"]]:  # type: ignore[empty-body]
        """Return driver classes.

        Each class declares its store kind in ``name``. Classes are
        instantiated lazily, once per store kind, by the DriverFactory.

        Returns:
            List of DataDriver subclasses (not instances)
        """


class BuiltinDriversPlugin:
    """Plugin that registers the built-in drivers."""

    @hookimpl
    def contractual_get_drivers(self) -> list[type["DataDriver"]]:
        from contractual.drivers.memory import MemoryDriver
        from contractual.drivers.sql import SqlDriver

        return [MemoryDriver, SqlDriver]
