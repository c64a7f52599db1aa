# src/contractual/drivers/discovery.py
"""Driver discovery and instantiation.

Glue between settings (ContractualSettings.drivers) and the driver instances
bindings dispatch to:
1. Discover driver classes via the ``contractual_get_drivers`` pluggy hook
2. Instantiate one driver per store kind on first use, with its configured
   options and the duplicate-content policy
3. Hand the same instance to every contract bound to that store kind
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pluggy
import structlog

from contractual.contracts.errors import DriverRegistrationError
from contractual.core.config import ContractualSettings
from contractual.drivers.base import DataDriver
from contractual.drivers.hookspecs import PROJECT_NAME, BuiltinDriversPlugin, ContractualDriverSpec

logger = structlog.get_logger(__name__)


def _driver_name(driver_class: Any) -> str:
    if not isinstance(driver_class, type) or not issubclass(driver_class, DataDriver):
        raise DriverRegistrationError("driver_plugins", f"Expected a DataDriver subclass, got {driver_class!r}")
    name = driver_class.__dict__.get("name")
    if type(name) is not str or name == "":
        raise DriverRegistrationError(
            driver_class.__name__,
            f"Driver class attribute name must be a non-empty string, got {name!r}",
        )
    return name


def discover_drivers(driver_plugins: Iterable[Any] = ()) -> dict[str, type[DataDriver]]:
    """Discover driver classes via pluggy hooks.

    Registers the built-in drivers plus any plugin objects provided by the
    caller, then calls ``contractual_get_drivers`` to build the store
    kind -> class registry.

    Args:
        driver_plugins: Additional plugin objects implementing
            ``contractual_get_drivers``.

    Returns:
        Mapping of store kind to driver class.

    Raises:
        DriverRegistrationError: If plugin registration fails, a hook returns
            something other than driver classes, or two drivers share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(ContractualDriverSpec)

    for plugin in [BuiltinDriversPlugin(), *list(driver_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook spec mismatch
            # ValueError: plugin object or name already registered
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise DriverRegistrationError(
                "driver_plugins",
                f"Invalid driver plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[DataDriver]] = {}
    # Registration order: built-ins first, so a clashing plugin is the one reported.
    for hook_impl in plugin_manager.hook.contractual_get_drivers.get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            drivers = hook_impl.plugin.contractual_get_drivers()
        except Exception as e:
            raise DriverRegistrationError(
                "driver_plugins",
                f"Driver plugin {plugin_name} failed in contractual_get_drivers: {e}",
            ) from e

        if drivers is None or isinstance(drivers, str | bytes):
            raise DriverRegistrationError(
                "driver_plugins",
                f"contractual_get_drivers in plugin {plugin_name} returned {type(drivers).__name__}; expected a list of driver classes",
            )
        try:
            driver_iter = iter(drivers)
        except TypeError as e:
            raise DriverRegistrationError(
                "driver_plugins",
                f"contractual_get_drivers in plugin {plugin_name} returned {type(drivers).__name__}; expected a list of driver classes",
            ) from e

        for driver_class in driver_iter:
            name = _driver_name(driver_class)
            if name in registry:
                raise DriverRegistrationError(
                    name,
                    f"Duplicate driver name '{name}' discovered: {registry[name].__name__} and {driver_class.__name__}",
                )
            registry[name] = driver_class

    logger.debug("drivers_discovered", store_kinds=sorted(registry))
    return registry


class DriverFactory:
    """Hands out one driver instance per store kind.

    Instances are created on first request and reused, so every contract
    bound to a store kind shares its state (and its connection pool).
    Pre-built instances can be supplied for tests or custom wiring.
    """

    def __init__(
        self,
        settings: ContractualSettings | None = None,
        *,
        driver_plugins: Iterable[Any] = (),
        drivers: Mapping[str, DataDriver] | None = None,
    ) -> None:
        self._settings = settings or ContractualSettings()
        self._registry = discover_drivers(driver_plugins)
        self._instances: dict[str, DataDriver] = dict(drivers or {})

    @property
    def store_kinds(self) -> list[str]:
        return sorted(set(self._registry) | set(self._instances))

    def get(self, store_kind: str) -> DataDriver:
        """Return the driver for a store kind, creating it on first use.

        Raises:
            DriverRegistrationError: Unknown store kind, or the driver
                rejected its options
        """
        if store_kind in self._instances:
            return self._instances[store_kind]
        try:
            driver_class = self._registry[store_kind]
        except KeyError:
            raise DriverRegistrationError(
                store_kind,
                f"Unknown store kind. Available drivers: {self.store_kinds}",
            ) from None

        options = self._settings.driver_options(store_kind)
        try:
            driver = driver_class(options, duplicate_policy=self._settings.duplicate_content)
        except (TypeError, ValueError) as e:
            raise DriverRegistrationError(store_kind, f"Invalid driver options: {e}") from e
        self._instances[store_kind] = driver
        logger.debug("driver_created", store_kind=store_kind, options_keys=sorted(options))
        return driver

    async def close(self) -> None:
        """Close every instantiated driver."""
        for driver in self._instances.values():
            await driver.close()
