"""Switches for connman service connection and auto connect."""

from __future__ import annotations

import logging
from typing import Any

from connman_lib import ServiceSnapshot

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DATA_COORDINATOR, DATA_HUB, DOMAIN
from .coordinator import ConnmanDataUpdateCoordinator
from .entity import (
    build_unique_id,
    device_info_for_service,
    get_service,
    iter_services,
    unique_base,
)
from .hub import ConnmanHub

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up connman switches from a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    hub: ConnmanHub = data[DATA_HUB]
    coordinator: ConnmanDataUpdateCoordinator = data[DATA_COORDINATOR]
    known_connect: set[str] = set()
    known_auto_connect: set[str] = set()

    def _async_add_services() -> None:
        snapshot = coordinator.data
        if snapshot is None:
            _LOGGER.debug("Service switches skipped because snapshot is unavailable")
            return
        entities: list[SwitchEntity] = []
        for service in iter_services(snapshot, hub.service_types):
            if service.path not in known_connect:
                known_connect.add(service.path)
                entities.append(ConnmanConnectSwitch(coordinator, hub, entry, service))
            if not service.p2p and not service.immutable and service.path not in known_auto_connect:
                known_auto_connect.add(service.path)
                entities.append(ConnmanAutoConnectSwitch(coordinator, hub, entry, service))
        if entities:
            async_add_entities(entities)

    _async_add_services()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_services))


class _ConnmanServiceSwitch(CoordinatorEntity[ConnmanDataUpdateCoordinator], SwitchEntity):
    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ConnmanDataUpdateCoordinator,
        hub: ConnmanHub,
        entry: ConfigEntry,
        service: ServiceSnapshot,
        key: str,
    ) -> None:
        super().__init__(coordinator)
        self._hub = hub
        self._path = service.path
        self._attr_unique_id = build_unique_id(unique_base(entry), key, service.identifier)
        self._attr_device_info = device_info_for_service(entry, service)

    @property
    def _service(self) -> ServiceSnapshot | None:
        return get_service(self.coordinator.data, self._path)

    @property
    def available(self) -> bool:
        """Return if the entity is available."""
        return self._hub.is_ready and self._service is not None


class ConnmanConnectSwitch(_ConnmanServiceSwitch):
    """Connect or disconnect a service."""

    _attr_translation_key = "connected"

    def __init__(
        self,
        coordinator: ConnmanDataUpdateCoordinator,
        hub: ConnmanHub,
        entry: ConfigEntry,
        service: ServiceSnapshot,
    ) -> None:
        """Initialize the connect switch."""
        super().__init__(coordinator, hub, entry, service, "connected")

    @property
    def is_on(self) -> bool | None:
        """Return if the service is connected."""
        service = self._service
        return service.connected if service is not None else None

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Connect the service."""
        if not await self._hub.async_connect_service(self._path):
            raise HomeAssistantError(f"Connecting {self._path} failed.")

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Disconnect the service."""
        if not await self._hub.async_disconnect_service(self._path):
            raise HomeAssistantError(f"Disconnecting {self._path} failed.")


class ConnmanAutoConnectSwitch(_ConnmanServiceSwitch):
    """Toggle a service's AutoConnect flag."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_translation_key = "auto_connect"

    def __init__(
        self,
        coordinator: ConnmanDataUpdateCoordinator,
        hub: ConnmanHub,
        entry: ConfigEntry,
        service: ServiceSnapshot,
    ) -> None:
        """Initialize the auto connect switch."""
        super().__init__(coordinator, hub, entry, service, "auto_connect")

    @property
    def is_on(self) -> bool | None:
        """Return if the service connects automatically."""
        service = self._service
        return service.auto_connect if service is not None else None

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Enable auto connect."""
        await self._async_set(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Disable auto connect."""
        await self._async_set(False)

    async def _async_set(self, value: bool) -> None:
        if not await self._hub.async_set_auto_connect(self._path, value):
            _LOGGER.warning("Setting AutoConnect=%s on %s failed", value, self._path)
            raise HomeAssistantError(f"Updating auto connect on {self._path} failed.")
