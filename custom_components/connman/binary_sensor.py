"""Binary sensors for connman service connectivity."""

from __future__ import annotations

import logging
from typing import Any

from connman_lib import ServiceSnapshot

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
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
    """Set up connman online sensors from a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    hub: ConnmanHub = data[DATA_HUB]
    coordinator: ConnmanDataUpdateCoordinator = data[DATA_COORDINATOR]
    known_paths: set[str] = set()

    def _async_add_services() -> None:
        snapshot = coordinator.data
        if snapshot is None:
            _LOGGER.debug("Online sensors skipped because snapshot is unavailable")
            return
        entities: list[ConnmanOnlineBinarySensor] = []
        for service in iter_services(snapshot, hub.service_types):
            if service.p2p or service.path in known_paths:
                continue
            known_paths.add(service.path)
            entities.append(ConnmanOnlineBinarySensor(coordinator, hub, entry, service))
        if entities:
            async_add_entities(entities)

    _async_add_services()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_services))


class ConnmanOnlineBinarySensor(
    CoordinatorEntity[ConnmanDataUpdateCoordinator], BinarySensorEntity
):
    """Whether a service has passed connman's online check."""

    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_has_entity_name = True
    _attr_translation_key = "online"

    def __init__(
        self,
        coordinator: ConnmanDataUpdateCoordinator,
        hub: ConnmanHub,
        entry: ConfigEntry,
        service: ServiceSnapshot,
    ) -> None:
        """Initialize the online sensor."""
        super().__init__(coordinator)
        self._hub = hub
        self._path = service.path
        self._attr_unique_id = build_unique_id(unique_base(entry), "online", service.identifier)
        self._attr_device_info = device_info_for_service(entry, service)
        self._missing_logged = False

    @property
    def is_on(self) -> bool | None:
        """Return if the service is online."""
        service = get_service(self.coordinator.data, self._path)
        if service is None:
            self._log_missing()
            return None
        return service.online

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional state attributes."""
        service = get_service(self.coordinator.data, self._path)
        if service is None:
            return {}
        return {
            "online_check": service.online_checking,
            "interface": service.interface_name,
            "nameservers": list(service.nameservers),
        }

    @property
    def available(self) -> bool:
        """Return if the entity is available."""
        return self._hub.is_ready and get_service(self.coordinator.data, self._path) is not None

    def _log_missing(self) -> None:
        if self._missing_logged:
            return
        self._missing_logged = True
        _LOGGER.debug("Service %s missing from snapshot", self._path)
