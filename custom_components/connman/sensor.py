"""Sensors for connman services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any

from connman_lib import ConnectionStatus, ServiceSnapshot

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DATA_COORDINATOR, DATA_HUB, DOMAIN, SERVICE_TYPE_WIFI
from .coordinator import ConnmanDataUpdateCoordinator
from .entity import (
    build_unique_id,
    device_info_for_service,
    get_service,
    iter_services,
    service_type,
    unique_base,
)
from .hub import ConnmanHub

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConnmanSensorDescription(SensorEntityDescription):
    """Describe a per-service connman sensor."""

    key: str
    value_fn: Callable[[ServiceSnapshot], Any]
    exists_fn: Callable[[ServiceSnapshot], bool] = lambda service: True


SENSORS: tuple[ConnmanSensorDescription, ...] = (
    ConnmanSensorDescription(
        key="connection_status",
        translation_key="connection_status",
        device_class=SensorDeviceClass.ENUM,
        options=[status.value for status in ConnectionStatus],
        value_fn=lambda service: service.connection_status,
    ),
    ConnmanSensorDescription(
        key="state",
        translation_key="state",
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda service: service.state,
    ),
    ConnmanSensorDescription(
        key="signal_strength",
        translation_key="signal_strength",
        native_unit_of_measurement=PERCENTAGE,
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda service: service.strength,
        exists_fn=lambda service: service_type(service) == SERVICE_TYPE_WIFI,
    ),
    ConnmanSensorDescription(
        key="ipv4_address",
        translation_key="ipv4_address",
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda service: service.ipv4_address if service.connected else None,
        exists_fn=lambda service: not service.p2p,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up connman sensors from a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    hub: ConnmanHub = data[DATA_HUB]
    coordinator: ConnmanDataUpdateCoordinator = data[DATA_COORDINATOR]
    known: set[tuple[str, str]] = set()

    def _async_add_services() -> None:
        services = list(iter_services(coordinator.data, hub.service_types))
        if not services:
            _LOGGER.debug("No services available for sensor creation")
            return
        entities: list[ConnmanServiceSensor] = []
        for service in services:
            for description in SENSORS:
                key = (service.path, description.key)
                if key in known or not description.exists_fn(service):
                    continue
                known.add(key)
                entities.append(ConnmanServiceSensor(coordinator, hub, entry, service, description))
        if entities:
            _LOGGER.debug("Adding %s service sensors", len(entities))
            async_add_entities(entities)

    _async_add_services()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_services))


class ConnmanServiceSensor(CoordinatorEntity[ConnmanDataUpdateCoordinator], SensorEntity):
    """Representation of one connman service attribute."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ConnmanDataUpdateCoordinator,
        hub: ConnmanHub,
        entry: ConfigEntry,
        service: ServiceSnapshot,
        description: ConnmanSensorDescription,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._hub = hub
        self._path = service.path
        self.entity_description = description
        self._attr_unique_id = build_unique_id(
            unique_base(entry),
            description.key,
            service.identifier,
        )
        self._attr_device_info = device_info_for_service(entry, service)

    @property
    def available(self) -> bool:
        """Return if the service is still mirrored."""
        return self._hub.is_ready and get_service(self.coordinator.data, self._path) is not None

    @property
    def native_value(self) -> Any:
        """Return the current value."""
        service = get_service(self.coordinator.data, self._path)
        if service is None:
            return None
        return self.entity_description.value_fn(service)
