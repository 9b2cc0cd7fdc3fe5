"""Diagnostics support for connman."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import date, datetime
import enum
from types import MappingProxyType
from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import (
    CONF_CALL_TIMEOUT,
    CONF_ROUTING_TABLES,
    CONF_SERVICE_TYPES,
    DATA_COORDINATOR,
    DATA_HUB,
    DOMAIN,
)
from .coordinator import ConnmanDataUpdateCoordinator
from .hub import ConnmanHub

TO_REDACT = {
    "address",
    "bssid",
    "ipv4_address",
    "ipv4_gateway",
    "ipv6_address",
    "mac_address",
    "nameservers",
    "peer_address",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    hub: ConnmanHub | None = data.get(DATA_HUB) if data else None
    coordinator: ConnmanDataUpdateCoordinator | None = (
        data.get(DATA_COORDINATOR) if data else None
    )
    snapshot = coordinator.data if coordinator is not None else None
    manager = hub.manager if hub is not None else None

    snapshot_meta = _to_jsonable(
        {
            "version": getattr(snapshot, "version", None),
            "updated_at": getattr(snapshot, "updated_at", None),
        }
    )

    return {
        "entry_id": entry.entry_id,
        "service_types": entry.options.get(CONF_SERVICE_TYPES, entry.data.get(CONF_SERVICE_TYPES)),
        "routing_tables": entry.options.get(CONF_ROUTING_TABLES, entry.data.get(CONF_ROUTING_TABLES)),
        "call_timeout": entry.options.get(CONF_CALL_TIMEOUT, entry.data.get(CONF_CALL_TIMEOUT)),
        "ready": hub.is_ready if hub is not None else False,
        "diagnostics_subscribed": manager.diagnostics.subscribed if manager is not None else None,
        "pending_release": sorted(manager.pending_release) if manager is not None else [],
        "snapshot_available": snapshot is not None,
        "snapshot_meta": snapshot_meta,
        "snapshot": async_redact_data(_to_jsonable(snapshot), TO_REDACT),
    }


def _to_jsonable(value: Any) -> Any:
    """Normalize snapshots to JSON-safe types."""
    if value is None:
        return None
    if is_dataclass(value):
        return {
            field.name: _to_jsonable(getattr(value, field.name))
            for field in fields(value)
        }
    if isinstance(value, MappingProxyType):
        return {str(key): _to_jsonable(val) for key, val in dict(value).items()}
    if isinstance(value, Mapping):
        return {str(key): _to_jsonable(val) for key, val in value.items()}
    if isinstance(value, list | tuple):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, set | frozenset):
        return sorted([_to_jsonable(item) for item in value], key=str)
    if isinstance(value, bytes | bytearray):
        return value.hex()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
