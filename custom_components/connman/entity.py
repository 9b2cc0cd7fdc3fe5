"""Shared entity helpers for the connman integration."""

from __future__ import annotations

from collections.abc import Iterable

from connman_lib import ConnmanSnapshot, ServiceSnapshot

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.device_registry import (
    CONNECTION_NETWORK_MAC,
    DeviceInfo,
    format_mac,
)

from .const import DOMAIN, MANUFACTURER, SERVICE_TYPE_P2P


def service_type(service: ServiceSnapshot) -> str | None:
    """Return the service type, treating every peer as p2p."""
    if service.p2p:
        return SERVICE_TYPE_P2P
    return service.type


def iter_services(
    snapshot: ConnmanSnapshot | None, service_types: Iterable[str]
) -> Iterable[ServiceSnapshot]:
    """Yield services and peers whose type is enabled for this entry."""
    if snapshot is None:
        return []
    wanted = set(service_types)
    return [
        service
        for service in (*snapshot.services.values(), *snapshot.peers.values())
        if service_type(service) in wanted
    ]


def get_service(snapshot: ConnmanSnapshot | None, path: str) -> ServiceSnapshot | None:
    """Return the service or peer at ``path`` from the current snapshot."""
    if snapshot is None:
        return None
    return snapshot.services.get(path) or snapshot.peers.get(path)


def service_name(service: ServiceSnapshot) -> str:
    return service.display_name or service.name or service.identifier


def device_info_for_entry(entry: ConfigEntry) -> DeviceInfo:
    """Build device info for the connection manager itself."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=entry.title,
        manufacturer=MANUFACTURER,
    )


def device_info_for_service(entry: ConfigEntry, service: ServiceSnapshot) -> DeviceInfo:
    """Build device info for one service, attached to the entry device."""
    mac = service.mac_address
    return DeviceInfo(
        connections={(CONNECTION_NETWORK_MAC, format_mac(mac))} if mac else set(),
        identifiers={(DOMAIN, f"{entry.entry_id}:{service.identifier}")},
        name=service_name(service),
        manufacturer=MANUFACTURER,
        model=service_type(service),
        via_device=(DOMAIN, entry.entry_id),
    )


def unique_base(entry: ConfigEntry) -> str:
    """Return the stable unique ID base for this config entry."""
    return entry.unique_id or entry.entry_id


def build_unique_id(base: str, domain: str, identifier: str) -> str:
    """Build a stable unique ID in <base>:<domain>:<id> format."""
    return f"{base}:{domain}:{identifier}"
