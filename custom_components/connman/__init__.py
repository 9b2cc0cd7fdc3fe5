"""Set up the connman integration."""

from __future__ import annotations

import contextlib
import logging
import sys
from pathlib import Path

_VENDOR_PATH = Path(__file__).resolve().parent / "vendor" / "connman"
if _VENDOR_PATH.exists() and str(_VENDOR_PATH) not in sys.path:
    sys.path.insert(0, str(_VENDOR_PATH))

from connman_lib.errors import ConnmanError

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError

from .const import (
    CONF_CALL_TIMEOUT,
    CONF_ROUTING_TABLES,
    CONF_SERVICE_TYPES,
    DATA_COORDINATOR,
    DATA_HUB,
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_SERVICE_TYPES,
    DOMAIN,
)
from .coordinator import ConnmanDataUpdateCoordinator
from .hub import ConnmanHub

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.SENSOR,
    Platform.SWITCH,
]


def entry_option(entry: ConfigEntry, key: str, default: object) -> object:
    """Return an option, falling back to the value stored at creation."""
    if key in entry.options:
        return entry.options[key]
    return entry.data.get(key, default)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up connman from a config entry."""
    hub = ConnmanHub(
        hass,
        service_types=list(entry_option(entry, CONF_SERVICE_TYPES, DEFAULT_SERVICE_TYPES)),
        routing_tables=bool(entry_option(entry, CONF_ROUTING_TABLES, False)),
        call_timeout=float(entry_option(entry, CONF_CALL_TIMEOUT, DEFAULT_CALL_TIMEOUT)),
    )
    try:
        await hub.async_connect()
    except (ConnmanError, HomeAssistantError, TimeoutError) as err:
        _LOGGER.exception("Failed to load the connection manager")
        with contextlib.suppress(ConnmanError, HomeAssistantError):
            await hub.async_disconnect()
        raise ConfigEntryNotReady(
            "The connection manager is not reachable on the system bus"
        ) from err

    coordinator = ConnmanDataUpdateCoordinator(hass, hub, entry)
    await coordinator.async_start()
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        DATA_HUB: hub,
        DATA_COORDINATOR: coordinator,
    }
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a connman config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if data is not None:
        coordinator: ConnmanDataUpdateCoordinator | None = data.get(DATA_COORDINATOR)
        hub: ConnmanHub | None = data.get(DATA_HUB)
        if coordinator is not None:
            await coordinator.async_stop()
        if hub is not None:
            await hub.async_disconnect()
    return unload_ok


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)
