"""Data update coordinator for the connman integration."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from connman_lib import ConnmanSnapshot
from connman_lib.events import (
    P2PRequestReceived,
    ServiceAdded,
    ServiceRemoved,
    TechnologyUpdated,
)

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import DOMAIN
from .hub import ConnmanHub

_LOGGER = logging.getLogger(__name__)


class ConnmanDataUpdateCoordinator(DataUpdateCoordinator[ConnmanSnapshot | None]):
    """Push manager snapshots into Home Assistant."""

    def __init__(self, hass: HomeAssistant, hub: ConnmanHub, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        super().__init__(hass, _LOGGER, name=DOMAIN, config_entry=entry)
        self._hub = hub
        self._unsubscribe: Callable[[], None] | None = None
        self._last_version = -1

    async def async_start(self) -> None:
        """Subscribe to hub events and seed snapshot data."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = self._hub.subscribe(self._handle_event)
        self._set_snapshot(self._hub.get_snapshot())

    async def async_stop(self) -> None:
        """Stop coordinating updates."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def async_refresh_now(self) -> None:
        """Re-read everything from the daemon and update the snapshot."""
        await self._hub.async_refresh()
        self._set_snapshot(self._hub.get_snapshot())

    def _handle_event(self, event: Any) -> None:
        """Handle manager events; called on the D-Bus thread."""
        self.hass.loop.call_soon_threadsafe(self._process_event, event)

    @callback
    def _process_event(self, event: Any) -> None:
        if isinstance(event, (ServiceAdded, ServiceRemoved)):
            _LOGGER.debug("%s %s (p2p=%s)", event.kind, event.path, event.p2p)
        elif isinstance(event, TechnologyUpdated):
            _LOGGER.debug(
                "Technology %s changed: %s", event.path, ", ".join(event.changed_fields)
            )
        elif isinstance(event, P2PRequestReceived):
            _LOGGER.debug("P2P request %s on %s", event.request, event.path)
        self._set_snapshot(self._hub.get_snapshot())

    def _set_snapshot(self, snapshot: ConnmanSnapshot | None) -> None:
        """Publish the snapshot unless it is the one already published."""
        version = snapshot.version if snapshot is not None else -1
        if snapshot is not None and version == self._last_version:
            return
        self._last_version = version
        self.async_set_updated_data(snapshot)
