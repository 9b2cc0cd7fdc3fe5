"""Hub wrapper for the connman mirror lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib
import logging
from typing import Any

from connman_lib import (
    ClientConfig,
    ConnmanError,
    ConnmanManager,
    ConnmanSnapshot,
    IpCommandRoutingMutator,
    P2PRequestKind,
    Service,
    ServiceListener,
    WpsType,
)
from connman_lib.const import CONNMAN_BUS_NAME
from connman_lib.dbus_proxy import (
    DBusDispatcher,
    DBusManager,
    make_service_factory,
    make_technology_factory,
)

from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError

from .const import EVENT_P2P_REQUEST, READY_TIMEOUT

_LOGGER = logging.getLogger(__name__)


class _HubListener(ServiceListener):
    """Forward P2P requests onto the Home Assistant event bus."""

    def __init__(self, hub: ConnmanHub) -> None:
        self._hub = hub

    def on_property_changed(self, service: Service, name: str, value: Any) -> None:
        _LOGGER.debug("Service %s forwarded %s=%s", service.path, name, value)

    def on_p2p_request(
        self,
        service: Service,
        kind: P2PRequestKind,
        wps_type: WpsType | int,
        pin: str | None,
        peer_address: str | None,
    ) -> None:
        data = {
            "path": service.path,
            "name": service.name,
            "request": kind.value,
            "wps_type": int(wps_type),
            "pin": pin,
            "peer_address": peer_address,
        }
        self._hub.hass.loop.call_soon_threadsafe(self._hub.fire_p2p_request, data)


class ConnmanHub:
    """Manage the D-Bus dispatcher and the ConnmanManager it feeds."""

    def __init__(
        self,
        hass: HomeAssistant,
        *,
        service_types: list[str],
        routing_tables: bool,
        call_timeout: float,
    ) -> None:
        """Initialize the hub wrapper."""
        self.hass = hass
        self._service_types = list(service_types)
        self._config = ClientConfig(
            call_timeout_s=call_timeout,
            multiple_routing_table=routing_tables,
        )
        self._dispatcher = DBusDispatcher(logger=_LOGGER)
        self._manager: ConnmanManager | None = None
        self._dbus_manager: DBusManager | None = None
        self._name_watch: Any | None = None
        self._listener = _HubListener(self)
        self._connect_lock = asyncio.Lock()
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_attempts = 0
        self._stopping = False
        self._unavailable_logged = False
        self._callbacks: dict[Callable[[Any], None], Callable[[], None] | None] = {}

    @property
    def manager(self) -> ConnmanManager | None:
        """Return the underlying manager."""
        return self._manager

    @property
    def is_ready(self) -> bool:
        """Return if the mirror is loaded and the dispatcher is running."""
        return self._manager is not None and self._dispatcher.running

    @property
    def service_types(self) -> list[str]:
        return list(self._service_types)

    async def async_connect(self) -> None:
        """Start the dispatcher, then load the mirror."""
        self._stopping = False
        await self._async_connect()

    async def _async_connect(self) -> None:
        async with self._connect_lock:
            await self._async_teardown()
            await self.hass.async_add_executor_job(self._dispatcher.start)
            try:
                await self._async_call(self._setup_on_loop)
            except Exception:
                with contextlib.suppress(ConnmanError):
                    await self._async_call(self._teardown_on_loop)
                raise
            self._resubscribe_callbacks()
            if self._unavailable_logged:
                _LOGGER.info("Connection manager available again")
                self._unavailable_logged = False

    async def async_disconnect(self) -> None:
        """Tear down the mirror and stop the dispatcher thread."""
        self._stopping = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None
        async with self._connect_lock:
            await self._async_teardown()
            await self.hass.async_add_executor_job(self._dispatcher.stop)

    async def _async_teardown(self) -> None:
        if self._manager is None and self._dbus_manager is None:
            return
        self._clear_subscriptions()
        await self._async_call(self._teardown_on_loop)

    async def _async_call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run ``fn`` on the dispatcher thread and await its result."""
        if not self._dispatcher.running:
            raise HomeAssistantError("D-Bus dispatcher is not running.")
        future = self._dispatcher.call(fn, *args)
        async with asyncio.timeout(self._config.call_timeout_s + READY_TIMEOUT):
            return await asyncio.wrap_future(future)

    # --- dispatcher thread ---

    def _setup_on_loop(self) -> None:
        bus = self._dispatcher.bus
        timeout_s = self._config.call_timeout_s
        dbus_manager = DBusManager(bus, timeout_s=timeout_s)
        manager = ConnmanManager(
            self._config,
            proxy_factory=make_service_factory(bus, timeout_s=timeout_s),
            technology_factory=make_technology_factory(bus, timeout_s=timeout_s),
            routing=IpCommandRoutingMutator() if self._config.multiple_routing_table else None,
            logger=_LOGGER,
        )
        manager.set_listener(self._listener)
        self._dbus_manager = dbus_manager
        self._manager = manager
        manager.load(
            technologies=dbus_manager.get_technologies(),
            services=dbus_manager.get_services(),
            peers=dbus_manager.get_peers(),
        )
        dbus_manager.watch(
            on_services_changed=manager.update_services,
            on_peers_changed=manager.update_peers,
            on_technology_added=manager.add_technology,
            on_technology_removed=manager.remove_technology,
        )
        self._name_watch = bus.watch_name_owner(CONNMAN_BUS_NAME, self._handle_name_owner)
        _LOGGER.debug(
            "Loaded %s services, %s peers, %s technologies",
            len(manager.services),
            len(manager.peers),
            len(manager.technologies),
        )

    def _teardown_on_loop(self) -> None:
        if self._name_watch is not None:
            self._name_watch.remove()
            self._name_watch = None
        if self._dbus_manager is not None:
            self._dbus_manager.close()
            self._dbus_manager = None
        if self._manager is not None:
            self._manager.close()
            self._manager = None

    def _handle_name_owner(self, owner: str) -> None:
        if owner:
            return
        _LOGGER.debug("%s left the bus; scheduling reconnect", CONNMAN_BUS_NAME)
        self._log_unavailable()
        self.hass.loop.call_soon_threadsafe(self._schedule_reconnect)

    # --- snapshot and events ---

    def get_snapshot(self) -> ConnmanSnapshot | None:
        """Return the latest mirror snapshot."""
        manager = self._manager
        if manager is None:
            return None
        return manager.snapshot

    async def async_refresh(self) -> None:
        """Re-read every object from the daemon."""

        def _reload() -> None:
            manager = self._manager
            dbus_manager = self._dbus_manager
            if manager is None or dbus_manager is None:
                raise HomeAssistantError("Connection manager is not loaded.")
            manager.load(
                technologies=dbus_manager.get_technologies(),
                services=dbus_manager.get_services(),
                peers=dbus_manager.get_peers(),
            )

        await self._async_call(_reload)

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe to manager events; survives reconnects."""
        if callback not in self._callbacks:
            self._callbacks[callback] = None
        manager = self._manager
        if manager is not None:
            self._callbacks[callback] = manager.subscribe(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callable[[Any], None]) -> bool:
        if callback not in self._callbacks:
            return False
        unsubscribe = self._callbacks.pop(callback)
        if unsubscribe is not None:
            unsubscribe()
        return True

    def _resubscribe_callbacks(self) -> None:
        manager = self._manager
        if manager is None:
            return
        for cb in list(self._callbacks):
            self._callbacks[cb] = manager.subscribe(cb)

    def _clear_subscriptions(self) -> None:
        for cb, unsubscribe in list(self._callbacks.items()):
            if unsubscribe is not None:
                unsubscribe()
            self._callbacks[cb] = None

    @callback
    def fire_p2p_request(self, data: dict[str, Any]) -> None:
        _LOGGER.debug("P2P request %s from %s", data["request"], data["path"])
        self.hass.bus.async_fire(EVENT_P2P_REQUEST, data)

    # --- commands ---

    def _require_service(self, path: str) -> Service:
        manager = self._manager
        if manager is None:
            raise HomeAssistantError("Connection manager is not loaded.")
        service = manager.get_service(path)
        if service is None:
            raise HomeAssistantError(f"Unknown connman service {path}.")
        return service

    async def async_connect_service(self, path: str) -> bool:
        """Connect a service and wait for the daemon's answer."""
        loop = self.hass.loop
        done: asyncio.Future[bool] = loop.create_future()

        def _resolve(success: bool) -> None:
            if not done.done():
                done.set_result(success)

        def _on_complete(success: bool) -> None:
            loop.call_soon_threadsafe(_resolve, success)

        def _start() -> bool:
            return self._require_service(path).connect(_on_complete)

        if not await self._async_call(_start):
            return False
        try:
            async with asyncio.timeout(self._config.call_timeout_s):
                return await done
        except TimeoutError:
            _LOGGER.warning("Connect on %s did not complete in time", path)
            await self._async_call(lambda: self._require_service(path).cancel_connect())
            return False

    async def async_disconnect_service(self, path: str) -> bool:
        """Disconnect a service."""
        return await self._async_call(lambda: self._require_service(path).disconnect())

    async def async_set_auto_connect(self, path: str, value: bool) -> bool:
        """Change a service's AutoConnect flag."""
        return await self._async_call(lambda: self._require_service(path).set_auto_connect(value))

    # --- reconnect ---

    @callback
    def _schedule_reconnect(self) -> None:
        if self._stopping:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        _LOGGER.debug("Creating reconnect task")
        self._reconnect_task = self.hass.async_create_task(self._async_reconnect_loop())

    def _log_unavailable(self) -> None:
        if self._unavailable_logged:
            return
        _LOGGER.info("Connection manager unavailable")
        self._unavailable_logged = True

    async def _async_reconnect_loop(self) -> None:
        """Reload the mirror with exponential backoff until connman is back."""
        while not self._stopping:
            _LOGGER.debug("Reconnect attempt %s starting", self._reconnect_attempts + 1)
            try:
                await self._async_connect()
            except (ConnmanError, HomeAssistantError, TimeoutError) as err:
                _LOGGER.debug("Reconnect attempt failed: %s", err)
            else:
                self._reconnect_attempts = 0
                return
            self._reconnect_attempts += 1
            delay = min(300, 2**self._reconnect_attempts)
            _LOGGER.debug(
                "Reconnect attempt %s sleeping for %s seconds",
                self._reconnect_attempts,
                delay,
            )
            await asyncio.sleep(delay)
