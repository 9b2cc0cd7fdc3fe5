"""Config flow for the connman integration."""

from __future__ import annotations

import logging
from typing import Any

import dbus
import voluptuous as vol

from connman_lib.dbus_proxy import DBusManager, map_dbus_error
from connman_lib.errors import (
    ConnmanError,
    ConnmanNotAvailableError,
    ConnmanTimeoutError,
)

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.selector import selector

from .const import (
    CONF_CALL_TIMEOUT,
    CONF_ROUTING_TABLES,
    CONF_SERVICE_TYPES,
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_SERVICE_TYPES,
    DOMAIN,
    SERVICE_TYPES,
)

_LOGGER = logging.getLogger(__name__)

PROBE_TIMEOUT = 10.0


def _settings_schema(defaults: dict[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(
                CONF_SERVICE_TYPES,
                default=defaults.get(CONF_SERVICE_TYPES, DEFAULT_SERVICE_TYPES),
            ): selector(
                {"select": {"options": SERVICE_TYPES, "multiple": True, "mode": "list"}}
            ),
            vol.Required(
                CONF_ROUTING_TABLES,
                default=defaults.get(CONF_ROUTING_TABLES, False),
            ): cv.boolean,
            vol.Required(
                CONF_CALL_TIMEOUT,
                default=defaults.get(CONF_CALL_TIMEOUT, DEFAULT_CALL_TIMEOUT),
            ): vol.All(vol.Coerce(float), vol.Range(min=1, max=600)),
        }
    )


class ConnmanConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for connman."""

    VERSION = 1
    MINOR_VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Return the options flow."""
        return ConnmanOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        if user_input is not None:
            if not user_input[CONF_SERVICE_TYPES]:
                errors[CONF_SERVICE_TYPES] = "no_service_types"
            else:
                try:
                    await self.hass.async_add_executor_job(_check_connman)
                except ConnmanNotAvailableError:
                    errors["base"] = "not_running"
                except ConnmanTimeoutError:
                    errors["base"] = "timeout"
                except ConnmanError:
                    errors["base"] = "cannot_connect"
            if not errors:
                return self.async_create_entry(title="ConnMan", data=dict(user_input))

        return self.async_show_form(
            step_id="user",
            data_schema=_settings_schema(user_input or {}),
            errors=errors,
        )


class ConnmanOptionsFlow(OptionsFlow):
    """Change which services are exposed and how they are routed."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the options."""
        errors: dict[str, str] = {}
        if user_input is not None:
            if not user_input[CONF_SERVICE_TYPES]:
                errors[CONF_SERVICE_TYPES] = "no_service_types"
            else:
                return self.async_create_entry(data=dict(user_input))

        current = {**self.config_entry.data, **self.config_entry.options}
        return self.async_show_form(
            step_id="init",
            data_schema=_settings_schema(user_input or current),
            errors=errors,
        )


def _check_connman() -> None:
    """Check that net.connman answers on the system bus."""
    try:
        bus = dbus.SystemBus(private=True)
    except dbus.exceptions.DBusException as exc:
        raise map_dbus_error(exc) from exc
    try:
        technologies = DBusManager(bus, timeout_s=PROBE_TIMEOUT).get_technologies()
        _LOGGER.debug("connman reports %s technologies", len(technologies))
    finally:
        bus.close()
