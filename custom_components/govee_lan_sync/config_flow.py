"""Config flow for Govee LAN Sync integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError

from .config import DiscoveryOptions, SyncOptions
from .const import (
    CONF_BRIGHTNESS_BOOST,
    CONF_BROADCAST,
    CONF_EXTRACTION_MODE,
    CONF_LATENCY_COMPENSATION,
    CONF_SAMPLE_RATE,
    CONF_SATURATION_BOOST,
    CONF_SMOOTHING,
    CONF_TIMEOUT,
    CONF_ZONE_COUNT,
    DOMAIN,
    EXTRACTION_MODES,
    TIMEOUT_DISCOVERY,
)
from .discovery import DiscoveryEngine
from .exceptions import InvalidOptions
from .registry import DeviceRegistry
from .transport import UdpTransport

_LOGGER = logging.getLogger(__name__)

SYNC_FORM_KEYS = (
    CONF_SAMPLE_RATE,
    CONF_EXTRACTION_MODE,
    CONF_ZONE_COUNT,
    CONF_SMOOTHING,
    CONF_LATENCY_COMPENSATION,
    CONF_BRIGHTNESS_BOOST,
    CONF_SATURATION_BOOST,
)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_TIMEOUT, default=TIMEOUT_DISCOVERY): vol.All(
            vol.Coerce(float), vol.Range(min=0.5, max=30)
        ),
        vol.Optional(CONF_BROADCAST, default=False): bool,
    }
)


async def validate_input(hass: HomeAssistant, data: dict[str, Any]) -> dict[str, Any]:
    """Validate the user input by running one scan.

    Data has the keys from STEP_USER_DATA_SCHEMA with values provided by the user.
    """
    try:
        options = DiscoveryOptions.from_dict(data)
    except InvalidOptions as err:
        raise CannotConnect from err

    transport = UdpTransport(listen_port=options.response_port)
    try:
        devices = await DiscoveryEngine(transport, DeviceRegistry()).discover(options)
    except OSError as err:
        _LOGGER.debug("Discovery socket unavailable: %s", err)
        raise CannotConnect from err
    finally:
        transport.close()

    if not devices:
        raise NoDevicesFound

    return {"title": f"Govee LAN Sync ({len(devices)} devices)", "count": len(devices)}


class GoveeLanSyncConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Govee LAN Sync."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> GoveeLanSyncOptionsFlow:
        """Return the options flow handler."""
        return GoveeLanSyncOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step - scan the network for devices."""
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                info = await validate_input(self.hass, user_input)
            except CannotConnect:
                errors["base"] = "cannot_connect"
            except NoDevicesFound:
                errors["base"] = "no_devices_found"
            except Exception:
                _LOGGER.exception("Unexpected exception")
                errors["base"] = "unknown"
            else:
                return self.async_create_entry(title=info["title"], data=user_input)

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )


class GoveeLanSyncOptionsFlow(OptionsFlow):
    """Handle sync options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the sync defaults."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                SyncOptions.from_dict(user_input)
            except InvalidOptions:
                errors["base"] = "invalid_options"
            else:
                return self.async_create_entry(data=user_input)

        current = SyncOptions.from_dict(
            {
                key: value
                for key, value in self.config_entry.options.items()
                if key in SYNC_FORM_KEYS
            }
        )
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Optional(CONF_SAMPLE_RATE, default=current.sample_rate): vol.Coerce(
                        float
                    ),
                    vol.Optional(
                        CONF_EXTRACTION_MODE, default=current.extraction_mode
                    ): vol.In(EXTRACTION_MODES),
                    vol.Optional(CONF_ZONE_COUNT, default=current.zone_count): vol.Coerce(
                        int
                    ),
                    vol.Optional(CONF_SMOOTHING, default=current.smoothing): vol.Coerce(
                        float
                    ),
                    vol.Optional(
                        CONF_LATENCY_COMPENSATION, default=current.latency_compensation
                    ): vol.Coerce(float),
                    vol.Optional(
                        CONF_BRIGHTNESS_BOOST, default=current.brightness_boost
                    ): vol.Coerce(float),
                    vol.Optional(
                        CONF_SATURATION_BOOST, default=current.saturation_boost
                    ): vol.Coerce(float),
                }
            ),
            errors=errors,
        )


class CannotConnect(HomeAssistantError):
    """Error to indicate we cannot connect."""


class NoDevicesFound(HomeAssistantError):
    """Error to indicate no device answered the scan."""
