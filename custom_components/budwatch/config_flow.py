"""Adds config flow for BudWatch earbud status."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.components.media_player import DOMAIN as MEDIA_PLAYER_DOMAIN
from homeassistant.core import callback
from homeassistant.helpers.selector import (
    EntitySelector,
    EntitySelectorConfig,
    SelectOptionDict,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
)

from .const import CONF_ADDRESS, CONF_CONNECTION_ENTITY, CONF_MEDIA_PLAYER, DOMAIN, NAME
from .coordinator import HassDeviceDirectory
from .manager import get_devices
from .protocol import model_from_product_id
from .util import clean_device_name, is_mac_address, mac_norm

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigFlowResult

    from . import BudWatchConfigEntry


def _entity_schema() -> dict:
    return {
        vol.Optional(CONF_CONNECTION_ENTITY): EntitySelector(EntitySelectorConfig()),
        vol.Optional(CONF_MEDIA_PLAYER): EntitySelector(EntitySelectorConfig(domain=MEDIA_PLAYER_DOMAIN)),
    }


class BudWatchFlowHandler(config_entries.ConfigFlow, domain=DOMAIN):
    """Config flow for budwatch. One entry per pair of earbuds."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize."""
        self._errors: dict[str, str] = {}
        self._titles: dict[str, str] = {}

    async def async_step_user(self, user_input=None) -> ConfigFlowResult:
        """
        Handle a flow initialized by the user.

        Offers the earbuds currently advertising nearby, but any address can
        be typed in, for earbuds that are asleep in their case right now.
        """
        self._errors = {}
        directory = HassDeviceDirectory(self.hass, None)

        if user_input is not None:
            address = mac_norm(user_input[CONF_ADDRESS])
            if not is_mac_address(address):
                self._errors[CONF_ADDRESS] = "invalid_address"
            else:
                await self.async_set_unique_id(address)
                self._abort_if_unique_id_configured()
                data = {k: v for k, v in user_input.items() if v}
                data[CONF_ADDRESS] = address
                return self.async_create_entry(title=self._title_for(directory, address), data=data)

        options_list = []
        for device in get_devices(directory):
            model = model_from_product_id(device.vendor_id, device.product_id)
            label = clean_device_name(device.name) or model.display_label
            self._titles[device.address] = label
            options_list.append(
                SelectOptionDict(
                    value=device.address.upper(),
                    label=f"[{device.address.upper()}] {label}",
                )
            )
        options_list.sort(key=lambda item: item["label"])

        data_schema = {
            vol.Required(CONF_ADDRESS): SelectSelector(
                SelectSelectorConfig(
                    options=options_list,
                    custom_value=True,
                    mode=SelectSelectorMode.DROPDOWN,
                )
            ),
            **_entity_schema(),
        }
        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(data_schema),
            errors=self._errors,
            description_placeholders={"name": NAME},
        )

    def _title_for(self, directory: HassDeviceDirectory, address: str) -> str:
        if device := directory.find_device(address):
            if name := clean_device_name(device.name):
                return name
        return self._titles.get(address) or address.upper()

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: BudWatchConfigEntry):
        return BudWatchOptionsFlowHandler()


class BudWatchOptionsFlowHandler(config_entries.OptionsFlow):
    """
    Options for an existing entry.

    The earbud address is the entry's identity, so only the entities we talk
    to can be changed here. Saving reloads the entry.
    """

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        """Manage the options."""
        if user_input is not None:
            # Cleared fields are stored as None so they override the original entry data.
            return self.async_create_entry(
                title=NAME,
                data={key: user_input.get(key) for key in (CONF_CONNECTION_ENTITY, CONF_MEDIA_PLAYER)},
            )

        current = {**self.config_entry.data, **self.config_entry.options}
        return self.async_show_form(
            step_id="init",
            data_schema=self.add_suggested_values_to_schema(
                vol.Schema(_entity_schema()),
                {k: current[k] for k in (CONF_CONNECTION_ENTITY, CONF_MEDIA_PLAYER) if current.get(k)},
            ),
        )
