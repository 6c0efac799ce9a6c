"""Exceptions for the Govee LAN Sync integration."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class GoveeSyncError(HomeAssistantError):
    """Base error for Govee LAN Sync."""


class SyncConfigurationError(GoveeSyncError):
    """Error to indicate a sync session cannot be started as configured."""


class InvalidOptions(GoveeSyncError):
    """Error to indicate options failed validation."""
