"""
Device support for ibuild.

This module provides device enumeration, device selection and deployment.
"""

from .device_prompt import DeviceResolver, choose_device, list_display_only
from .ios_deploy import Device, device_list

__all__ = [
    "Device",
    "DeviceResolver",
    "choose_device",
    "device_list",
    "list_display_only",
]
