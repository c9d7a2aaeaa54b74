"""
Hardware Module - Scanner Transport Integration

Components:
- FprintdDevice: DeviceProxy for an fprintd scanner on the D-Bus system bus
"""

from .fprintd_bus import (
    FprintdDevice,
    BusUnavailableError,
    connect_system_bus,
    split_bus_error,
    DBUS_AVAILABLE,
)

__all__ = [
    'FprintdDevice',
    'BusUnavailableError',
    'connect_system_bus',
    'split_bus_error',
    'DBUS_AVAILABLE',
]
