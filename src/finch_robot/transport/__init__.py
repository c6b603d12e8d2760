"""HID transport for the Finch robot."""

from .usb_connection import DeviceInfo, USBConnection
