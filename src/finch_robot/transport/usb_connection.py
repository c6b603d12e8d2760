"""USB HID connection to the Finch robot.

Supports both ``hidapi`` (preferred) and ``pyusb`` backends.
The robot exposes a single HID interface; reports are 8 bytes on the wire,
preceded on output by a zero report ID, which makes up the 9-byte frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import DeviceNotFound
from ..protocol.framing import FRAME_SIZE

logger = logging.getLogger(__name__)

VENDOR_ID = 0x2354
PRODUCT_ID = 0x1111
HID_INTERFACE = 0
READ_TIMEOUT_MS = 1000


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""


class USBConnection:
    """Manages the USB HID connection to the Finch.

    Usage::

        conn = USBConnection()
        conn.open()
        conn.write(frame)
        response = conn.read(FRAME_SIZE, timeout_ms=1000)
        conn.close()
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._device = None
        self._backend: str = ""
        self._connected = False
        self._ep_in = None
        self._ep_out = None
        self._device_info = DeviceInfo(vendor_id=vendor_id, product_id=product_id)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def open(self) -> DeviceInfo:
        """Open a connection to the robot, trying hidapi first, then pyusb.

        Returns:
            DeviceInfo with USB descriptor information.

        Raises:
            DeviceNotFound: If the device cannot be found or opened.
        """
        try:
            return self._open_hidapi()
        except Exception as e:
            logger.debug("hidapi backend failed: %s, trying pyusb", e)

        try:
            return self._open_pyusb()
        except Exception as e:
            raise DeviceNotFound(
                f"Could not connect to Finch "
                f"({self._vendor_id:#06x}:{self._product_id:#06x}). "
                f"Ensure the robot is plugged in and you have permissions. "
                f"Last error: {e}"
            ) from e

    def _open_hidapi(self) -> DeviceInfo:
        """Open using the hidapi library."""
        import hid

        device = hid.device()
        device.open(self._vendor_id, self._product_id)
        try:
            device.set_nonblocking(False)
            info = DeviceInfo(
                vendor_id=self._vendor_id,
                product_id=self._product_id,
                manufacturer=device.get_manufacturer_string() or "",
                product=device.get_product_string() or "",
            )
        except Exception:
            device.close()
            raise

        self._device = device
        self._backend = "hidapi"
        self._connected = True
        self._device_info = info

        logger.info(
            "Connected via hidapi: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def _open_pyusb(self) -> DeviceInfo:
        """Open using pyusb + libusb."""
        import usb.core
        import usb.util

        dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if dev is None:
            raise DeviceNotFound("Device not found via pyusb")

        # Detach kernel driver if needed
        if dev.is_kernel_driver_active(HID_INTERFACE):
            dev.detach_kernel_driver(HID_INTERFACE)

        usb.util.claim_interface(dev, HID_INTERFACE)

        intf = dev.get_active_configuration()[(HID_INTERFACE, 0)]
        ep_in = usb.util.find_descriptor(
            intf,
            custom_match=lambda ep: usb.util.endpoint_direction(ep.bEndpointAddress)
            == usb.util.ENDPOINT_IN,
        )
        ep_out = usb.util.find_descriptor(
            intf,
            custom_match=lambda ep: usb.util.endpoint_direction(ep.bEndpointAddress)
            == usb.util.ENDPOINT_OUT,
        )
        if ep_in is None or ep_out is None:
            usb.util.release_interface(dev, HID_INTERFACE)
            usb.util.dispose_resources(dev)
            raise DeviceNotFound(
                f"HID interface {HID_INTERFACE} is missing an "
                f"{'IN' if ep_in is None else 'OUT'} interrupt endpoint"
            )

        self._ep_in = ep_in
        self._ep_out = ep_out
        self._device = dev
        self._backend = "pyusb"
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=usb.util.get_string(dev, dev.iManufacturer) or "",
            product=usb.util.get_string(dev, dev.iProduct) or "",
        )

        logger.info(
            "Connected via pyusb: %s %s",
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def close(self) -> None:
        """Close the USB connection."""
        if not self._connected:
            return

        try:
            if self._backend == "hidapi":
                self._device.close()
            elif self._backend == "pyusb":
                import usb.util
                usb.util.release_interface(self._device, HID_INTERFACE)
                usb.util.dispose_resources(self._device)
        except Exception as e:
            logger.warning("Error closing device: %s", e)
        finally:
            self._device = None
            self._ep_in = None
            self._ep_out = None
            self._connected = False
            logger.info("Disconnected")

    def write(self, data: bytes | bytearray) -> int:
        """Write a 9-byte frame to the device.

        Args:
            data: A 9-byte frame whose first byte is the report ID.

        Returns:
            Number of bytes written. Zero means the device accepted nothing
            and the caller may retry.

        Raises:
            ConnectionError: If not connected.
            IOError: If the write fails.
        """
        if not self._connected:
            raise ConnectionError("Not connected to device")

        if len(data) != FRAME_SIZE:
            raise ValueError(f"Frame must be {FRAME_SIZE} bytes, got {len(data)}")

        if self._backend == "hidapi":
            written = self._device.write(bytes(data))
            if written < 0:
                raise IOError(f"HID write failed: {self._device.error()}")
            return written
        elif self._backend == "pyusb":
            # Interrupt transfers carry no report ID byte.
            written = self._ep_out.write(bytes(data[1:]), timeout=READ_TIMEOUT_MS)
            return written + 1 if written else 0
        else:
            raise RuntimeError(f"Unknown backend: {self._backend}")

    def read(self, size: int = FRAME_SIZE, timeout_ms: int = READ_TIMEOUT_MS) -> bytes:
        """Read one HID report from the device.

        Args:
            size: Maximum number of bytes to read.
            timeout_ms: Read timeout in milliseconds.

        Returns:
            The report bytes, or ``b""`` if the read timed out.

        Raises:
            ConnectionError: If not connected.
            IOError: If the transport reports an error.
        """
        if not self._connected:
            raise ConnectionError("Not connected to device")

        if self._backend == "hidapi":
            data = self._device.read(size, timeout_ms)
            return bytes(data) if data else b""
        elif self._backend == "pyusb":
            import usb.core
            try:
                data = self._ep_in.read(size, timeout=timeout_ms)
            except usb.core.USBTimeoutError:
                logger.debug("Read timed out after %d ms", timeout_ms)
                return b""
            return bytes(data)
        else:
            raise RuntimeError(f"Unknown backend: {self._backend}")
