"""Transport descriptors and the printer connections behind them."""

import logging
import platform
import re
import subprocess
import time
from dataclasses import dataclass
from functools import wraps
from typing import Optional, Union

from escpos.printer import LP, File, Network, Usb

from pos_print import spool
from pos_print.config import (
    DEFAULT_PRINTER_DEVICE,
    NETWORK_PORT,
    SPOOL_GRACE_SECONDS,
    config,
)
from pos_print.errors import ConfigError, DispatchError

logger = logging.getLogger(__name__)

AUTO_DETECT = ""
PRINTER_PREFIX = "printer:"


@dataclass(frozen=True)
class USBDescriptor:
    logical_name: str

    @property
    def key(self) -> str:
        return f"usb:{self.logical_name or DEFAULT_PRINTER_DEVICE}"


@dataclass(frozen=True)
class NetworkDescriptor:
    host: str
    port: int = NETWORK_PORT

    @property
    def key(self) -> str:
        return f"tcp:{self.host}:{self.port}"


@dataclass(frozen=True)
class IndirectSpoolDescriptor:
    display_name: str

    @property
    def key(self) -> str:
        return f"spool:{self.display_name}"


TransportDescriptor = Union[USBDescriptor, NetworkDescriptor, IndirectSpoolDescriptor]


def has_direct_port_access(system: Optional[str] = None) -> bool:
    """Windows has no raw device node for spooled USB printers."""
    return (system or platform.system()) != "Windows"


def strip_prefix(identifier: str) -> str:
    name = (identifier or "").strip()
    if name.lower().startswith(PRINTER_PREFIX):
        name = name[len(PRINTER_PREFIX):].strip()
    return name


def build_descriptor(
    identifier: Optional[str],
    connection_kind: str = "USB",
    system: Optional[str] = None,
) -> TransportDescriptor:
    """Classify a device identifier into a transport descriptor."""
    kind = (connection_kind or "USB").strip().upper()

    if kind == "NETWORK":
        host = (identifier or "").strip() or config["default_printer_ip"]
        return NetworkDescriptor(host, NETWORK_PORT)

    if kind != "USB":
        raise ConfigError(f"Unknown printer connection type: {connection_kind}")

    name = strip_prefix(identifier)
    if not has_direct_port_access(system):
        return IndirectSpoolDescriptor(name)
    return USBDescriptor(name or AUTO_DETECT)


def with_reconnect(func):
    """Decorator to retry a device write, reopening the connection each time."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        attempts = max(1, int(config.get("max_retries", 1)))
        last_error = None

        for attempt in range(attempts):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                last_error = e
                error_msg = str(e) or "(no message)"
                logger.warning(
                    f"Write to {self.name} failed (attempt {attempt + 1}/{attempts}): "
                    f"[{type(e).__name__}] {error_msg}"
                )
                if attempt < attempts - 1:
                    time.sleep(config.get("retry_delay", 0))

        raise DispatchError(
            f"Failed to print to {self.name}: {last_error}",
            device=self.name,
            diagnostic=str(last_error),
        ) from last_error

    return wrapper


class Transport:
    """A connection that accepts one raw ESC/POS buffer per write."""

    def __init__(self, descriptor: TransportDescriptor):
        self.descriptor = descriptor

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def name(self) -> str:
        return self.key

    def write(self, data: bytes, timeout_ms: int) -> None:
        raise NotImplementedError

    def is_ready(self, timeout_ms: int) -> bool:
        # No cheap liveness check for raw sockets and device files
        return True


class EscposTransport(Transport):
    """Writes through a python-escpos printer object opened per job."""

    def open_device(self, timeout_ms: int):
        raise NotImplementedError

    @with_reconnect
    def write(self, data: bytes, timeout_ms: int) -> None:
        device = self.open_device(timeout_ms)
        device.open()
        try:
            device._raw(data)
        finally:
            device.close()
        logger.info(f"Sent {len(data)} bytes to {self.name}")


class USBTransport(EscposTransport):
    @property
    def name(self) -> str:
        return self.descriptor.logical_name or DEFAULT_PRINTER_DEVICE

    def open_device(self, timeout_ms: int):
        device = self.descriptor.logical_name

        # USB by vendor:product ID, e.g. USB:0x04b8:0x0202[:out_ep:in_ep] (hex)
        if device.upper().startswith("USB:"):
            parts = device.split(":")
            vendor_id = int(parts[1], 16)
            product_id = int(parts[2], 16)
            if len(parts) >= 5:
                return Usb(
                    vendor_id,
                    product_id,
                    timeout=timeout_ms,
                    out_ep=int(parts[3], 16),
                    in_ep=int(parts[4], 16),
                )
            return Usb(vendor_id, product_id, timeout=timeout_ms)

        # Device file (/dev/usb/lp0, COM3) or auto-detect on the default node
        if device == AUTO_DETECT or device.startswith("/") or re.match(r"^COM\d+$", device, re.I):
            return File(device or DEFAULT_PRINTER_DEVICE)

        # Anything else is a queue name on the local spooler
        return LP(device)


class NetworkTransport(EscposTransport):
    @property
    def name(self) -> str:
        return f"{self.descriptor.host}:{self.descriptor.port}"

    def open_device(self, timeout_ms: int):
        return Network(self.descriptor.host, self.descriptor.port, timeout=timeout_ms / 1000)


class IndirectSpoolTransport(Transport):
    """Windows spooler reached through the PowerShell helper."""

    def __init__(self, descriptor: IndirectSpoolDescriptor, runner=subprocess.run):
        super().__init__(descriptor)
        self.runner = runner

    @property
    def name(self) -> str:
        return self.descriptor.display_name

    def write(self, data: bytes, timeout_ms: int) -> None:
        timeout = timeout_ms / 1000 + SPOOL_GRACE_SECONDS
        spool.spool_raw(self.name, data, timeout, runner=self.runner)

    def is_ready(self, timeout_ms: int) -> bool:
        timeout = timeout_ms / 1000 + SPOOL_GRACE_SECONDS
        return spool.printer_status(self.name, timeout, runner=self.runner)


def create_transport(descriptor: TransportDescriptor, runner=subprocess.run) -> Transport:
    """Pick the transport class for a descriptor once, at job start."""
    if isinstance(descriptor, NetworkDescriptor):
        return NetworkTransport(descriptor)
    if isinstance(descriptor, IndirectSpoolDescriptor):
        return IndirectSpoolTransport(descriptor, runner=runner)
    if isinstance(descriptor, USBDescriptor):
        return USBTransport(descriptor)
    raise ConfigError(f"Unsupported transport descriptor: {descriptor!r}")
