"""Delivers command buffers to printers, one writer per device."""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Union

from pos_print.commands import CommandBuffer
from pos_print.config import config
from pos_print.transport import TransportDescriptor, create_transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ack:
    device: str
    bytes_sent: int


class Dispatcher:
    """Sends buffers through transports built per job.

    Jobs addressed to the same device are serialised so two buffers can
    never interleave on the wire.
    """

    def __init__(self, transport_factory=create_transport, timeout_ms: Optional[int] = None):
        self.transport_factory = transport_factory
        self.timeout_ms = timeout_ms
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def device_lock(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def send(self, buffer: Union[CommandBuffer, bytes], descriptor: TransportDescriptor) -> Ack:
        """Write ``buffer`` to the device; raises DispatchError on failure."""
        transport = self.transport_factory(descriptor)
        data = buffer.flush() if isinstance(buffer, CommandBuffer) else bytes(buffer)
        timeout_ms = self.timeout_ms or config["timeout_ms"]

        with self.device_lock(transport.key):
            logger.info(f"Dispatching {len(data)} bytes to {transport.name}")
            transport.write(data, timeout_ms)

        return Ack(transport.name, len(data))
