"""Device readiness gate run before every dispatch."""

import logging

from pos_print.config import config
from pos_print.errors import ConnectivityError
from pos_print.transport import TransportDescriptor, create_transport

logger = logging.getLogger(__name__)


class ConnectivityProbe:
    def __init__(self, transport_factory=create_transport):
        self.transport_factory = transport_factory

    def is_ready(self, descriptor: TransportDescriptor) -> bool:
        transport = self.transport_factory(descriptor)
        ready = transport.is_ready(config["timeout_ms"])
        logger.debug(f"Probe {transport.name}: {'ready' if ready else 'not ready'}")
        return ready

    def require_ready(self, descriptor: TransportDescriptor) -> None:
        """Raise ConnectivityError unless the device reports ready."""
        if not self.is_ready(descriptor):
            raise ConnectivityError(f"Printer not ready: {descriptor.key}")
