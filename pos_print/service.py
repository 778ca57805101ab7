"""Print jobs: resolve -> probe -> render -> dispatch."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from pos_print.config import DEFAULT_WIDTH_MM, config
from pos_print.dispatcher import Dispatcher
from pos_print.errors import ConfigError, PrintError
from pos_print.models import SaleTicket
from pos_print.probe import ConnectivityProbe
from pos_print.profile import WidthProfile, profile
from pos_print.renderer import render_drawer_pulse, render_test_page, render_ticket
from pos_print.roles import JsonFileRoleMappingProvider, RoleResolver
from pos_print.transport import TransportDescriptor, build_descriptor

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "TICKET"


@dataclass
class PrintResult:
    success: bool
    message: str = ""
    error: str = ""
    ticket_number: str = ""
    drawer_job: Optional[Future] = None


class PrintService:
    def __init__(
        self,
        resolver: Optional[RoleResolver] = None,
        dispatcher: Optional[Dispatcher] = None,
        probe: Optional[ConnectivityProbe] = None,
        system: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.resolver = resolver or RoleResolver(JsonFileRoleMappingProvider(config["settings_file"]))
        self.dispatcher = dispatcher or Dispatcher()
        self.probe = probe or ConnectivityProbe()
        self.system = system
        self.clock = clock
        self._drawer_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="drawer")

    def close(self) -> None:
        self._drawer_pool.shutdown(wait=True)

    def default_descriptor(self) -> TransportDescriptor:
        return build_descriptor(config["printer_interface"], config["printer_type"], self.system)

    def resolve(
        self, role: Optional[str], width_override: Optional[int] = None
    ) -> Tuple[TransportDescriptor, WidthProfile]:
        """Device and paper profile for a document role."""
        mapping = self.resolver.resolve(role)
        if mapping is None:
            descriptor = self.default_descriptor()
            width = DEFAULT_WIDTH_MM
        else:
            # Mapped roles name a printer queue, so they always go over USB/spooler
            descriptor = build_descriptor(mapping.device_name, "USB", self.system)
            width = mapping.width_mm
        return descriptor, profile(width, width_override)

    def print_ticket(
        self,
        ticket: SaleTicket,
        role: Optional[str] = None,
        width_override: Optional[int] = None,
    ) -> PrintResult:
        try:
            descriptor, prof = self.resolve(role or DEFAULT_ROLE, width_override)
            self.probe.require_ready(descriptor)
            buf = render_ticket(ticket, prof, self.clock)
            self.dispatcher.send(buf, descriptor)
        except PrintError as e:
            logger.error(f"Error printing ticket {ticket.ticket_number or 'N/A'}: {e}")
            return PrintResult(False, error=str(e), ticket_number=ticket.ticket_number)

        logger.info(f"Ticket {ticket.ticket_number or 'N/A'} printed on {descriptor.key}")
        drawer_job = None
        if config["enable_cash_drawer"] and config["auto_open_drawer"]:
            drawer_job = self._drawer_pool.submit(self._pulse_quietly, descriptor)
        return PrintResult(
            True,
            message="Ticket printed",
            ticket_number=ticket.ticket_number,
            drawer_job=drawer_job,
        )

    def _pulse_quietly(self, descriptor: TransportDescriptor) -> bool:
        try:
            self.dispatcher.send(render_drawer_pulse(), descriptor)
        except Exception as e:
            # Never fail the ticket because of the drawer
            logger.error(f"Error opening cash drawer: {e}")
            return False
        return True

    def open_drawer(self) -> PrintResult:
        try:
            if not config["enable_cash_drawer"]:
                raise ConfigError("Cash drawer is disabled in configuration")
            descriptor = self.default_descriptor()
            self.probe.require_ready(descriptor)
            self.dispatcher.send(render_drawer_pulse(), descriptor)
        except PrintError as e:
            logger.error(f"Error opening cash drawer: {e}")
            return PrintResult(False, error=str(e))
        return PrintResult(True, message="Cash drawer opened")

    def test_printer(self, role: Optional[str] = None) -> PrintResult:
        try:
            descriptor, prof = self.resolve(role)
            self.probe.require_ready(descriptor)
            self.dispatcher.send(render_test_page(prof, self.clock), descriptor)
        except PrintError as e:
            logger.error(f"Printer test failed: {e}")
            return PrintResult(False, error=str(e))
        return PrintResult(True, message=f"Printer connected ({descriptor.key})")

    def check_status(self, role: Optional[str] = None) -> bool:
        descriptor, _ = self.resolve(role)
        return self.probe.is_ready(descriptor)
