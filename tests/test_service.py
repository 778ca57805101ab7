from datetime import datetime

import pytest

from pos_print import spool
from pos_print.commands import CommandBuffer, DrawerPulse
from pos_print.dispatcher import Ack, Dispatcher
from pos_print.errors import ConnectivityError, DispatchError
from pos_print.models import LineItem, SaleTicket
from pos_print.roles import RoleResolver, StaticRoleMappingProvider
from pos_print.service import PrintService
from pos_print.transport import IndirectSpoolDescriptor, NetworkDescriptor, USBDescriptor, create_transport

TABLE = {"roles": {"TICKET": {"name": "POS-58", "width": 58}}}

TICKET = SaleTicket(
    ticket_number="42",
    date=datetime(2024, 3, 9, 14, 5),
    lines=(LineItem("Harina PAN 1kg", 2, 10.0),),
    subtotal=20.0,
    total=20.0,
    exchange_rate=36.5,
)


class FakeDispatcher:
    def __init__(self, fail_drawer=False, fail_ticket=False):
        self.sent = []
        self.fail_drawer = fail_drawer
        self.fail_ticket = fail_ticket

    def send(self, buffer, descriptor):
        is_drawer = any(isinstance(op, DrawerPulse) for op in buffer)
        if is_drawer and self.fail_drawer:
            raise DispatchError("drawer jammed", device=descriptor.key)
        if not is_drawer and self.fail_ticket:
            raise DispatchError("Failed to print to POS-58: offline", device=descriptor.key)
        self.sent.append((buffer, descriptor))
        return Ack(descriptor.key, 1)


class FakeProbe:
    def __init__(self, ready=True):
        self.ready = ready
        self.checked = []

    def is_ready(self, descriptor):
        self.checked.append(descriptor)
        return self.ready

    def require_ready(self, descriptor):
        if not self.is_ready(descriptor):
            raise ConnectivityError(f"Printer not ready: {descriptor.key}")


def make_service(table=TABLE, system="Windows", dispatcher=None, probe=None):
    service = PrintService(
        resolver=RoleResolver(StaticRoleMappingProvider(table)),
        dispatcher=dispatcher or FakeDispatcher(),
        probe=probe or FakeProbe(),
        system=system,
        clock=lambda: datetime(2024, 1, 1, 8, 0),
    )
    return service


def test_mapped_role_prints_on_mapped_printer_and_width():
    service = make_service()
    descriptor, prof = service.resolve("TICKET")
    assert descriptor == IndirectSpoolDescriptor("POS-58")
    assert prof.chars_per_line == 32

    result = service.print_ticket(TICKET)
    assert result.success
    assert result.ticket_number == "42"
    buffer, sent_to = service.dispatcher.sent[0]
    assert isinstance(buffer, CommandBuffer)
    assert sent_to == IndirectSpoolDescriptor("POS-58")
    service.close()


def test_unmapped_role_uses_defaults(isolated_config):
    isolated_config["printer_type"] = "NETWORK"
    isolated_config["printer_interface"] = "192.168.1.87"
    service = make_service()

    descriptor, prof = service.resolve("FISCAL")
    assert descriptor == NetworkDescriptor("192.168.1.87", 9100)
    assert prof.chars_per_line == 48

    result = service.print_ticket(TICKET, role="FISCAL")
    assert result.success
    service.close()


def test_width_override_beats_role_width():
    service = make_service()
    _, prof = service.resolve("TICKET", width_override=80)
    assert prof.chars_per_line == 48
    service.close()


def test_not_ready_aborts_before_dispatch():
    service = make_service(probe=FakeProbe(ready=False))
    result = service.print_ticket(TICKET)
    assert not result.success
    assert "not ready" in result.error
    assert service.dispatcher.sent == []
    service.close()


def test_dispatch_failure_is_reported():
    service = make_service(dispatcher=FakeDispatcher(fail_ticket=True))
    result = service.print_ticket(TICKET)
    assert not result.success
    assert "offline" in result.error
    assert result.ticket_number == "42"
    service.close()


def test_drawer_failure_does_not_fail_ticket(isolated_config):
    isolated_config["enable_cash_drawer"] = True
    isolated_config["auto_open_drawer"] = True
    service = make_service(dispatcher=FakeDispatcher(fail_drawer=True))

    result = service.print_ticket(TICKET)
    assert result.success
    assert result.drawer_job.result(timeout=5) is False
    service.close()


def test_drawer_follows_ticket_device(isolated_config):
    isolated_config["enable_cash_drawer"] = True
    isolated_config["auto_open_drawer"] = True
    service = make_service()

    result = service.print_ticket(TICKET)
    assert result.drawer_job.result(timeout=5) is True
    assert [d for _, d in service.dispatcher.sent] == [IndirectSpoolDescriptor("POS-58")] * 2
    service.close()


def test_no_drawer_job_when_disabled():
    service = make_service()
    assert service.print_ticket(TICKET).drawer_job is None
    service.close()


def test_open_drawer_requires_enabled_drawer():
    service = make_service()
    result = service.open_drawer()
    assert not result.success
    assert "disabled" in result.error
    service.close()


def test_open_drawer_on_default_printer(isolated_config):
    isolated_config["enable_cash_drawer"] = True
    service = make_service(system="Linux")
    result = service.open_drawer()
    assert result.success
    buffer, descriptor = service.dispatcher.sent[0]
    assert descriptor == USBDescriptor("")
    assert any(isinstance(op, DrawerPulse) for op in buffer)
    service.close()


def test_test_page_and_status():
    service = make_service()
    assert service.test_printer("TICKET").success
    assert service.check_status("TICKET") is True
    assert service.probe.checked[-1] == IndirectSpoolDescriptor("POS-58")
    service.close()


@pytest.mark.parametrize("role", [None, "ticket"])
def test_default_role_is_ticket(role):
    service = make_service()
    service.print_ticket(TICKET, role=role)
    assert service.dispatcher.sent[0][1] == IndirectSpoolDescriptor("POS-58")
    service.close()


def test_unwritable_temp_dir_fails_ticket_cleanly(fake_runner, monkeypatch):
    def disk_full(*args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(spool.tempfile, "mkstemp", disk_full)
    runner = fake_runner()
    service = make_service(dispatcher=Dispatcher(lambda d: create_transport(d, runner=runner)))

    result = service.print_ticket(TICKET)
    assert not result.success
    assert "Could not prepare print job for POS-58" in result.error
    assert "No space left on device" in result.error
    assert result.ticket_number == "42"
    assert runner.calls == []
    service.close()
