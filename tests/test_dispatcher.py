import threading
import time

import pytest

from pos_print.commands import CommandBuffer, Text
from pos_print.dispatcher import Ack, Dispatcher
from pos_print.errors import DispatchError
from pos_print.transport import NetworkDescriptor, Transport


class RecordingTransport(Transport):
    active = 0
    peak = 0
    writes = []
    guard = threading.Lock()

    def write(self, data, timeout_ms):
        cls = RecordingTransport
        with cls.guard:
            cls.active += 1
            cls.peak = max(cls.peak, cls.active)
        time.sleep(0.02)
        with cls.guard:
            cls.writes.append((self.key, data, timeout_ms))
            cls.active -= 1


class FailingTransport(Transport):
    def write(self, data, timeout_ms):
        raise DispatchError("Failed to print to h:9100: refused", device="h:9100", diagnostic="refused")


@pytest.fixture
def recording():
    RecordingTransport.active = 0
    RecordingTransport.peak = 0
    RecordingTransport.writes = []
    return RecordingTransport


def test_send_flushes_buffer(recording):
    buf = CommandBuffer().append(Text("hola"))
    ack = Dispatcher(recording).send(buf, NetworkDescriptor("h"))
    assert buf.sealed
    key, data, timeout_ms = recording.writes[0]
    assert key == "tcp:h:9100"
    assert b"hola" in data
    assert timeout_ms == 5000
    assert ack == Ack("tcp:h:9100", len(data))


def test_explicit_timeout(recording):
    Dispatcher(recording, timeout_ms=1500).send(b"x", NetworkDescriptor("h"))
    assert recording.writes[0][2] == 1500


def test_same_device_writes_never_overlap(recording):
    dispatcher = Dispatcher(recording)
    threads = [
        threading.Thread(target=dispatcher.send, args=(bytes([i]), NetworkDescriptor("h")))
        for i in range(5)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(recording.writes) == 5
    assert recording.peak == 1


def test_lock_is_per_device():
    dispatcher = Dispatcher()
    assert dispatcher.device_lock("tcp:a:9100") is dispatcher.device_lock("tcp:a:9100")
    assert dispatcher.device_lock("tcp:a:9100") is not dispatcher.device_lock("tcp:b:9100")


def test_failure_propagates():
    with pytest.raises(DispatchError) as exc_info:
        Dispatcher(FailingTransport).send(b"x", NetworkDescriptor("h"))
    assert exc_info.value.diagnostic == "refused"
