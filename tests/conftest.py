import subprocess
from datetime import datetime

import pytest

from pos_print.config import config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Fresh runtime config per test, no retries or sleeps."""
    monkeypatch.setitem(config, "printer_type", "USB")
    monkeypatch.setitem(config, "printer_interface", "")
    monkeypatch.setitem(config, "default_printer_ip", "192.168.1.100")
    monkeypatch.setitem(config, "settings_file", str(tmp_path / "printer-settings.json"))
    monkeypatch.setitem(config, "enable_cash_drawer", False)
    monkeypatch.setitem(config, "auto_open_drawer", False)
    monkeypatch.setitem(config, "timeout_ms", 5000)
    monkeypatch.setitem(config, "max_retries", 1)
    monkeypatch.setitem(config, "retry_delay", 0)
    return config


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 3, 9, 14, 5)


class FakeRunner:
    """Stands in for subprocess.run and records each invocation."""

    def __init__(self, returncode=0, stdout="", stderr="", raises=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.raises = raises
        self.calls = []
        self.files_seen = {}

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        for flag in ("-File", "-DataFile"):
            if flag in args:
                path = args[args.index(flag) + 1]
                with open(path, "rb") as f:
                    self.files_seen[path] = f.read()
        if self.raises is not None:
            raise self.raises
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_runner():
    return FakeRunner
