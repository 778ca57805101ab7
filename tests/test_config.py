from pos_print.config import load_config


def test_load_config_from_environment(monkeypatch, isolated_config):
    monkeypatch.setenv("PRINTER_TYPE", "network")
    monkeypatch.setenv("PRINTER_INTERFACE", "192.168.1.87")
    monkeypatch.setenv("ENABLE_CASH_DRAWER", "true")
    monkeypatch.setenv("AUTO_OPEN_DRAWER", "false")
    monkeypatch.setenv("PRINTER_TIMEOUT_MS", "2500")
    monkeypatch.setenv("PRINTER_MAX_RETRIES", "0")

    cfg = load_config()
    assert cfg["printer_type"] == "NETWORK"
    assert cfg["printer_interface"] == "192.168.1.87"
    assert cfg["enable_cash_drawer"] is True
    assert cfg["auto_open_drawer"] is False
    assert cfg["timeout_ms"] == 2500
    assert cfg["max_retries"] == 1


def test_env_file(tmp_path, monkeypatch, isolated_config):
    for name in ("PRINTER_TYPE", "PRINTER_INTERFACE", "PRINTER_SETTINGS_FILE"):
        # register for restore, then clear so the .env file is used
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("PRINTER_INTERFACE=POS-80\nPRINTER_SETTINGS_FILE=/srv/roles.json\n")

    cfg = load_config(env_file)
    assert cfg["printer_type"] == "USB"
    assert cfg["printer_interface"] == "POS-80"
    assert cfg["settings_file"] == "/srv/roles.json"
