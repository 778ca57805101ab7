"""Configuration defaults and global state."""

import os

from dotenv import load_dotenv

# Printer defaults
DEFAULT_PRINTER_TYPE = "USB"
DEFAULT_PRINTER_DEVICE = "/dev/usb/lp0"  # Linux default
DEFAULT_PRINTER_IP = "192.168.1.100"
NETWORK_PORT = 9100
DEFAULT_WIDTH_MM = 80
DRAWER_PIN = 2

# Role table written by the settings screen
DEFAULT_SETTINGS_FILE = "printer-settings.json"

# Connection settings
TIMEOUT_MS = 5000
SPOOL_GRACE_SECONDS = 10  # PowerShell startup + Add-Type compile
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds

# Receipt text
DEFAULT_COMPANY_NAME = "MANGOPOS"
FOOTER_LINES = ("Gracias por su compra!", "MangoPOS System")
SPOOL_DOCUMENT_NAME = "MangoPOS Print Job"

# Runtime configuration (populated by load_config and the CLI)
config = {
    "printer_type": DEFAULT_PRINTER_TYPE,
    "printer_interface": "",
    "default_printer_ip": DEFAULT_PRINTER_IP,
    "settings_file": DEFAULT_SETTINGS_FILE,
    "enable_cash_drawer": False,
    "auto_open_drawer": False,
    "timeout_ms": TIMEOUT_MS,
    "max_retries": MAX_RETRIES,
    "retry_delay": RETRY_DELAY,
}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() == "true"


def load_config(env_file=None) -> dict:
    """Overlay environment (and .env) values onto the runtime config."""
    load_dotenv(env_file)

    config["printer_type"] = os.getenv("PRINTER_TYPE", DEFAULT_PRINTER_TYPE).upper()
    config["printer_interface"] = os.getenv("PRINTER_INTERFACE", "")
    config["default_printer_ip"] = os.getenv("DEFAULT_PRINTER_IP", DEFAULT_PRINTER_IP)
    config["settings_file"] = os.getenv("PRINTER_SETTINGS_FILE", DEFAULT_SETTINGS_FILE)
    config["enable_cash_drawer"] = _env_flag("ENABLE_CASH_DRAWER")
    config["auto_open_drawer"] = _env_flag("AUTO_OPEN_DRAWER")
    config["timeout_ms"] = int(os.getenv("PRINTER_TIMEOUT_MS", TIMEOUT_MS))
    config["max_retries"] = max(1, int(os.getenv("PRINTER_MAX_RETRIES", MAX_RETRIES)))
    config["retry_delay"] = float(os.getenv("PRINTER_RETRY_DELAY", RETRY_DELAY))
    return config
