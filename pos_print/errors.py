"""Error taxonomy for print jobs."""


class PrintError(Exception):
    """Base class for every failure a print job can report."""


class ConfigError(PrintError):
    """Missing/blank device identifier or unusable configuration."""


class ConnectivityError(PrintError):
    """The device did not pass the readiness check."""


class DispatchError(PrintError):
    """The transport (or spool helper) rejected the command buffer."""

    def __init__(self, message: str, device: str = "", diagnostic: str = ""):
        super().__init__(message)
        self.device = device
        self.diagnostic = diagnostic


class ResourceCleanupWarning(UserWarning):
    """A temporary file could not be removed after a dispatch."""
