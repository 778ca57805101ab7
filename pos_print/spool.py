"""Raw printing through the Windows spooler via a PowerShell helper.

The service cannot call winspool directly, so each job writes the bytes to a
temporary file together with a small PowerShell script that P/Invokes
OpenPrinter/StartDocPrinter/WritePrinter. The script's exit code is the only
success signal. Both files are removed whatever happens.
"""

import json
import logging
import os
import subprocess
import tempfile
import warnings
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple

from pos_print.config import SPOOL_DOCUMENT_NAME
from pos_print.errors import ConfigError, DispatchError, ResourceCleanupWarning

logger = logging.getLogger(__name__)

POWERSHELL = "powershell"

PRINT_SCRIPT = r"""
param(
    [Parameter(Mandatory = $true)][string]$DataFile,
    [Parameter(Mandatory = $true)][string]$PrinterName,
    [string]$DocumentName = "Print Job"
)

$definition = @"
using System;
using System.Runtime.InteropServices;

public static class RawSpool {
    [StructLayout(LayoutKind.Sequential, CharSet = CharSet.Unicode)]
    public class DOCINFO {
        public string pDocName;
        public string pOutputFile;
        public string pDataType;
    }

    [DllImport("winspool.drv", EntryPoint = "OpenPrinterW", SetLastError = true, CharSet = CharSet.Unicode)]
    static extern bool OpenPrinter(string name, out IntPtr handle, IntPtr defaults);

    [DllImport("winspool.drv", SetLastError = true)]
    static extern bool ClosePrinter(IntPtr handle);

    [DllImport("winspool.drv", EntryPoint = "StartDocPrinterW", SetLastError = true, CharSet = CharSet.Unicode)]
    static extern int StartDocPrinter(IntPtr handle, int level, [In] DOCINFO info);

    [DllImport("winspool.drv", SetLastError = true)]
    static extern bool EndDocPrinter(IntPtr handle);

    [DllImport("winspool.drv", SetLastError = true)]
    static extern bool StartPagePrinter(IntPtr handle);

    [DllImport("winspool.drv", SetLastError = true)]
    static extern bool EndPagePrinter(IntPtr handle);

    [DllImport("winspool.drv", SetLastError = true)]
    static extern bool WritePrinter(IntPtr handle, byte[] bytes, int count, out int written);

    public static int Send(string printer, string document, byte[] bytes) {
        IntPtr handle;
        if (!OpenPrinter(printer, out handle, IntPtr.Zero)) {
            return Marshal.GetLastWin32Error();
        }
        int error = 0;
        try {
            DOCINFO info = new DOCINFO();
            info.pDocName = document;
            info.pDataType = "RAW";
            if (StartDocPrinter(handle, 1, info) == 0) {
                return Marshal.GetLastWin32Error();
            }
            if (StartPagePrinter(handle)) {
                int written;
                if (!WritePrinter(handle, bytes, bytes.Length, out written) || written != bytes.Length) {
                    error = Marshal.GetLastWin32Error();
                    if (error == 0) { error = -1; }
                }
                EndPagePrinter(handle);
            } else {
                error = Marshal.GetLastWin32Error();
            }
            EndDocPrinter(handle);
        } finally {
            ClosePrinter(handle);
        }
        return error;
    }
}
"@

try {
    Add-Type -TypeDefinition $definition -ErrorAction Stop
    $bytes = [System.IO.File]::ReadAllBytes($DataFile)
    $code = [RawSpool]::Send($PrinterName, $DocumentName, $bytes)
} catch {
    [Console]::Error.WriteLine($_.Exception.Message)
    exit 2
}

if ($code -ne 0) {
    [Console]::Error.WriteLine("Spooler error $code while printing to '$PrinterName'")
    exit 1
}
exit 0
"""

Runner = Callable[..., subprocess.CompletedProcess]


def _remove(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        message = f"Could not remove temp file {path}: {e}"
        logger.warning(message)
        warnings.warn(message, ResourceCleanupWarning, stacklevel=2)


@contextmanager
def spool_files(data: bytes, script: str = PRINT_SCRIPT) -> Iterator[Tuple[str, str]]:
    """Create the (data file, control script) pair and always remove both."""
    created = []
    try:
        fd, data_path = tempfile.mkstemp(prefix="print_job_", suffix=".bin")
        created.append(data_path)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        fd, script_path = tempfile.mkstemp(prefix="print_script_", suffix=".ps1")
        created.append(script_path)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(script)

        yield data_path, script_path
    finally:
        for path in created:
            _remove(path)


def _diagnostic(result: subprocess.CompletedProcess) -> str:
    return (result.stderr or result.stdout or "").strip()


def _run_helper(args, printer_name: str, timeout: float, runner: Runner) -> subprocess.CompletedProcess:
    try:
        return runner(args, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise DispatchError(
            f"Print helper timed out after {timeout:.0f}s for {printer_name}",
            device=printer_name,
        ) from e
    except OSError as e:
        raise DispatchError(
            f"Could not start print helper for {printer_name}: {e}",
            device=printer_name,
            diagnostic=str(e),
        ) from e


def spool_raw(
    printer_name: str,
    data: bytes,
    timeout: float,
    runner: Runner = subprocess.run,
    document_name: str = SPOOL_DOCUMENT_NAME,
) -> None:
    """Send raw bytes to a Windows printer through the PowerShell helper."""
    if not printer_name or not printer_name.strip():
        raise ConfigError("No printer name configured for the Windows spooler")

    try:
        with spool_files(data) as (data_path, script_path):
            result = _run_helper(
                [
                    POWERSHELL,
                    "-NoProfile",
                    "-NonInteractive",
                    "-ExecutionPolicy",
                    "Bypass",
                    "-File",
                    script_path,
                    "-DataFile",
                    data_path,
                    "-PrinterName",
                    printer_name,
                    "-DocumentName",
                    document_name,
                ],
                printer_name,
                timeout,
                runner,
            )
    except OSError as e:
        # mkstemp or the temp writes failed (TEMP full or not writable)
        raise DispatchError(
            f"Could not prepare print job for {printer_name}: {e}",
            device=printer_name,
            diagnostic=str(e),
        ) from e

    if result.returncode != 0:
        diagnostic = _diagnostic(result)
        logger.error(f"PowerShell raw print error ({result.returncode}): {diagnostic}")
        raise DispatchError(
            f"Failed to print to {printer_name}: {diagnostic or f'exit code {result.returncode}'}",
            device=printer_name,
            diagnostic=diagnostic,
        )
    logger.info(f"Sent {len(data)} bytes to {printer_name} via spooler")


def _field(info: dict, *names):
    lowered = {str(k).lower(): v for k, v in info.items()}
    for name in names:
        if name.lower() in lowered:
            return lowered[name.lower()]
    return None


def is_status_normal(status) -> bool:
    if isinstance(status, bool):
        return False
    if isinstance(status, int):
        return status == 0
    if isinstance(status, str):
        return status.strip().lower() in ("normal", "0")
    return False


def interpret_status(info: Optional[dict]) -> bool:
    """Availability from a Get-Printer record.

    A printer flagged WorkOffline is unavailable unless its status is
    explicitly Normal; some drivers never clear the offline flag.
    """
    if not info:
        return False
    offline = _field(info, "WorkOffline") is True
    status = _field(info, "PrinterStatus", "statusCode", "statusText")
    return not offline or is_status_normal(status)


def printer_status(printer_name: str, timeout: float, runner: Runner = subprocess.run) -> bool:
    """Ask the spooler whether ``printer_name`` exists and is usable."""
    if not printer_name or not printer_name.strip():
        raise ConfigError("No printer name configured for the Windows spooler")

    quoted = printer_name.replace("'", "''")
    command = (
        f"Get-Printer -Name '{quoted}' | "
        "Select-Object Name, PrinterStatus, WorkOffline | ConvertTo-Json"
    )
    try:
        result = runner(
            [POWERSHELL, "-NoProfile", "-NonInteractive", "-Command", command],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.error(f"Printer '{printer_name}' status query failed: {e}")
        return False

    if result.returncode != 0:
        logger.error(f"Printer '{printer_name}' not found or inaccessible: {_diagnostic(result)}")
        return False

    output = (result.stdout or "").strip()
    if not output:
        logger.error(f"Printer '{printer_name}' not found")
        return False

    try:
        info = json.loads(output)
    except ValueError as e:
        logger.warning(f"Could not parse status for '{printer_name}', assuming available: {e}")
        return True

    if isinstance(info, list):
        info = info[0] if info else None
    if info is not None and not isinstance(info, dict):
        logger.warning(f"Unexpected status payload for '{printer_name}', assuming available")
        return True
    return interpret_status(info)
