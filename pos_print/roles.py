"""Document role -> physical printer lookup."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleMapping:
    device_name: str
    width_mm: Optional[int] = None


class RoleMappingProvider:
    """Supplies a read-only snapshot of the role table.

    The snapshot has the settings-file shape:
    ``{"roles": {"TICKET": {"name": "POS-80", "width": 80}}}``.
    """

    def snapshot(self) -> dict:
        raise NotImplementedError


class StaticRoleMappingProvider(RoleMappingProvider):
    """In-memory role table."""

    def __init__(self, table: Optional[dict] = None):
        self._table = table or {}

    def snapshot(self) -> dict:
        return self._table


class JsonFileRoleMappingProvider(RoleMappingProvider):
    """Reads the role table from the settings file on every lookup.

    The settings screen may rebind a role between jobs, so nothing is cached.
    """

    def __init__(self, path):
        self.path = Path(path)

    def snapshot(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading printer settings {self.path}: {e}")
            return {}


def resolve_role(role: str, table) -> Optional[RoleMapping]:
    """Look up ``role`` in a raw role table.

    Returns None when the role is absent, blank or malformed; the caller
    then falls back to its default device and width.
    """
    if not role or not isinstance(table, dict):
        return None
    roles = table.get("roles")
    if not isinstance(roles, dict):
        return None

    entry = roles.get(role.strip().upper())
    if entry is None:
        return None

    # Older settings files map the role straight to a printer name
    if isinstance(entry, str):
        name, width = entry, None
    elif isinstance(entry, dict):
        name, width = entry.get("name"), entry.get("width")
    else:
        logger.warning(f"Ignoring malformed mapping for role {role}: {entry!r}")
        return None

    if not isinstance(name, str):
        logger.warning(f"Ignoring mapping for role {role} without a printer name")
        return None
    if not name.strip():
        return None

    logger.info(f"Using mapped printer for {role}: {name.strip()}")
    return RoleMapping(name.strip(), width if isinstance(width, int) else None)


class RoleResolver:
    """Resolves roles against an injected provider's current snapshot."""

    def __init__(self, provider: RoleMappingProvider):
        self.provider = provider

    def resolve(self, role: Optional[str]) -> Optional[RoleMapping]:
        if not role:
            return None
        return resolve_role(role, self.provider.snapshot())
