"""Paper width -> rendering profile."""

from dataclasses import dataclass
from typing import Optional, Tuple

from pos_print.config import DEFAULT_WIDTH_MM


@dataclass(frozen=True)
class WidthProfile:
    """Rendering parameters derived from a nominal paper width."""

    width_mm: int
    chars_per_line: int
    compact_font: bool
    name_truncate_len: int
    column_ratios: Tuple[float, float]
    qty_decimals: int

    def truncate(self, text: str) -> str:
        return text[: self.name_truncate_len]

    def column_widths(self) -> Tuple[int, int]:
        """Character widths of the (left, right) table columns."""
        left = int(self.chars_per_line * self.column_ratios[0])
        return left, self.chars_per_line - left


_PROFILES = {
    58: WidthProfile(58, 32, True, 30, (0.6, 0.4), 2),
    76: WidthProfile(76, 42, False, 40, (0.7, 0.3), 3),
    80: WidthProfile(80, 48, False, 40, (0.7, 0.3), 3),
}


def _width_key(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        return int(value) if value.isdigit() else None
    try:
        if value == int(value):
            return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    return None


def profile(width_mm=None, override_mm: Optional[int] = None) -> WidthProfile:
    """Return the profile for a paper width.

    ``override_mm`` wins over ``width_mm``. Anything that is not one of
    58, 76 or 80 falls back to the 80mm profile.
    """
    chosen = override_mm if override_mm is not None else width_mm
    return _PROFILES.get(_width_key(chosen), _PROFILES[DEFAULT_WIDTH_MM])
