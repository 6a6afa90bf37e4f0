"""Length units and conversions to and from the canonical point unit.

All model geometry is stored in points (1/72 inch). Codecs convert at their
boundary using :func:`to_canonical` and :func:`from_canonical`:

- ODP stores lengths as ODF strings, normally centimetres (``"2.5400cm"``).
- PPTX stores integer English Metric Units (EMU), 12 700 per point.
- PDF pages are sized in big points, identical to the canonical unit.

``EPSILON`` documents the worst-case error, in points, of a single
``to_canonical(from_canonical(value, unit), unit)`` round trip. Repeating the
round trip does not accumulate error beyond that bound: the EMU conversion
rounds to whole EMUs, which is idempotent, and the float conversions stay
within a few ULPs.
"""

from __future__ import annotations

import re
from enum import Enum

POINTS_PER_INCH = 72.0
CM_PER_INCH = 2.54
EMU_PER_POINT = 12_700
# python-pptx reports slide dimensions in EMU; 914,400 per inch.
EMU_PER_INCH = 914_400


class Unit(str, Enum):
    """Supported length units."""

    PT = "pt"
    BP = "bp"
    CM = "cm"
    MM = "mm"
    IN = "in"
    EMU = "emu"


_POINTS_PER_UNIT: dict[Unit, float] = {
    Unit.PT: 1.0,
    Unit.BP: 1.0,
    Unit.CM: POINTS_PER_INCH / CM_PER_INCH,
    Unit.MM: POINTS_PER_INCH / (CM_PER_INCH * 10),
    Unit.IN: POINTS_PER_INCH,
    Unit.EMU: 1.0 / EMU_PER_POINT,
}

EPSILON: dict[Unit, float] = {
    Unit.PT: 0.0,
    Unit.BP: 0.0,
    Unit.CM: 1e-9,
    Unit.MM: 1e-9,
    Unit.IN: 1e-9,
    Unit.EMU: 0.5 / EMU_PER_POINT,
}

# 4 decimal centimetres as written by the ODP writer
ODP_LENGTH_EPSILON = 0.5e-4 * _POINTS_PER_UNIT[Unit.CM]

ERR_UNKNOWN_UNIT = "Unknown length unit: {unit}"
ERR_INVALID_LENGTH = "Invalid length value: {value!r}"

# ODF lengths: optional sign, digits, optional unit suffix
_LENGTH_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([a-zA-Z%]*)\s*$")

_SUFFIX_POINTS: dict[str, float] = {
    "cm": _POINTS_PER_UNIT[Unit.CM],
    "mm": _POINTS_PER_UNIT[Unit.MM],
    "in": POINTS_PER_INCH,
    "inch": POINTS_PER_INCH,
    "pt": 1.0,
    "pc": 12.0,
    # CSS pixel, 96 per inch
    "px": POINTS_PER_INCH / 96.0,
}


def _coerce_unit(unit: Unit | str) -> Unit:
    if isinstance(unit, Unit):
        return unit
    try:
        return Unit(str(unit).strip().lower())
    except ValueError as exc:
        raise ValueError(ERR_UNKNOWN_UNIT.format(unit=unit)) from exc


def to_canonical(value: float, unit: Unit | str) -> float:
    """Return ``value`` expressed in ``unit`` as points."""
    return float(value) * _POINTS_PER_UNIT[_coerce_unit(unit)]


def from_canonical(length: float, unit: Unit | str) -> float | int:
    """Return the point ``length`` expressed in ``unit``.

    EMU results are rounded to integers because the PresentationML schema only
    allows whole EMUs.
    """
    target = _coerce_unit(unit)
    value = float(length) / _POINTS_PER_UNIT[target]
    if target is Unit.EMU:
        return int(round(value))
    return value


def parse_length(text: str, *, default_unit: str = "cm") -> float:
    """Parse an ODF length string such as ``"10.5cm"`` into points.

    Values without a suffix are interpreted in ``default_unit``. A
    ``ValueError`` is raised for malformed input or unknown suffixes.
    """
    match = _LENGTH_RE.match(text or "")
    if match is None:
        raise ValueError(ERR_INVALID_LENGTH.format(value=text))
    number, suffix = match.groups()
    factor = _SUFFIX_POINTS.get((suffix or default_unit).lower())
    if factor is None:
        raise ValueError(ERR_UNKNOWN_UNIT.format(unit=suffix))
    return float(number) * factor


def format_length(length: float, unit: Unit | str = Unit.CM, *, digits: int = 4) -> str:
    """Format the point ``length`` as an ODF length string in ``unit``."""
    target = _coerce_unit(unit)
    value = from_canonical(length, target)
    text = f"{value:.{digits}f}"
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    suffix = "pt" if target is Unit.BP else target.value
    return f"{text}{suffix}"


def format_points(value: float) -> str:
    """Format a point size compactly, e.g. ``24`` or ``10.5``."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text or '0'}pt"


__all__ = [
    "EMU_PER_INCH",
    "EMU_PER_POINT",
    "EPSILON",
    "ODP_LENGTH_EPSILON",
    "Unit",
    "format_length",
    "format_points",
    "from_canonical",
    "parse_length",
    "to_canonical",
]
