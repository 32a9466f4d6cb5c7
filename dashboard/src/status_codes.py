"""
Decoder for the rectifier ``status_code`` field.

The rectifiers report a free-form status string that is read two ways at
once: as a hexadecimal fault bitmask and as a decimal magnitude. The bitmask
is checked first, in fixed priority order, and the first set bit wins:

    bit0 overvoltage, bit1 overcurrent, bit2 over-temperature,
    bit3 communication fault, bit4 fan failure, bit5 input power fault

If no fault bit is set the decimal value is bucketed (200-299 normal,
400-499 warning, >=500 error). Anything else is shown verbatim.

Both readings use leading-prefix integer parsing: surrounding text after the
digits is ignored, and a string with no leading digits is "not a number".
This means e.g. ``"250"`` reads as 0x250 in the bitmask view and reports a
fan failure. The telemetry encoding is inherited from the field devices and
must be preserved as is.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

_DIGITS = "0123456789abcdef"


class Severity(StrEnum):
    """Display severity tier for a decoded status."""

    UNKNOWN = "unknown"
    NORMAL = "normal"
    INFO = "info"
    WARNING = "warning"
    ALARM = "alarm"
    CRITICAL = "critical"


class StatusClassification(BaseModel):
    """Human-readable condition for a raw status code.

    Attributes:
        label: Short description of the condition.
        severity: Severity tier used for colouring.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    severity: Severity


# Priority order matters: the lowest set bit wins.
FAULT_BITS: tuple[tuple[int, str, Severity], ...] = (
    (0x01, "overvoltage", Severity.CRITICAL),
    (0x02, "overcurrent", Severity.CRITICAL),
    (0x04, "over-temperature", Severity.ALARM),
    (0x08, "communication fault", Severity.WARNING),
    (0x10, "fan failure", Severity.ALARM),
    (0x20, "input power fault", Severity.CRITICAL),
)

UNKNOWN = StatusClassification(label="unknown", severity=Severity.UNKNOWN)


def _parse_int_prefix(text: str, base: int) -> int | None:
    """Parse the leading integer of *text* in the given base.

    Leading whitespace and a single sign are accepted; base 16 also accepts
    an ``0x``/``0X`` prefix. Parsing stops at the first invalid character.

    Returns:
        The parsed integer, or None when no digit could be read.
    """
    s = text.lstrip()
    sign = 1
    if s and s[0] in "+-":
        if s[0] == "-":
            sign = -1
        s = s[1:]
    if base == 16 and s[:2].lower() == "0x":
        s = s[2:]

    valid = _DIGITS[:base]
    value = 0
    consumed = 0
    for char in s.lower():
        digit = valid.find(char)
        if digit < 0:
            break
        value = value * base + digit
        consumed += 1

    if consumed == 0:
        return None
    return sign * value


def _passthrough(raw_code: str, severity: Severity) -> StatusClassification:
    return StatusClassification(label=f"status: {raw_code}", severity=severity)


def classify(raw_code: str | None) -> StatusClassification:
    """Decode a raw status code into a condition label and severity.

    Args:
        raw_code: The ``status_code`` column value, possibly None or empty.

    Returns:
        StatusClassification: The decoded condition. Empty or missing input
        yields the ``unknown`` classification.
    """
    if not raw_code:
        return UNKNOWN

    bitmask = _parse_int_prefix(raw_code, 16)
    magnitude = _parse_int_prefix(raw_code, 10)

    if bitmask is None and magnitude is None:
        return _passthrough(raw_code, Severity.UNKNOWN)

    if bitmask is not None:
        for bit, label, severity in FAULT_BITS:
            if bitmask & bit:
                return StatusClassification(label=label, severity=severity)

    if magnitude is not None:
        if 200 <= magnitude < 300:
            return StatusClassification(label="normal operation", severity=Severity.NORMAL)
        if 400 <= magnitude < 500:
            return StatusClassification(label="warning", severity=Severity.WARNING)
        if magnitude >= 500:
            return StatusClassification(label="error", severity=Severity.CRITICAL)

    return _passthrough(raw_code, Severity.INFO)
