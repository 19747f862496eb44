"""
Segment encoding for the 4-digit 7-segment display.

Turns digits, fixed status messages, and raw request tokens into
:data:`Frame` values, the 4-byte unit every display write operates on.
Bit 0 is segment A through bit 6 segment G; bit 7 lights the colon and is
only ever set on position 1 (between hours and minutes).

Everything here is pure and safe to share between threads.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from .constants import FRAME_SIZE
from .exceptions import ValidationError

Frame = bytes

# Canonical 7-segment patterns for 0-9
DIGIT_SEGMENTS: tuple[int, ...] = (
    0b00111111,  # 0
    0b00000110,  # 1
    0b01011011,  # 2
    0b01001111,  # 3
    0b01100110,  # 4
    0b01101101,  # 5
    0b01111101,  # 6
    0b00000111,  # 7
    0b01111111,  # 8
    0b01101111,  # 9
)

HEX_SEGMENTS: tuple[int, ...] = DIGIT_SEGMENTS + (
    0b01110111,  # A
    0b01111100,  # b
    0b00111001,  # C
    0b01011110,  # d
    0b01111001,  # E
    0b01110001,  # F
)

SEPARATOR_BIT = 0b10000000
BLANK = 0x00


class Message(Enum):
    """Fixed status frames shown instead of the time."""

    INIT = (
        0b00000110,  # i
        0b01010100,  # n
        0b00000100,  # i
        0b01111000,  # t
    )
    SYNC = (
        0b01101101,  # s
        0b01101110,  # y
        0b00110111,  # n
        0b00111001,  # c
    )


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


def make_frame(values: Iterable[int]) -> Frame:
    """Build a :data:`Frame` from exactly four byte values.

    Raises:
        ValidationError: If there are not exactly four values or one of them
            does not fit in a byte.
    """
    values = list(values)
    if len(values) != FRAME_SIZE:
        raise ValidationError(f"Frame must have exactly {FRAME_SIZE} bytes, got {len(values)}")
    try:
        return bytes(values)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Frame values must be integers 0-255, got {values!r}") from exc


def check_frame(frame: Frame) -> Frame:
    """Return *frame* as ``bytes`` if it is a valid frame, else raise."""
    if not isinstance(frame, (bytes, bytearray)) or len(frame) != FRAME_SIZE:
        raise ValidationError(f"Frame must be {FRAME_SIZE} bytes, got {frame!r}")
    return bytes(frame)


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


def encode_digit(digit: int) -> int:
    """Return the segment pattern for a decimal *digit* (0-9).

    Raises:
        ValidationError: If *digit* is not an integer in 0-9.
    """
    if isinstance(digit, bool) or not isinstance(digit, int) or not 0 <= digit <= 9:
        raise ValidationError(f"Digit must be an integer 0-9, got {digit!r}")
    return DIGIT_SEGMENTS[digit]


def encode_message(message: Message | str) -> Frame:
    """Return the frame for a status *message* (enum member or its name)."""
    if isinstance(message, str):
        try:
            message = Message[message.upper()]
        except KeyError as exc:
            raise ValidationError(
                f"Unknown message {message!r}; expected one of {[m.name for m in Message]}"
            ) from exc
    return bytes(message.value)


def encode_time(digits: Iterable[int]) -> Frame:
    """Render four time digits, lighting the colon after the hour digits."""
    patterns = [encode_digit(d) for d in digits]
    if len(patterns) != FRAME_SIZE:
        raise ValidationError(f"Time needs exactly {FRAME_SIZE} digits, got {len(patterns)}")
    patterns[1] |= SEPARATOR_BIT
    return bytes(patterns)


def encode_raw_token(token: bytes) -> Frame:
    """Render a raw request token onto the display.

    Each byte is used literally: its low nibble picks a pattern from
    :data:`HEX_SEGMENTS`, so ASCII ``"0"``-``"9"`` show as digits while other
    characters show whatever their low nibble selects.  Missing positions are
    blank and anything after the fourth byte is dropped.
    """
    patterns = [HEX_SEGMENTS[b & 0x0F] for b in token[:FRAME_SIZE]]
    patterns += [BLANK] * (FRAME_SIZE - len(patterns))
    return bytes(patterns)
