"""segclock: network clock on a 4-digit 7-segment display"""

from .clock import SystemClock, TimeDigits, format_time
from .constants import DEFAULT_BRIGHTNESS, MAX_BRIGHTNESS, MIN_BRIGHTNESS
from .device import DeviceHandle, Outcome, open_device
from .encoding import Message, encode_digit, encode_message, encode_raw_token, encode_time
from .exceptions import (
    AlreadyInitializedError,
    CommandError,
    ConnectionError,
    DeviceError,
    DeviceNotReadyError,
    NetworkError,
    SegClockError,
    SyncTimeoutError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from .timesync import SyncCoordinator, SyncStatus

__all__ = [
    "AlreadyInitializedError",
    "CommandError",
    "ConnectionError",
    "DEFAULT_BRIGHTNESS",
    "DeviceError",
    "DeviceHandle",
    "DeviceNotReadyError",
    "MAX_BRIGHTNESS",
    "MIN_BRIGHTNESS",
    "Message",
    "NetworkError",
    "Outcome",
    "SegClockError",
    "SyncCoordinator",
    "SyncStatus",
    "SyncTimeoutError",
    "SystemClock",
    "TimeDigits",
    "TimeoutError",
    "TransportError",
    "ValidationError",
    "encode_digit",
    "encode_message",
    "encode_raw_token",
    "encode_time",
    "format_time",
    "open_device",
]
__version__ = "0.1.0"
