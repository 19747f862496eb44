"""
Exception hierarchy for the segclock display clock.

All exceptions inherit from :class:`SegClockError` so callers can catch
broadly (``except SegClockError``) or narrowly (``except SyncTimeoutError``).
"""


class SegClockError(Exception):
    """Base exception for all segclock errors."""


class TransportError(SegClockError):
    """Raised when talking to the display bridge fails."""


class ConnectionError(TransportError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the serial connection is unavailable or fails to open."""


class TimeoutError(TransportError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the display bridge does not respond within the expected window."""


class CommandError(TransportError):
    """Raised when the display bridge answers with ``ERR`` or an unexpected reply."""


class DeviceError(SegClockError):
    """Raised when the display handle is used outside its lifecycle."""


class DeviceNotReadyError(DeviceError):
    """Raised when an operation is attempted before :meth:`DeviceHandle.init`."""


class AlreadyInitializedError(DeviceError):
    """Raised when :meth:`DeviceHandle.init` is called a second time."""


class NetworkError(SegClockError):
    """Raised when the network or the time-sync service misbehaves."""


class SyncTimeoutError(NetworkError):
    """Raised when time synchronisation does not complete within its deadline."""


class ValidationError(SegClockError):
    """Raised when an argument or configuration value fails validation."""
