"""
Error taxonomy for BHV2 decoding.

Every operation raises one of these instead of recording a global
"last error". Memory exhaustion is left to Python's own MemoryError.
"""


class BHV2Error(Exception):
    """Base class for all BHV2 errors."""
    pass


class BHV2IOError(BHV2Error):
    """Raised on short reads, failed seeks, or errors from the underlying file."""
    pass


class BHV2FormatError(BHV2Error):
    """Raised when the bytes do not describe a valid BHV2 value."""
    pass


class BHV2ProtocolError(BHV2Error):
    """Raised when a session operation is called in the wrong state."""
    pass


__all__ = [
    "BHV2Error",
    "BHV2IOError",
    "BHV2FormatError",
    "BHV2ProtocolError",
]
