"""
Streaming file session.

A BHV2 file is a flat sequence of named variables:

    variable := u64(name_len) bytes(name_len) value

with no end marker other than the end of the file. BHV2File walks that
sequence with a single cursor, alternating between reading a name and
consuming (decoding, selectively decoding or skipping) its value.

STATE MACHINE:
    AT_NAME --next_name()--> AT_DATA --read/skip--> AT_NAME ... --> EXHAUSTED
    rewind() returns to AT_NAME from any open state.
    close() moves to CLOSED; nothing is valid afterwards.

Calling an operation in the wrong state raises BHV2ProtocolError.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Iterator, Optional

from bhv2.codec import (
    ByteCursor,
    ValueHeader,
    decode,
    decode_selective,
    read_header_and_skip,
    read_name,
    skip,
    wanted_field_set,
)
from bhv2.config import DEFAULT_LIMITS, DecodeLimits
from bhv2.errors import BHV2IOError, BHV2ProtocolError
from bhv2.model import NamedVariable, Value

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Position of a session in the name/value sequence."""

    AT_NAME = "at_name"
    AT_DATA = "at_data"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class BHV2File:
    """
    Sequential reader over the variables of one BHV2 file.

    Owns its file handle. Use as a context manager, or call close().
    Not safe for concurrent use from several threads.
    """

    def __init__(self, path: str, limits: DecodeLimits = DEFAULT_LIMITS):
        self.path = path
        self.limits = limits
        try:
            self._fh = open(path, "rb")
        except OSError as e:
            raise BHV2IOError(f"Failed to open {path}: {e}") from e
        try:
            self._cursor = ByteCursor(self._fh)
            self._cursor.seek(0)
        except BaseException:
            self._fh.close()
            raise
        self._size = self._cursor.size
        self.state = SessionState.AT_NAME
        logger.debug("Opened %s (%d bytes)", path, self._size)

    # -------------------------------------------------------------------------
    # Context management
    # -------------------------------------------------------------------------

    def __enter__(self) -> "BHV2File":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        fh = getattr(self, "_fh", None)
        if fh is not None and not fh.closed:
            fh.close()

    def close(self) -> None:
        """Release the file handle. Safe to call more than once."""
        if self.state is SessionState.CLOSED:
            return
        self._fh.close()
        self.state = SessionState.CLOSED
        logger.debug("Closed %s", self.path)

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def size(self) -> int:
        return self._size

    @property
    def position(self) -> int:
        return self._cursor.tell()

    # -------------------------------------------------------------------------
    # State checks
    # -------------------------------------------------------------------------

    def _require_open(self) -> None:
        if self.state is SessionState.CLOSED:
            raise BHV2ProtocolError(f"Session for {self.path} is closed")

    def _require_data(self) -> None:
        self._require_open()
        if self.state is not SessionState.AT_DATA:
            raise BHV2ProtocolError(
                f"Not positioned at variable data (state: {self.state.value})"
            )

    # -------------------------------------------------------------------------
    # Streaming API
    # -------------------------------------------------------------------------

    def next_name(self) -> Optional[str]:
        """
        Read the next variable name.

        Returns:
            The name, or None at end of file (repeated calls keep returning None)

        Raises:
            BHV2ProtocolError: If the previous variable's data was not consumed
        """
        self._require_open()
        if self.state is SessionState.EXHAUSTED:
            return None
        if self.state is SessionState.AT_DATA:
            raise BHV2ProtocolError("Variable data must be read or skipped before the next name")
        if self._cursor.tell() >= self._size:
            self.state = SessionState.EXHAUSTED
            logger.debug("Reached end of %s", self.path)
            return None
        name = read_name(self._cursor, self.limits, "Variable")
        self.state = SessionState.AT_DATA
        logger.debug("Variable %r at offset %d", name, self._cursor.tell())
        return name

    def _consume(self, reader) -> Optional[Value]:
        self._require_data()
        try:
            return reader()
        finally:
            # The cursor has moved past whatever was read, even on error.
            self.state = SessionState.AT_NAME

    def read_value(self) -> Value:
        """Fully decode the current variable's value."""
        return self._consume(lambda: decode(self._cursor, self.limits))

    def read_value_selective(self, wanted_names: Iterable[str]) -> Value:
        """
        Decode the current value, keeping only the named fields if it is a struct.

        Unwanted fields are skipped and leave holes. Non-struct values are
        decoded fully.

        Raises:
            TypeError: If wanted_names is a single string (nothing is consumed)
        """
        wanted = wanted_field_set(wanted_names)
        return self._consume(lambda: decode_selective(self._cursor, wanted, self.limits))

    def skip_value(self) -> None:
        """Skip the current variable's value without decoding it."""
        self._consume(lambda: skip(self._cursor, self.limits))

    def read_header_and_skip(self) -> ValueHeader:
        """Skip the current variable's value, returning only its kind, shape and field width."""
        return self._consume(lambda: read_header_and_skip(self._cursor, self.limits))

    def rewind(self) -> None:
        """Return to the first variable, whatever the current state."""
        self._require_open()
        self._cursor.seek(0)
        self.state = SessionState.AT_NAME
        logger.debug("Rewound %s", self.path)

    # -------------------------------------------------------------------------
    # Conveniences
    # -------------------------------------------------------------------------

    def read_next_variable(self) -> Optional[NamedVariable]:
        """Read the next name and its full value; None at end of file."""
        name = self.next_name()
        if name is None:
            return None
        return NamedVariable(name=name, value=self.read_value())

    def iter_variables(self) -> Iterator[NamedVariable]:
        """Yield every remaining variable, fully decoded."""
        while True:
            var = self.read_next_variable()
            if var is None:
                return
            yield var

    def __iter__(self) -> Iterator[NamedVariable]:
        return self.iter_variables()

    def iter_names(self) -> Iterator[str]:
        """Yield every remaining variable name, skipping all data."""
        while True:
            name = self.next_name()
            if name is None:
                return
            self.skip_value()
            yield name


def open_stream(path: str, limits: DecodeLimits = DEFAULT_LIMITS) -> BHV2File:
    """Open a BHV2 file for streaming, positioned at the first variable name."""
    return BHV2File(path, limits=limits)


__all__ = ["SessionState", "BHV2File", "open_stream"]
