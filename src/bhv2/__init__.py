"""
BHV2 Reader Package

Streaming decoder for BHV2 files: MATLAB-style values (numeric arrays,
strings, struct arrays, cell arrays) serialized as a flat sequence of
named variables.

LAYERING:
---------
    dtypes     -> closed element-kind registry
    model      -> in-memory value tree
    codec      -> decode / skip / selective decode of one value
    session    -> sequential cursor over a file's variables

This package knows NOTHING about trials, filters or reports.
Those are interpretations layered on top of the values it produces.
"""

from .errors import BHV2Error, BHV2FormatError, BHV2IOError, BHV2ProtocolError
from .session import BHV2File, SessionState, open_stream

__version__ = "0.1.0"

__all__ = [
    "BHV2Error",
    "BHV2FormatError",
    "BHV2IOError",
    "BHV2ProtocolError",
    "BHV2File",
    "SessionState",
    "open_stream",
]
