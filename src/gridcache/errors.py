"""Error taxonomy for the grid cache layer.

Remote sources raise these; caches and controllers catch them at their
boundary, log them, and yield "no value" to the UI.

- NotFoundError: row or cell absent remotely. Treated as "no data".
- TransportError: the remote call failed. Logged as a warning.
- ProgrammingError: misuse of the API (double start, double dispose,
  unsupported field type). Logged loudly.
"""

from __future__ import annotations


class GridCacheError(Exception):
    """Base class for all grid cache errors."""


class NotFoundError(GridCacheError):
    """Raised when a row, cell or field does not exist remotely."""


class TransportError(GridCacheError):
    """Raised when a remote fetch or save fails in transit."""


class ProgrammingError(GridCacheError):
    """Raised (or logged) when the API is used incorrectly."""


class UnsupportedFieldTypeError(ProgrammingError):
    """Raised when no cell strategy exists for a field type."""

    def __init__(self, field_type: object):
        super().__init__(f"No cell controller strategy for field type {field_type!r}")
        self.field_type = field_type
