"""Error types shared by services and controllers."""

from __future__ import annotations


class StoreUnavailable(RuntimeError):
    """The entity store could not complete a read or write."""
