"""Exceptions raised by the orbit-determination processing functions."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Inputs are mutually inconsistent (shapes, sizes or settings).

    Raised before any computation starts; no partial result is produced.
    """


class InternalConsistencyError(RuntimeError):
    """Processing reached a state that valid, consistent inputs cannot produce."""
