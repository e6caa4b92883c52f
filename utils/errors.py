# utils/errors.py
# Exceptions raised by the pattern engine and its codec boundary.

from __future__ import annotations


class InkmarkError(Exception):
    """Base class for every error inkmark raises on purpose."""


class ImageReadError(InkmarkError, OSError):
    """Input path missing, unreadable, or not a decodable image."""


class ImageWriteError(InkmarkError, OSError):
    """Output path (or its directory) could not be created or written."""


class PreconditionError(InkmarkError, ValueError):
    """A caller broke an argument contract (shapes, sizes)."""
