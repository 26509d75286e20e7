"""Error types raised by polfile.

I/O failures are not wrapped: they surface as the built-in ``OSError``.
"""

from __future__ import annotations


class PolicyFileError(Exception):
    """Base class for every polfile error."""


class FormatError(PolicyFileError, ValueError):
    """A policy file or gpt.ini is malformed. Parsing never returns partial results."""


class ValidationError(PolicyFileError, ValueError):
    """Caller-supplied data cannot be used for the requested operation."""
