"""Exceptions raised by the memory engines.

Every engine operation validates its inputs before touching any state,
so a raised exception always means *nothing changed*.  The controller
catches ``MemoryModelError`` and turns it into a failed command result;
the engines themselves never log or retry.

Hierarchy::

    MemoryModelError
    ├── ValidationError (also a ValueError)
    │   ├── InvalidConfigurationError
    │   ├── InvalidAddressError
    │   └── InvalidIndexError
    ├── AllocationFailedError
    └── AlreadyFreeError
"""


class MemoryModelError(Exception):
    """Base class for every rejected engine operation."""


class ValidationError(MemoryModelError, ValueError):
    """Raise when an input is out of range or malformed."""


class InvalidConfigurationError(ValidationError):
    """Raise when a frame count or memory size is not acceptable."""


class InvalidAddressError(ValidationError):
    """Raise when a page number or offset is outside the address space."""


class InvalidIndexError(ValidationError):
    """Raise when a partition index does not name an existing block."""


class AllocationFailedError(MemoryModelError):
    """Raise when no free partition can satisfy a request."""


class AlreadyFreeError(MemoryModelError):
    """Raise when freeing a partition that is already free."""
