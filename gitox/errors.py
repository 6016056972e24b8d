"""Exceptions raised by gitox.

Filesystem failures are not wrapped: they surface as the ``OSError`` raised
by the underlying call.
"""


class GitoxError(Exception):
    """Base exception for gitox."""


class ObjectNotFound(GitoxError):
    """Raised when an object is not present in the object store."""


class TypeMismatch(GitoxError):
    """Raised when a stored object is not of the expected type."""


class MalformedObject(GitoxError):
    """Raised when an object's content does not follow its grammar."""


class UnknownName(GitoxError):
    """Raised when a name is neither a reference nor a raw object id."""


class SymbolicRefCycle(GitoxError):
    """Raised when following a symbolic reference leads back to itself."""
