"""Exception hierarchy for netutil automation."""

from __future__ import annotations


class NetutilError(Exception):
    """Base class for every error raised by ingnetutil."""


class ConfigurationError(NetutilError):
    """A required setting (usually II_SYSTEM) is missing or unusable."""


class ExecutableNotFoundError(NetutilError):
    """The resolved netutil path does not exist or is not executable."""


class SessionStartError(NetutilError):
    """The interactive session could not be established."""


class SessionClosedError(NetutilError):
    """The utility exited before emitting its prompt."""


class SessionTimeoutError(NetutilError, TimeoutError):
    """No prompt was observed within the configured timeout."""


class InvalidArgumentError(NetutilError, ValueError):
    """A vnode type, name or connection field was invalid or missing."""


class ProtocolSequenceError(NetutilError):
    """A next-record call was made without a preceding matching show."""
