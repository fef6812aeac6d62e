"""ingnetutil — scripted access to the Ingres netutil utility."""

from ingnetutil.config import NetutilConfig
from ingnetutil.errors import (
    ConfigurationError,
    ExecutableNotFoundError,
    InvalidArgumentError,
    NetutilError,
    ProtocolSequenceError,
    SessionClosedError,
    SessionStartError,
    SessionTimeoutError,
)
from ingnetutil.model import ConnectionRecord, LoginRecord
from ingnetutil.netutil import Netutil, Session, StreamKind, VNodeType

__version__ = "0.1.0"

__all__ = [
    "Netutil",
    "NetutilConfig",
    "Session",
    "StreamKind",
    "VNodeType",
    "LoginRecord",
    "ConnectionRecord",
    # Errors
    "NetutilError",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "SessionStartError",
    "SessionClosedError",
    "SessionTimeoutError",
    "InvalidArgumentError",
    "ProtocolSequenceError",
]
