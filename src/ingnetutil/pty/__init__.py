"""PTY process management — the interactive session netutil runs in.

netutil is driven through a pseudo-terminal with process group isolation,
output buffering, ANSI stripping, prompt matching and cleanup on close.
"""

from ingnetutil.pty.session import PTYSession, PTYStatus
from ingnetutil.pty.buffer import RollingBuffer

__all__ = [
    "PTYSession",
    "PTYStatus",
    "RollingBuffer",
]
