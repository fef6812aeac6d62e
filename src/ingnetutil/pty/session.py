"""PTY session — a managed pseudo-terminal for the netutil utility."""

from __future__ import annotations

import codecs
import enum
import logging
import os
import pty
import re
import signal
import subprocess
import threading
import time
import uuid
from dataclasses import dataclass, field

from ingnetutil.errors import SessionClosedError, SessionTimeoutError
from ingnetutil.pty.buffer import RollingBuffer
from ingnetutil.text import sanitize_binary_output, strip_ansi

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = r"Netutil>\s*$"
DEFAULT_TIMEOUT = 10.0


class PTYStatus(enum.Enum):
    """Lifecycle states for a PTY session."""

    NEW = "new"
    RUNNING = "running"
    KILLING = "killing"  # Kill requested, waiting for process to die
    KILLED = "killed"  # Killed by us (SIGKILL)
    EXITED = "exited"  # Process exited on its own


@dataclass
class PTYSession:
    """A managed pseudo-terminal session.

    Wraps an interactive line-oriented process with:
    - Process group isolation (start_new_session) for safe tree-killing
    - A background reader thread feeding a rolling output buffer
    - ANSI stripping, binary sanitization and CR/LF folding
    - Prompt-delimited command/response interaction with a timeout

    The session is synchronous: ``send()`` writes a line and
    ``read_until_prompt()`` blocks until the prompt reappears. It is not
    meant to be driven from several threads at once.
    """

    command: list[str] = field(default_factory=list)
    prompt: str = DEFAULT_PROMPT
    timeout: float = DEFAULT_TIMEOUT
    cwd: str = field(default_factory=os.getcwd)
    env: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    # Internal state
    buffer: RollingBuffer = field(default_factory=RollingBuffer)
    _master_fd: int = field(default=-1, init=False)
    _proc: subprocess.Popen | None = field(default=None, init=False)
    _pid: int = field(default=0, init=False)
    _pgid: int = field(default=0, init=False)
    _reader: threading.Thread | None = field(default=None, init=False)
    _status: PTYStatus = field(default=PTYStatus.NEW, init=False)
    _read_offset: int = field(default=0, init=False)
    _prompt_re: re.Pattern = field(init=False)

    def __post_init__(self) -> None:
        self._prompt_re = re.compile(self.prompt, re.MULTILINE)

    def start(self) -> None:
        """Spawn the process in a new PTY with its own process group.

        Raises OSError if the process cannot be spawned.
        """
        master_fd, slave_fd = pty.openpty()

        env = {**os.environ, **self.env}
        env["TERM"] = "dumb"  # Minimize ANSI escape sequences

        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,  # Creates new process group
                env=env,
                cwd=self.cwd,
            )
        except OSError:
            os.close(master_fd)
            raise
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        self._master_fd = master_fd
        self._pid = self._proc.pid
        self._pgid = os.getpgid(self._pid)
        self._status = PTYStatus.RUNNING

        self._reader = threading.Thread(
            target=self._read_loop, name=f"pty-reader-{self.id}", daemon=True
        )
        self._reader.start()

        logger.info(
            "PTY session %s started: pid=%d pgid=%d cmd=%s",
            self.id,
            self._pid,
            self._pgid,
            " ".join(self.command),
        )

    def _read_loop(self) -> None:
        """Continuously read output from the PTY master fd."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                try:
                    data = os.read(self._master_fd, 4096)
                except OSError:
                    # EIO once the slave side is gone
                    break
                if not data:
                    break
                text = decoder.decode(data)
                cleaned = sanitize_binary_output(strip_ansi(text)).replace("\r", "")
                self.buffer.append_text(cleaned)
        finally:
            self.buffer.mark_closed()
            if self._status == PTYStatus.RUNNING:
                exit_code = self._proc.poll() if self._proc else None
                self._status = PTYStatus.EXITED
                logger.info("PTY session %s exited (code=%s)", self.id, exit_code)

    def send(self, data: str) -> None:
        """Write one command line to the process.

        A trailing newline is appended if missing.
        """
        if self._status != PTYStatus.RUNNING:
            raise SessionClosedError(f"PTY session {self.id} is not running")
        if not data.endswith("\n"):
            data += "\n"
        os.write(self._master_fd, data.encode())

    def read_until_prompt(self, timeout: float | None = None) -> str:
        """Return the output produced since the previous prompt.

        Blocks until the prompt pattern matches. The prompt itself is
        consumed and not included in the result.

        Raises:
            SessionTimeoutError: no prompt within ``timeout`` seconds.
            SessionClosedError: the process exited without a prompt.
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while True:
            text, end = self.buffer.read_from(self._read_offset)
            match = self._prompt_re.search(text)
            if match:
                start = end - len(text)
                self._read_offset = start + match.end()
                return text[: match.start()]

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise SessionTimeoutError(
                    f"No prompt from PTY session {self.id} within {timeout:g}s"
                )
            if not self.buffer.wait_for_data(end, timeout=remaining):
                if self.buffer.closed:
                    raise SessionClosedError(
                        f"PTY session {self.id} exited before its prompt"
                    )

    def kill(self) -> None:
        """Kill the entire process tree."""
        if self._status not in (PTYStatus.RUNNING, PTYStatus.KILLING, PTYStatus.EXITED):
            return

        if self._status != PTYStatus.EXITED:
            self._status = PTYStatus.KILLING
            try:
                os.killpg(self._pgid, signal.SIGKILL)
                logger.info("Killed PTY session %s (pgid=%d)", self.id, self._pgid)
            except ProcessLookupError:
                logger.debug("Process group already gone: %d", self._pgid)
            except OSError as e:
                logger.warning("Error killing PTY session %s: %s", self.id, e)

        # Wait for process to be reaped (avoids zombies)
        if self._proc is not None:
            try:
                self._proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                logger.warning("PTY session %s did not exit after SIGKILL", self.id)

        if self._reader is not None:
            self._reader.join(timeout=2)

        try:
            os.close(self._master_fd)
        except OSError:
            pass

        self._status = PTYStatus.KILLED

    def close(self, quit_command: str | None = "QUIT") -> None:
        """Ask the utility to quit, then tear the session down."""
        if quit_command and self._status == PTYStatus.RUNNING:
            try:
                self.send(quit_command)
            except (OSError, SessionClosedError) as e:
                logger.debug("Error sending %r to %s: %s", quit_command, self.id, e)
            self.wait_for_exit(timeout=1.0)
        self.kill()

    def wait_for_exit(self, timeout: float = 10.0) -> int | None:
        """Wait for the process to exit. Returns exit code or None on timeout."""
        if self._proc is None:
            return -1
        try:
            return self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    @property
    def alive(self) -> bool:
        return self._status == PTYStatus.RUNNING

    @property
    def status(self) -> PTYStatus:
        return self._status

    def __enter__(self) -> PTYSession:
        if self._status == PTYStatus.NEW:
            self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        """Ensure cleanup on garbage collection."""
        if self._status in (PTYStatus.RUNNING, PTYStatus.KILLING):
            self.kill()
