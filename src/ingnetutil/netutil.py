"""Netutil controller — drive the Ingres netutil utility over a PTY.

netutil manages vnodes: login entries (remote account credentials) and
connection entries (address, protocol and listen address of a remote
installation), plus local control of the IIGCC communication servers.

The controller sends one command per call, waits for the netutil prompt,
collapses runs of spaces in the reply and hands the text back. ``show_*``
calls additionally keep the reply as a line buffer that ``next_*`` walks
one record at a time::

    with Netutil.open(NetutilConfig.load()) as nu:
        print(nu.show_login("global", "*"))
        while fields := nu.next_login():
            vtype, vnode, account = fields

A controller owns a single session and is not thread-safe: callers that
share one between threads must serialize access themselves.
"""

from __future__ import annotations

import enum
import logging
import os
from collections.abc import Iterator
from typing import Protocol

from ingnetutil.config import NetutilConfig
from ingnetutil.errors import (
    InvalidArgumentError,
    ProtocolSequenceError,
    SessionClosedError,
    SessionStartError,
    SessionTimeoutError,
)
from ingnetutil.model import ConnectionRecord, LoginRecord
from ingnetutil.pty.session import PTYSession
from ingnetutil.text import collapse_spaces, split_records, tokenize

logger = logging.getLogger(__name__)

WILDCARD = "*"


class VNodeType(enum.StrEnum):
    GLOBAL = "GLOBAL"
    PRIVATE = "PRIVATE"
    ANY = WILDCARD


class StreamKind(enum.StrEnum):
    LOGIN = "LOGIN"
    CONNECTION = "CONNECTION"


_CMD_MAP: dict[str, str] = {
    "show_login": "SHOW {type} LOGIN {name}",
    "show_connection": "SHOW {type} CONNECTION {name} {address} {protocol} {listen}",
    "create_login": "CREATE {type} LOGIN {name}",
    "create_login_account": "CREATE {type} LOGIN {name} {account} {password}",
    "create_connection": "CREATE {type} CONNECTION {name} {address} {protocol} {listen}",
    "destroy_login": "DESTROY {type} LOGIN {name}",
    "destroy_connection": "DESTROY {type} CONNECTION {name} {address} {protocol} {listen}",
    "quiesce": "QUIESCE {server_id}",
    "stop": "STOP {server_id}",
}


class Session(Protocol):
    """What the controller needs from an interactive process."""

    def send(self, data: str) -> None: ...

    def read_until_prompt(self, timeout: float | None = None) -> str: ...

    def close(self) -> None: ...


def _parse_type(value: str | None, *, allow_any: bool, op: str) -> VNodeType:
    raw = (value or "").strip().upper()
    if not raw and allow_any:
        return VNodeType.ANY
    try:
        vtype = VNodeType(raw)
    except ValueError:
        raise InvalidArgumentError(f"{op}(): invalid type: {value!r}") from None
    if vtype is VNodeType.ANY and not allow_any:
        raise InvalidArgumentError(f"{op}(): type must be GLOBAL or PRIVATE")
    return vtype


def _check_token(field: str, value: str, op: str) -> str:
    if any(ch.isspace() for ch in value):
        raise InvalidArgumentError(f"{op}(): {field} must not contain whitespace")
    return value


def _filter(field: str, value: str | None, op: str) -> str:
    """Upper-case a match pattern, defaulting to the wildcard."""
    value = (value or "").strip().upper()
    return _check_token(field, value, op) if value else WILDCARD


def _required(field: str, value: str | None, op: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgumentError(f"{op}(): missing parameter {field}")
    return _check_token(field, value, op)


def _optional(field: str, value: str | None, op: str) -> str:
    value = (value or "").strip()
    return _check_token(field, value, op) if value else WILDCARD


def _strip_echo(output: str, command: str) -> str:
    """Drop the terminal's echo of ``command`` from the captured output.

    Only the first matching line is the echo; later identical lines are
    part of the reply.
    """
    lines = output.split("\n")
    for i, line in enumerate(lines):
        if collapse_spaces(line).strip() == command:
            del lines[i]
            break
    return "\n".join(lines)


class Netutil:
    """Request/reply controller over one netutil session."""

    def __init__(self, session: Session, timeout: float | None = None) -> None:
        self._session = session
        self._timeout = timeout
        self._stream: list[str] = []
        self._stream_kind: StreamKind | None = None
        self._cursor: int = 0
        self._closed = False

    @classmethod
    def open(
        cls, config: NetutilConfig | None = None, user_id: str | None = None
    ) -> Netutil:
        """Start netutil and wait for its first prompt.

        ``user_id`` selects whose private vnodes are visible (user
        privileges may be necessary).

        Raises:
            ConfigurationError: II_SYSTEM is not configured.
            ExecutableNotFoundError: the utility cannot be executed.
            SessionStartError: the process failed to start or never prompted.
        """
        if config is None:
            config = NetutilConfig.load()
        command = config.command(user_id)

        session = PTYSession(
            command=command,
            prompt=config.prompt,
            timeout=config.timeout,
            cwd=os.path.dirname(command[0]),
        )
        try:
            session.start()
            banner = session.read_until_prompt()
        except (OSError, SessionTimeoutError, SessionClosedError) as e:
            session.kill()
            raise SessionStartError(f"Cannot start {' '.join(command)}: {e}") from e

        logger.debug("netutil banner: %s", banner.strip())
        return cls(session, timeout=config.timeout)

    # ------------------------------------------------------------------
    # Session plumbing
    # ------------------------------------------------------------------

    def _send(self, command: str, log_as: str | None = None) -> str:
        """Send one command and return its whitespace-normalized reply."""
        if self._closed:
            raise SessionClosedError("netutil controller is closed")
        logger.debug("netutil <- %s", log_as or command)
        self._session.send(command)
        output = self._session.read_until_prompt(self._timeout)
        return collapse_spaces(_strip_echo(output, command))

    def _load_stream(self, kind: StreamKind, text: str) -> None:
        self._stream = split_records(text)
        self._stream_kind = kind
        self._cursor = 0
        logger.debug("Loaded %d %s records", len(self._stream), kind)

    def _clear_stream(self) -> None:
        self._stream = []
        self._stream_kind = None
        self._cursor = 0

    def _next(self, kind: StreamKind, op: str) -> list[str]:
        if self._stream_kind != kind:
            raise ProtocolSequenceError(
                f"{op}(): show_{kind.lower()}() must be previously invoked"
            )
        if not self._stream:
            return []
        if self._cursor >= len(self._stream):
            # End of stream: report it once, then start over on the next call
            self._cursor = 0
            return []
        line = self._stream[self._cursor]
        self._cursor += 1
        return tokenize(line)

    # ------------------------------------------------------------------
    # Logins
    # ------------------------------------------------------------------

    def show_login(self, kind: str | None = WILDCARD, name: str | None = WILDCARD) -> str:
        """Prepare to return vnode login info and return netutil output.

        ``kind`` is GLOBAL, PRIVATE or ``*``; ``name`` is a vnode name or
        pattern. Both are case-insensitive.
        """
        op = "show_login"
        vtype = _parse_type(kind, allow_any=True, op=op)
        command = _CMD_MAP[op].format(type=vtype, name=_filter("name", name, op))
        text = self._send(command)
        self._load_stream(StreamKind.LOGIN, text)
        return text

    def next_login(self) -> list[str]:
        """Return the next login record prepared by ``show_login()``.

        The fields are ``[type, vnode, account]``. An empty list marks the
        end of the listing; the call after that starts again from the
        first record.
        """
        return self._next(StreamKind.LOGIN, "next_login")

    def iter_logins(self) -> Iterator[LoginRecord]:
        """Yield the remaining login records once, stopping at the end."""
        while fields := self.next_login():
            yield LoginRecord.from_fields(fields)

    def create_login(
        self,
        kind: str,
        name: str,
        account: str | None = None,
        password: str | None = None,
    ) -> str:
        """Create a login vnode and return netutil output.

        ``kind`` must be GLOBAL or PRIVATE. ``account`` and ``password``
        are sent together when given. Any pending ``next_*`` iteration is
        discarded.
        """
        op = "create_login"
        vtype = _parse_type(kind, allow_any=False, op=op)
        name = _required("name", name, op)

        if account or password:
            account = _required("account", account, op)
            password = _required("password", password, op)
            command = _CMD_MAP["create_login_account"].format(
                type=vtype, name=name, account=account, password=password
            )
            log_as = _CMD_MAP["create_login_account"].format(
                type=vtype, name=name, account=account, password="***"
            )
        else:
            command = _CMD_MAP[op].format(type=vtype, name=name)
            log_as = None

        text = self._send(command, log_as=log_as)
        self._clear_stream()
        return text

    def destroy_login(
        self, kind: str | None = WILDCARD, name: str | None = WILDCARD
    ) -> str:
        """Delete login vnodes (and all their connections).

        ``kind`` is GLOBAL, PRIVATE or ``*``; ``name`` accepts wildcards.
        """
        op = "destroy_login"
        vtype = _parse_type(kind, allow_any=True, op=op)
        command = _CMD_MAP[op].format(type=vtype, name=_filter("name", name, op))
        text = self._send(command)
        self._clear_stream()
        return text

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def show_connection(
        self,
        kind: str | None = WILDCARD,
        name: str | None = WILDCARD,
        address: str | None = WILDCARD,
        protocol: str | None = WILDCARD,
        listen: str | None = WILDCARD,
    ) -> str:
        """Prepare to return vnode connection info and return netutil output.

        Args:
            kind: VNode type: GLOBAL/PRIVATE/*
            name: VNode name or '*'
            address: IP or hostname of the server, or '*'
            protocol: protocol name (tcp_ip, win_tcp, ...) or '*'
            listen: remote server's listen address (generally 'II') or '*'
        """
        op = "show_connection"
        vtype = _parse_type(kind, allow_any=True, op=op)
        command = _CMD_MAP[op].format(
            type=vtype,
            name=_filter("name", name, op),
            address=_filter("address", address, op),
            protocol=_filter("protocol", protocol, op),
            listen=_filter("listen", listen, op),
        )
        text = self._send(command)
        self._load_stream(StreamKind.CONNECTION, text)
        return text

    def next_connection(self) -> list[str]:
        """Return the next connection record prepared by ``show_connection()``.

        The fields are ``[type, vnode, address, protocol, listen]``; the
        listen address may come back as more than one token. Same
        end-of-listing behaviour as ``next_login()``.
        """
        return self._next(StreamKind.CONNECTION, "next_connection")

    def iter_connections(self) -> Iterator[ConnectionRecord]:
        """Yield the remaining connection records once, stopping at the end."""
        while fields := self.next_connection():
            yield ConnectionRecord.from_fields(fields)

    def create_connection(
        self,
        kind: str,
        name: str,
        address: str,
        protocol: str,
        listen: str,
    ) -> str:
        """Create a connection for a login vnode and return netutil output."""
        op = "create_connection"
        vtype = _parse_type(kind, allow_any=False, op=op)
        command = _CMD_MAP[op].format(
            type=vtype,
            name=_required("name", name, op),
            address=_required("address", address, op),
            protocol=_required("protocol", protocol, op),
            listen=_required("listen", listen, op),
        )
        text = self._send(command)
        self._clear_stream()
        return text

    def destroy_connection(
        self,
        kind: str,
        name: str,
        address: str | None = WILDCARD,
        protocol: str | None = WILDCARD,
        listen: str | None = WILDCARD,
    ) -> str:
        """Destroy a connection of a login vnode.

        ``name`` must be a concrete vnode name; the other fields default to
        ``*`` when left empty.
        """
        op = "destroy_connection"
        vtype = _parse_type(kind, allow_any=False, op=op)
        vnode = (name or "").strip()
        if not vnode or vnode == WILDCARD:
            raise InvalidArgumentError(f"{op}(): invalid VNode name: {name!r}")
        command = _CMD_MAP[op].format(
            type=vtype,
            name=_check_token("name", vnode, op),
            address=_optional("address", address, op),
            protocol=_optional("protocol", protocol, op),
            listen=_optional("listen", listen, op),
        )
        text = self._send(command)
        self._clear_stream()
        return text

    # ------------------------------------------------------------------
    # Communication servers
    # ------------------------------------------------------------------

    def quiesce_server(self, server_id: str | None = WILDCARD) -> str:
        """Stop an IIGCC server once its connections close.

        Without ``server_id`` every IIGCC server is affected.
        """
        command = _CMD_MAP["quiesce"].format(
            server_id=_optional("server_id", server_id, "quiesce_server")
        )
        return self._send(command)

    def stop_server(self, server_id: str | None = WILDCARD) -> str:
        """Stop an IIGCC server immediately, breaking its connections.

        Without ``server_id`` every IIGCC server is affected.
        """
        command = _CMD_MAP["stop"].format(
            server_id=_optional("server_id", server_id, "stop_server")
        )
        return self._send(command)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the netutil session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._clear_stream()
        self._session.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> Netutil:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
