"""Typed views over tokenized netutil records."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoginRecord:
    """One vnode login line: ``<type> <name> <account>``."""

    type: str
    name: str
    account: str

    @classmethod
    def from_fields(cls, fields: list[str]) -> LoginRecord:
        padded = list(fields[:3]) + [""] * (3 - len(fields[:3]))
        return cls(type=padded[0], name=padded[1], account=padded[2])


@dataclass(frozen=True)
class ConnectionRecord:
    """One vnode connection line.

    Malformed output sometimes splits the listen address over several
    tokens; everything after the protocol is joined back together.
    """

    type: str
    name: str
    address: str
    protocol: str
    listen_address: str

    @classmethod
    def from_fields(cls, fields: list[str]) -> ConnectionRecord:
        head = list(fields[:4]) + [""] * (4 - len(fields[:4]))
        return cls(
            type=head[0],
            name=head[1],
            address=head[2],
            protocol=head[3],
            listen_address=" ".join(fields[4:]),
        )
