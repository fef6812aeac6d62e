"""CLI entry point for ingnetutil."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.table import Table

from ingnetutil.config import NetutilConfig
from ingnetutil.errors import NetutilError
from ingnetutil.netutil import WILDCARD, Netutil

app = typer.Typer(
    name="ingnetutil",
    help="Manage Ingres Net vnodes and IIGCC servers through netutil.",
    no_args_is_help=True,
)

console = Console()


@dataclass
class CLIOptions:
    user: str | None = None
    config_file: str | None = None


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@app.callback()
def main_options(
    ctx: typer.Context,
    user: str | None = typer.Option(
        None, "--user", "-u", help="Manage this user's private vnodes."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to a JSON config file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    setup_logging(verbose)
    ctx.obj = CLIOptions(user=user, config_file=config_file)


@contextmanager
def _netutil(ctx: typer.Context) -> Iterator[Netutil]:
    """Open netutil for one command, turning library errors into exit code 1."""
    opts: CLIOptions = ctx.obj or CLIOptions()
    try:
        config = NetutilConfig.load(opts.config_file)
        nu = Netutil.open(config, user_id=opts.user)
    except (NetutilError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    with nu:
        try:
            yield nu
        except NetutilError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)


@app.command()
def logins(
    ctx: typer.Context,
    vtype: str = typer.Option(WILDCARD, "--type", "-t", help="GLOBAL, PRIVATE or *."),
    name: str = typer.Option(WILDCARD, "--name", "-n", help="VNode name or pattern."),
) -> None:
    """List login vnodes."""
    with _netutil(ctx) as nu:
        nu.show_login(vtype, name)
        table = Table(title="VNode logins")
        for column in ("Type", "VNode", "Account"):
            table.add_column(column)
        for record in nu.iter_logins():
            table.add_row(record.type, record.name, record.account)
        console.print(table)


@app.command()
def connections(
    ctx: typer.Context,
    vtype: str = typer.Option(WILDCARD, "--type", "-t", help="GLOBAL, PRIVATE or *."),
    name: str = typer.Option(WILDCARD, "--name", "-n", help="VNode name or pattern."),
    address: str = typer.Option(WILDCARD, "--address", "-a", help="Host or IP."),
    protocol: str = typer.Option(WILDCARD, "--protocol", "-p", help="e.g. tcp_ip."),
    listen: str = typer.Option(WILDCARD, "--listen", "-l", help="Listen address."),
) -> None:
    """List vnode connections."""
    with _netutil(ctx) as nu:
        nu.show_connection(vtype, name, address, protocol, listen)
        table = Table(title="VNode connections")
        for column in ("Type", "VNode", "Address", "Protocol", "Listen"):
            table.add_column(column)
        for record in nu.iter_connections():
            table.add_row(
                record.type,
                record.name,
                record.address,
                record.protocol,
                record.listen_address,
            )
        console.print(table)


@app.command("create-login")
def create_login(
    ctx: typer.Context,
    vtype: str = typer.Argument(help="GLOBAL or PRIVATE."),
    name: str = typer.Argument(help="New vnode name."),
    account: str | None = typer.Option(None, "--account", help="Remote login."),
    password: str | None = typer.Option(
        None, "--password", help="Remote password."
    ),
) -> None:
    """Create a login vnode."""
    with _netutil(ctx) as nu:
        typer.echo(nu.create_login(vtype, name, account, password).strip())


@app.command("create-connection")
def create_connection(
    ctx: typer.Context,
    vtype: str = typer.Argument(help="GLOBAL or PRIVATE."),
    name: str = typer.Argument(help="VNode name."),
    address: str = typer.Argument(help="Host or IP of the remote server."),
    protocol: str = typer.Argument(help="Protocol, e.g. tcp_ip."),
    listen: str = typer.Argument(help="Remote listen address, usually II."),
) -> None:
    """Create a connection for a login vnode."""
    with _netutil(ctx) as nu:
        typer.echo(nu.create_connection(vtype, name, address, protocol, listen).strip())


@app.command("destroy-login")
def destroy_login(
    ctx: typer.Context,
    vtype: str = typer.Argument(help="GLOBAL, PRIVATE or *."),
    name: str = typer.Argument(help="VNode name or pattern."),
) -> None:
    """Destroy login vnodes and all their connections."""
    with _netutil(ctx) as nu:
        typer.echo(nu.destroy_login(vtype, name).strip())


@app.command("destroy-connection")
def destroy_connection(
    ctx: typer.Context,
    vtype: str = typer.Argument(help="GLOBAL or PRIVATE."),
    name: str = typer.Argument(help="VNode name."),
    address: str = typer.Option(WILDCARD, "--address", "-a"),
    protocol: str = typer.Option(WILDCARD, "--protocol", "-p"),
    listen: str = typer.Option(WILDCARD, "--listen", "-l"),
) -> None:
    """Destroy a connection of a login vnode."""
    with _netutil(ctx) as nu:
        typer.echo(nu.destroy_connection(vtype, name, address, protocol, listen).strip())


@app.command()
def quiesce(
    ctx: typer.Context,
    server_id: str = typer.Argument(WILDCARD, help="IIGCC server id (default: all)."),
) -> None:
    """Stop IIGCC servers once their connections close."""
    with _netutil(ctx) as nu:
        typer.echo(nu.quiesce_server(server_id).strip())


@app.command()
def stop(
    ctx: typer.Context,
    server_id: str = typer.Argument(WILDCARD, help="IIGCC server id (default: all)."),
) -> None:
    """Stop IIGCC servers immediately, breaking connections."""
    with _netutil(ctx) as nu:
        typer.echo(nu.stop_server(server_id).strip())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
