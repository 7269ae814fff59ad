"""CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, NoReturn

import click

from uwu.channel.channel import create_channel
from uwu.cli.client import RemoteClient
from uwu.config import load_config, load_project_config, parse_address
from uwu.errors import ChannelError, ConfigError
from uwu.log import setup_logging
from uwu.models.config import Config


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _apply_overrides(ctx: click.Context, config: Config) -> Config:
    peer = config.peer
    if ctx.obj["peer"]:
        host, port = parse_address(ctx.obj["peer"])
        peer = peer.model_copy(update={"host": host, "port": port})
    if ctx.obj["protocol"]:
        peer = peer.model_copy(update={"protocol": ctx.obj["protocol"]})
    return config.model_copy(update={"peer": peer})


def _prepare(ctx: click.Context, project_dir: Path) -> tuple[Config, RemoteClient]:
    config = load_project_config(ctx.obj["config"], project_dir)
    config = _apply_overrides(ctx, config)

    level = "debug" if ctx.obj["verbose"] else config.logging.level
    setup_logging(level, config.logging.file)

    channel = create_channel(config.peer)
    return config, RemoteClient(channel, send_retries=config.peer.send_retries)


def _one_shot(ctx: click.Context, action: Callable[[RemoteClient], None]) -> None:
    try:
        _, client = _prepare(ctx, Path.cwd())
        action(client)
    except (ChannelError, ConfigError) as e:
        _fail(str(e))

    click.echo("ok")


@click.group()
@click.option("--config", "-c", type=Path, help="Config file path")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Prints more log messages. Same as setting logging.level to debug",
)
@click.option("--peer", type=str, help="Editor listener address as HOST:PORT")
@click.option(
    "--protocol",
    type=click.Choice(["stream", "datagram"]),
    help="Wire protocol spoken by the editor listener",
)
@click.version_option(package_name="uwu")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    verbose: bool,
    peer: str | None,
    protocol: str | None,
) -> None:
    """uwu - Remote control for the Unity editor."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except ConfigError as e:
        _fail(str(e))
    ctx.obj["verbose"] = verbose
    ctx.obj["peer"] = peer
    ctx.obj["protocol"] = protocol


@cli.command()
@click.pass_context
def play(ctx: click.Context) -> None:
    """Start Play mode."""
    _one_shot(ctx, RemoteClient.play)


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop current Play mode."""
    _one_shot(ctx, RemoteClient.stop)


@cli.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Refresh all assets."""
    _one_shot(ctx, RemoteClient.refresh)


@cli.command()
@click.pass_context
def build(ctx: click.Context) -> None:
    """Rebuild all scripts. Only compatible with Unity 2019.3+."""
    _one_shot(ctx, RemoteClient.build)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check whether the editor is listening."""
    try:
        config, client = _prepare(ctx, Path.cwd())
    except ConfigError as e:
        _fail(str(e))

    peer = f"{config.peer.host}:{config.peer.port}"
    try:
        alive = client.status()
    except ChannelError as e:
        _fail(str(e))

    if alive:
        click.echo(f"Editor: alive ({peer})")
    else:
        click.echo(f"Editor: not responding ({peer})", err=True)
        sys.exit(1)


@cli.command()
@click.argument("project_dir", type=Path)
@click.option(
    "--delay",
    "-d",
    type=float,
    metavar="SECONDS",
    help="Only start a refresh after this many seconds without changes",
)
@click.pass_context
def watch(ctx: click.Context, project_dir: Path, delay: float | None) -> None:
    """Automatically refresh if anything under Assets/ changes."""
    try:
        config, client = _prepare(ctx, project_dir)
        watch_config = config.watch
        if delay is not None:
            if delay < 0:
                raise ConfigError(f"Delay must not be negative: {delay}")
            watch_config = watch_config.model_copy(update={"delay": delay})

        client.watch(project_dir, watch_config)
    except (ChannelError, ConfigError) as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Watching {project_dir} failed: {e}")
    except KeyboardInterrupt:
        pass


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
