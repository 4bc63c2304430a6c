"""Command-line interface for connwatch."""

import sys
from pathlib import Path
from typing import Optional

import click
import psutil

from connwatch import __version__
from connwatch.core.bridge import ConnectivityBridge
from connwatch.core.config import Config
from connwatch.core.errors import ConfigError, FatalNotifierError, RegistrationError
from connwatch.core.logger import setup_logging
from connwatch.core.status import Status
from connwatch.notifiers import BACKENDS, InterfaceNotifier, SimulatedNotifier, create_notifier


def _parse_replay(ctx, param, value):
    if not value:
        return []
    try:
        return [Status.parse(item) for item in value.split(",") if item.strip()]
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def main(ctx, config: Optional[Path], verbose: bool):
    """connwatch - Observe network connectivity changes."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config(config)
    level = "debug" if verbose else ctx.obj["config"].get("log_level", "warning")
    setup_logging(level, ctx.obj["config"].get("log_file"))


@main.command()
@click.option("--count", "-n", type=click.IntRange(min=1), help="Exit after N status changes")
@click.option("--backend", type=click.Choice(BACKENDS), help="Override the configured notifier backend")
@click.option(
    "--replay",
    callback=_parse_replay,
    help="Comma-separated events to fire, e.g. available,lost (simulated backend only)",
)
@click.pass_context
def watch(ctx, count, backend, replay):
    """Print connectivity status changes as they happen."""
    config: Config = ctx.obj["config"]

    try:
        notifier = create_notifier(config, backend)
        buffer_size = config.get_buffer_size()
    except ConfigError as e:
        click.echo(f"✗ Invalid configuration: {e}", err=True)
        sys.exit(1)

    if replay and not isinstance(notifier, SimulatedNotifier):
        click.echo("✗ --replay requires the simulated backend", err=True)
        sys.exit(1)

    click.echo(f"Network Status {Status.default()}")
    with ConnectivityBridge(notifier, buffer_size=buffer_size) as bridge:
        try:
            with bridge.observe() as stream:
                if replay:
                    notifier.replay(replay)
                    # Ends the stream once the replayed values are drained
                    bridge.close()

                for seen, status in enumerate(stream, start=1):
                    click.echo(f"Network Status {status}")
                    if count and seen >= count:
                        break
        except RegistrationError as e:
            click.echo(f"✗ Cannot observe network: {e}", err=True)
            sys.exit(1)
        except FatalNotifierError as e:
            click.echo(f"✗ Network monitoring stopped: {e}", err=True)
            sys.exit(1)
        except KeyboardInterrupt:
            click.echo("Stopped")


@main.command()
@click.pass_context
def status(ctx):
    """Show the current connectivity status of local interfaces."""
    config: Config = ctx.obj["config"]

    try:
        notifier = InterfaceNotifier(
            poll_interval=config.get_poll_interval(),
            ignored_keywords=config.get_ignored_interfaces(),
        )
    except ConfigError as e:
        click.echo(f"✗ Invalid configuration: {e}", err=True)
        sys.exit(1)

    try:
        current = notifier.snapshot()
    except (psutil.Error, OSError) as e:
        click.echo(f"✗ Cannot read network interfaces: {e}", err=True)
        sys.exit(1)

    click.echo(f"Network Status {current}")


@main.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show current configuration."""
    config: Config = ctx.obj["config"]
    click.echo(f"Configuration file: {config.config_path}")
    click.echo(f"Log level: {config.get('log_level')}")
    click.echo(f"Log file: {config.get('log_file') or '-'}")
    click.echo(f"Backend: {config.get('notifier.backend')}")
    click.echo(f"Poll interval: {config.get('notifier.poll_interval')}s")
    click.echo(f"Ignored interfaces: {', '.join(config.get('notifier.ignored_interfaces', []))}")
    click.echo(f"Stream buffer size: {config.get('stream.buffer_size')}")


@config.command("import")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_import(ctx, file, file_format):
    """Import configuration from file."""
    config: Config = ctx.obj["config"]

    if config.import_config(file, file_format):
        click.echo(f"✓ Configuration imported from {file}")
    else:
        click.echo("✗ Failed to import configuration", err=True)
        sys.exit(1)


@config.command("export")
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_export(ctx, file, file_format):
    """Export configuration to file."""
    config: Config = ctx.obj["config"]

    if config.export_config(file, file_format):
        click.echo(f"✓ Configuration exported to {file}")
    else:
        click.echo("✗ Failed to export configuration", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
