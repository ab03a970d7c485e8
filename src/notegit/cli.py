"""CLI entry point for notegit."""

import logging
import os
import signal
import sys
from pathlib import Path

import click

from .config import load_config, setup_config
from .exceptions import ConfigError, ConfigMissing, ExtractionError
from .exporter import export_notes
from .watcher import SyncService


def _load_or_exit():
    try:
        return load_config()
    except ConfigMissing as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)


@click.group()
@click.version_option(package_name="notegit")
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
def main(verbose):
    """Sync Apple Notes to a git repository as Markdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("repo_path", type=click.Path(file_okay=False))
def setup(repo_path):
    """Configure the git repository to sync notes into."""
    try:
        config = setup_config(repo_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)
    except OSError as e:
        click.echo(f"Could not save configuration: {e}", err=True)
        sys.exit(2)
    click.echo(f"Configuration saved to {config.config_file}.")
    click.echo("Now run `notegit start` to begin syncing.")


@main.command()
def start():
    """Watch Notes for changes and sync them to git."""
    config = _load_or_exit()
    service = SyncService(config)

    if not service.start():
        sys.exit(1)

    config.pid_file.write_text(str(os.getpid()), encoding="utf-8")

    def _handle_signal(signum, frame):
        service.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    click.echo("Watching for Notes changes... (Ctrl+C to stop)")
    try:
        while not service.wait(timeout=1.0):
            pass
    finally:
        config.pid_file.unlink(missing_ok=True)
    click.echo("Stopped watching for changes")


@main.command()
def stop():
    """Stop a running `notegit start`."""
    config = _load_or_exit()
    try:
        pid = int(config.pid_file.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        click.echo("Sync is not running")
        return

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        click.echo("Sync is not running")
        config.pid_file.unlink(missing_ok=True)
        return
    except PermissionError as e:
        click.echo(f"Cannot stop process {pid}: {e}", err=True)
        sys.exit(1)
    click.echo(f"Sent stop signal to process {pid}")


@main.command(name="export")
@click.option(
    "--dir", "output_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to export into (default: a new temporary directory)",
)
def export_cmd(output_dir):
    """Export notes to Markdown without touching the repository."""
    config = _load_or_exit()

    try:
        batch = export_notes(
            config,
            output_dir=Path(output_dir) if output_dir else None,
        )
    except ExtractionError as e:
        click.echo(f"Export failed: {e}", err=True)
        sys.exit(2)

    click.echo(f"Exported {len(batch.files)} note(s) to: {batch.root}")
    if batch.skipped:
        click.echo(f"  Skipped {len(batch.skipped)} encrypted/locked note(s)")
    if batch.failed:
        for failure in batch.failed:
            click.echo(
                f"  Failed note {failure.key} ({failure.title}): {failure.error}",
                err=True,
            )
        sys.exit(1)
