"""CLI interface for PyDriveMirror."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .api import DriveClient
from .auth import CredentialStore
from .config import load_config
from .exceptions import AuthError, ConfigurationError, MirrorError
from .mirror import MirrorEngine, MirrorStats
from .output import OutputFormatter

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Send diagnostics to stderr, at DEBUG level when verbose."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_path=verbose,
                rich_tracebacks=verbose,
            )
        ],
        force=True,
    )
    if verbose:
        logging.getLogger("pydrivemirror").setLevel(logging.DEBUG)


def summary_items(stats: MirrorStats, out: OutputFormatter) -> list[tuple[str, str]]:
    data = stats.snapshot()
    return [
        ("Remote root", str(data["remote_root_id"])),
        ("Folders created", str(data["folders_created"])),
        ("Folders failed", str(data["folders_failed"])),
        ("Files queued", str(data["files_queued"])),
        ("Uploaded", str(data["uploads_succeeded"])),
        ("Upload failures", str(data["uploads_failed"])),
        ("Skipped (too large)", str(data["files_oversize"])),
        ("Skipped (unreadable)", str(data["entries_skipped"])),
        ("Data uploaded", out.format_size(data["bytes_uploaded"])),
        ("Token refreshes", str(data["token_refreshes"])),
        ("Duration", f"{data['duration']:.1f}s"),
    ]


@click.command()
@click.option(
    "--root",
    "-r",
    "root_directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Local directory to mirror (default: ~/Documents)",
)
@click.option(
    "--folder-name",
    "-n",
    "root_folder_name",
    help="Name of the remote folder created for this run",
)
@click.option(
    "--workers",
    "-w",
    "worker_count",
    type=click.IntRange(min=1),
    help="Number of concurrent upload workers (default: 8)",
)
@click.option(
    "--max-file-size",
    help="Skip files larger than this, e.g. 500M or 1G (default: 1G)",
)
@click.option(
    "--retries",
    "max_retries",
    type=click.IntRange(min=0),
    help="Extra attempts for failed folder creations and uploads (default: 0)",
)
@click.option("--timeout", type=float, help="HTTP timeout in seconds")
@click.option("--client-id", help="OAuth client ID")
@click.option("--client-secret", help="OAuth client secret")
@click.option("--refresh-token", help="OAuth refresh token")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output the summary in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pydrivemirror")
@click.pass_context
def main(
    ctx: Any,
    root_directory: Optional[Path],
    root_folder_name: Optional[str],
    worker_count: Optional[int],
    max_file_size: Optional[str],
    max_retries: Optional[int],
    timeout: Optional[float],
    client_id: Optional[str],
    client_secret: Optional[str],
    refresh_token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyDriveMirror - Mirror a local directory tree into Google Drive.

    Every run creates a new remote folder and uploads the whole tree into
    it; nothing is merged with earlier runs.

    Credentials are read from PYDRIVEMIRROR_CLIENT_ID,
    PYDRIVEMIRROR_CLIENT_SECRET and PYDRIVEMIRROR_REFRESH_TOKEN, a .env
    file or ~/.config/pydrivemirror/config.
    """
    setup_logging(verbose)
    out = OutputFormatter(json_output=json, quiet=quiet)

    try:
        config = load_config(
            root_directory=root_directory,
            root_folder_name=root_folder_name,
            worker_count=worker_count,
            max_file_size=max_file_size,
            max_retries=max_retries,
            timeout=timeout,
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
        )
    except ConfigurationError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)

    out.info(
        f"Mirroring {config.root_directory} to '{config.root_folder_name}' "
        f"with {config.worker_count} workers..."
    )

    with DriveClient(config, CredentialStore()) as client:
        engine = MirrorEngine(config, client)
        try:
            stats = engine.run()
        except KeyboardInterrupt:
            out.warning("\nMirror cancelled by user")
            ctx.exit(130)  # Standard exit code for SIGINT
        except ConfigurationError as e:
            out.error(f"Configuration error: {e}")
            ctx.exit(1)
        except AuthError as e:
            out.error(f"Authentication failed: {e}")
            ctx.exit(1)
        except MirrorError as e:
            out.error(f"Could not create remote root folder: {e}")
            ctx.exit(1)

    if out.json_output:
        out.output_json(stats.snapshot())
    else:
        out.print("")
        out.success("Mirror complete!")
        out.print_summary("Mirror Summary", summary_items(stats, out))


if __name__ == "__main__":
    main()
