# src/hashpaste/cli.py
"""CLI for the hashpaste server and its origin store.

Usage:
    hashpaste serve                                   # Start with defaults
    hashpaste serve --config=paste.yaml --port=8080   # Custom config
    hashpaste serve --policy=fixed --id-length=8      # Override retention/identifiers
    hashpaste show-config --format=json               # Effective configuration
    hashpaste stats --recent=10                       # Upload count and latest uploads
    hashpaste fingerprint notes.txt                   # Identifier a file would get
    hashpaste purge                                   # Reclaim expired origin rows
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import pydantic
import typer
import yaml

from hashpaste.contracts.errors import PasteError
from hashpaste.core.config import HashpasteSettings, load_settings, resolve_config

app = typer.Typer(
    name="hashpaste",
    help="hashpaste: content-addressed ephemeral paste store.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to YAML configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]

DatabaseOption = Annotated[
    str | None,
    typer.Option("--database", "-d", help="SQLite database path for the origin store."),
]


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from hashpaste import __version__

        typer.echo(f"hashpaste {__version__}")
        raise typer.Exit()


def _load(config_file: Path | None, cli_overrides: dict[str, Any] | None = None) -> HashpasteSettings:
    try:
        return load_settings(config_file, cli_overrides=cli_overrides)
    except FileNotFoundError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e
    except (pydantic.ValidationError, yaml.YAMLError, ValueError) as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e


def _database_override(database: str | None) -> dict[str, Any]:
    if database is None:
        return {}
    return {"origin": {"backend": "sqlite", "database": database}}


@app.command()
def serve(
    config_file: ConfigOption = None,
    host: Annotated[
        str | None,
        typer.Option("--host", "-h", help="Host address to bind to."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-P", help="Port to listen on.", min=1, max=65535),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Number of uvicorn workers.", min=1),
    ] = None,
    database: DatabaseOption = None,
    policy: Annotated[
        str | None,
        typer.Option("--policy", help="Retention policy: fixed or read_refresh."),
    ] = None,
    encoding: Annotated[
        str | None,
        typer.Option("--encoding", help="Identifier encoding: hex or base58."),
    ] = None,
    id_length: Annotated[
        int | None,
        typer.Option("--id-length", help="Identifier length in characters.", min=4),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Disable the edge cache."),
    ] = False,
    json_logs: Annotated[
        bool | None,
        typer.Option("--json-logs/--console-logs", help="Log format."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=_version_callback,
            is_eager=True,
            help="Show version.",
        ),
    ] = False,
) -> None:
    """Start the hashpaste HTTP server.

    Configuration precedence (highest to lowest):
    1. Command-line flags
    2. HASHPASTE_* environment variables
    3. Config file (--config)
    4. Built-in defaults

    Examples:

        hashpaste serve
        hashpaste serve --port=8080 --database=/var/lib/hashpaste/origin.db
        hashpaste serve --policy=fixed --encoding=hex --id-length=8
    """
    cli_overrides: dict[str, Any] = _database_override(database)

    server_overrides: dict[str, Any] = {}
    if host is not None:
        server_overrides["host"] = host
    if port is not None:
        server_overrides["port"] = port
    if workers is not None:
        server_overrides["workers"] = workers
    if server_overrides:
        cli_overrides["server"] = server_overrides

    if policy is not None:
        cli_overrides["retention"] = {"policy": policy}

    fingerprint_overrides: dict[str, Any] = {}
    if encoding is not None:
        fingerprint_overrides["encoding"] = encoding
    if id_length is not None:
        fingerprint_overrides["id_length"] = id_length
    if fingerprint_overrides:
        cli_overrides["fingerprint"] = fingerprint_overrides

    if no_cache:
        cli_overrides["edge_cache"] = {"enabled": False}
    if json_logs is not None:
        cli_overrides["logging"] = {"json_output": json_logs}

    settings = _load(config_file, cli_overrides)

    from hashpaste.core.logging import configure_logging

    configure_logging(json_output=settings.logging.json_output, level=settings.logging.level)

    typer.secho(
        f"Starting hashpaste on {settings.server.host}:{settings.server.port}",
        fg=typer.colors.GREEN,
    )
    if config_file:
        typer.echo(f"  Config: {config_file}")
    if settings.origin.backend == "sqlite":
        typer.echo(f"  Origin: sqlite ({settings.origin.database})")
    else:
        typer.echo("  Origin: memory (pastes are lost on restart)")
    typer.echo(f"  Edge cache: {'enabled' if settings.edge_cache.enabled else 'disabled'}")
    typer.echo(
        f"  Identifiers: {settings.fingerprint.id_length} {settings.fingerprint.encoding} chars of {settings.fingerprint.algorithm}"
    )
    typer.echo(f"  Retention: {settings.retention.policy}")
    typer.echo()

    import uvicorn

    from hashpaste.server import SETTINGS_ENV_VAR, create_app

    workers = settings.server.workers
    if workers > 1 and settings.origin.backend == "memory":
        # Each worker would hold its own private store
        typer.secho("Warning: memory origin backend forces a single worker.", fg=typer.colors.YELLOW, err=True)
        workers = 1
    if workers > 1:
        # Worker processes rebuild the app from the environment
        os.environ[SETTINGS_ENV_VAR] = settings.model_dump_json()

    uvicorn.run(
        "hashpaste.server:app_from_env" if workers > 1 else create_app(settings),
        factory=workers > 1,
        host=settings.server.host,
        port=settings.server.port,
        workers=workers,
        log_config=None,  # configure_logging already routed uvicorn through structlog
        proxy_headers=True,
    )


@app.command()
def show_config(
    config_file: ConfigOption = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: json or yaml."),
    ] = "yaml",
) -> None:
    """Show the effective configuration."""
    settings = _load(config_file)
    config_dict = resolve_config(settings)
    if output_format == "json":
        typer.echo(json.dumps(config_dict, indent=2))
    else:
        typer.echo(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))


@app.command()
def stats(
    config_file: ConfigOption = None,
    database: DatabaseOption = None,
    recent: Annotated[
        int,
        typer.Option("--recent", "-n", help="Show the N most recent uploads.", min=0),
    ] = 0,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json."),
    ] = "text",
) -> None:
    """Show the upload count and the most recent uploads from the origin store."""
    from hashpaste.core.lifecycle import PasteLifecycle

    settings = _load(config_file, _database_override(database))
    lifecycle = PasteLifecycle.from_settings(settings)
    try:
        snapshot = lifecycle.stats()
        records = lifecycle.counter.records(limit=recent) if recent else []
    except PasteError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e
    finally:
        lifecycle.close()

    if output_format == "json":
        payload = snapshot.to_dict()
        payload["recent"] = [
            {"timestamp": r.timestamp.isoformat(), "identifier": r.identifier, "label": r.label} for r in records
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Uploads: {snapshot.upload_count}")
    typer.echo(f"Identifier length: {snapshot.id_length} ({snapshot.encoding})")
    typer.echo(f"Retention: {snapshot.retention_policy}, origin TTL {snapshot.origin_ttl_seconds}s, cache TTL {snapshot.cache_ttl_seconds}s")
    if records:
        typer.echo()
        typer.secho("Recent uploads:", fg=typer.colors.GREEN)
        for record in records:
            label = f"  {record.label}" if record.label else ""
            typer.echo(f"  {record.timestamp.isoformat()}  {record.identifier}{label}")


@app.command()
def fingerprint(
    path: Annotated[
        Path,
        typer.Argument(help="File to fingerprint ('-' for stdin).", allow_dash=True),
    ],
    config_file: ConfigOption = None,
) -> None:
    """Print the identifier and full hash a file would be stored under."""
    import sys

    from hashpaste.core.fingerprint import Fingerprinter

    settings = _load(config_file)
    content = sys.stdin.buffer.read() if str(path) == "-" else path.read_bytes()
    engine = Fingerprinter(
        settings.fingerprint.algorithm,
        settings.fingerprint.encoding,
        settings.fingerprint.id_length,
    )
    full_hash, identifier = engine.identify(content)
    typer.echo(identifier)
    typer.echo(str(full_hash))


@app.command()
def purge(
    config_file: ConfigOption = None,
    database: DatabaseOption = None,
) -> None:
    """Physically delete expired entries from the SQLite origin store.

    Expired entries are already invisible to reads; this only reclaims space.
    """
    from hashpaste.storage.origin import SQLiteOriginStore

    settings = _load(config_file, _database_override(database))
    if settings.origin.backend != "sqlite":
        typer.secho("Error: purge requires the sqlite origin backend.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    store = SQLiteOriginStore(settings.origin.database)
    try:
        deleted = store.purge_expired()
    finally:
        store.close()
    typer.echo(f"Purged {deleted} expired entries.")


def main() -> None:
    """Entry point for hashpaste CLI."""
    app()


if __name__ == "__main__":
    main()
