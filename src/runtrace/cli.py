# src/runtrace/cli.py
"""runtrace Command Line Interface.

Entry point for the runtrace CLI tool.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from runtrace import __version__
from runtrace.contracts.results import PipelineResult, PipelineStatus
from runtrace.core.config import RuntraceSettings, load_settings

__all__ = [
    "app",
]

app = typer.Typer(
    name="runtrace",
    help="runtrace: export CI workflow runs as traces and correlated logs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"runtrace version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # Existence is checked in _load_dotenv for a better message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """runtrace: export CI workflow runs as traces and correlated logs."""
    from runtrace.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _build_overrides(
    *,
    repository: str | None,
    run_id: int | None,
    github_token: str | None,
    github_api_url: str | None,
    otlp_endpoint: str | None,
    otlp_headers: str | None,
    console_only: bool,
    loki_endpoint: str | None,
    loki_headers: str | None,
    service_name: str | None,
    max_workers: int | None,
) -> dict[str, Any]:
    """Nest CLI values the way RuntraceSettings expects. None means 'not given'."""
    return {
        "github": {
            "repository": repository,
            "run_id": run_id,
            "token": github_token,
            "api_url": github_api_url,
        },
        "otlp": {
            "endpoint": otlp_endpoint,
            "headers": otlp_headers,
            "console_only": True if console_only else None,
        },
        "loki": {
            "endpoint": loki_endpoint,
            "headers": loki_headers,
        },
        "service_name": service_name or None,
        "concurrency": {"max_workers": max_workers},
    }


def _write_github_output(trace_id: str) -> None:
    """Expose the trace id as a step output when running inside GitHub Actions."""
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"traceId={trace_id}\n")


def _report_result(result: PipelineResult) -> None:
    if result.trace_id is not None:
        typer.echo(result.trace_id)
        _write_github_output(result.trace_id)

    if result.status == PipelineStatus.SUCCEEDED:
        return

    typer.echo(f"Pipeline {result.status.value}:", err=True)
    for error in result.errors:
        typer.echo(f"  - {type(error).__name__}: {error}", err=True)


@app.command()
def export(
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    repository: str | None = typer.Option(
        None,
        "--repository",
        "-r",
        envvar="GITHUB_REPOSITORY",
        help="Repository as owner/name.",
    ),
    run_id: int | None = typer.Option(
        None,
        "--run-id",
        envvar="GITHUB_RUN_ID",
        help="Workflow run id to export.",
    ),
    github_token: str | None = typer.Option(
        None,
        "--github-token",
        envvar="GITHUB_TOKEN",
        help="GitHub API token.",
        show_default=False,
    ),
    github_api_url: str | None = typer.Option(
        None,
        "--github-api-url",
        envvar="GITHUB_API_URL",
        help="GitHub REST API base URL.",
    ),
    otlp_endpoint: str | None = typer.Option(
        None,
        "--otlp-endpoint",
        help="OTLP/HTTP traces endpoint.",
    ),
    otlp_headers: str | None = typer.Option(
        None,
        "--otlp-headers",
        help="OTLP headers as 'key: value, key: value'.",
        show_default=False,
    ),
    console_only: bool = typer.Option(
        False,
        "--console-only",
        envvar="OTEL_CONSOLE_ONLY",
        help="Print spans to the console instead of exporting them.",
    ),
    loki_endpoint: str | None = typer.Option(
        None,
        "--loki-endpoint",
        help="Loki push endpoint.",
    ),
    loki_headers: str | None = typer.Option(
        None,
        "--loki-headers",
        help="Loki headers as 'key: value, key: value'.",
        show_default=False,
    ),
    service_name: str | None = typer.Option(
        None,
        "--service-name",
        envvar="OTEL_SERVICE_NAME",
        help="Override the trace service.name.",
    ),
    max_workers: int | None = typer.Option(
        None,
        "--max-workers",
        help="Jobs whose logs are processed concurrently.",
    ),
) -> None:
    """Export one workflow run's trace and job logs."""
    overrides = _build_overrides(
        repository=repository,
        run_id=run_id,
        github_token=github_token,
        github_api_url=github_api_url,
        otlp_endpoint=otlp_endpoint,
        otlp_headers=otlp_headers,
        console_only=console_only,
        loki_endpoint=loki_endpoint,
        loki_headers=loki_headers,
        service_name=service_name,
        max_workers=max_workers,
    )

    try:
        config: RuntraceSettings = load_settings(settings, overrides)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    from runtrace.engine.orchestrator import Orchestrator

    result = Orchestrator(config).run()
    _report_result(result)
    if not result.succeeded:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
