"""Command line entry points: the git ``post-receive`` hook and the webhook server.

Install the hook by pointing ``hooks/post-receive`` at ``scmhook post-receive``;
git feeds it one ``<old> <new> <ref>`` line per updated ref on stdin.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import httpx
import structlog
import typer
from pydantic import ValidationError

from scmhook.config import VERSION, Settings, get_settings
from scmhook.exceptions import RepositoryOpenError, TransportError
from scmhook.logging_config import configure_logging
from scmhook.services.emitter import EventEmitter
from scmhook.services.post_receive import run_post_receive
from scmhook.services.repository import GitRepository
from scmhook.services.shortener import UrlShortener
from scmhook.services.transport import (
    HttpNotificationTransport,
    InMemoryNotificationTransport,
    NotificationTransport,
)

EXIT_INIT_FAILED = 1
EXIT_REPOSITORY_UNAVAILABLE = 2
EXIT_TRANSPORT_UNREACHABLE = 3

DEFAULT_SIMILARITY = 50

logger = structlog.get_logger()

app = typer.Typer(help="scmhook - turn git pushes and forge webhooks into notification events")


def parse_percent(value: str) -> int:
    """Parse a similarity threshold the way ``git diff -M<n>`` does.

    Accepted forms: ``100%``, ``NN%``, ``N%``, ``NN`` and ``N`` (a single
    digit is tenths, so ``5`` means 50%). An empty value means 50%.

    Raises:
        ValueError: For anything else.
    """
    if value == "":
        return DEFAULT_SIMILARITY
    if value == "100%":
        return 100
    digits = value[:-1] if value.endswith("%") else value
    if not digits.isascii() or not digits.isdigit() or len(digits) > 2:
        raise ValueError(f"{value!r} is not a git diff similarity (N, NN, N%, NN% or 100%)")
    if value.endswith("%"):
        return int(digits)
    if len(digits) == 1:
        return int(digits) * 10
    return int(digits)


def _percent_option(value: Optional[str]) -> Optional[str]:
    if value is not None:
        try:
            parse_percent(value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    return value


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"scmhook {VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Print version and exit"
    ),
):
    """scmhook command line."""


def hook_settings(
    base: Settings,
    *,
    merge_threshold: Optional[int] = None,
    commit_id_size: Optional[int] = None,
    find_renames: Optional[str] = None,
    no_renames: bool = False,
    find_copies: Optional[str] = None,
    use_shortener: Optional[bool] = None,
) -> Settings:
    """Derive the settings of one hook run from the command line flags."""
    overrides: dict = {}
    if merge_threshold is not None:
        overrides["merge_threshold"] = merge_threshold
    if commit_id_size is not None:
        overrides["commit_id_size"] = commit_id_size
    if no_renames:
        overrides["detect_renames"] = False
    elif find_renames is not None:
        overrides.update(detect_renames=True, rename_threshold=parse_percent(find_renames))
    if find_copies is not None:
        overrides.update(detect_copies=True, copy_threshold=parse_percent(find_copies))
    if use_shortener is not None:
        overrides["use_shortener"] = use_shortener
    # Round-trip through validation so flag values obey the same bounds
    return Settings.model_validate({**base.model_dump(), **overrides})


async def _run_hook(settings: Settings, repository: GitRepository, lines: list[str]) -> int:
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        transport: NotificationTransport
        if settings.notification_url:
            transport = HttpNotificationTransport(client, settings.notification_url)
        else:
            logger.warning("notification_url_unset", hint="events are only logged")
            transport = InMemoryNotificationTransport()
        try:
            await transport.check()
        except TransportError as exc:
            logger.error("transport_unreachable", error=str(exc))
            return EXIT_TRANSPORT_UNREACHABLE

        shortener = UrlShortener(client, settings.shorteners, enabled=settings.use_shortener)
        emitter = EventEmitter(transport, shortener, commit_id_size=settings.commit_id_size)
        handled = await run_post_receive(lines, repository, settings, emitter, os.environ)
        logger.info("post_receive_finished", refs=handled, events_emitted=emitter.emitted)
    return 0


@app.command(name="post-receive")
def post_receive(
    repository: Path = typer.Option(
        Path("."), "--repository", "-r", help="Repository the hook runs in"
    ),
    merge_threshold: Optional[int] = typer.Option(
        None, "--merge-threshold", "-m", help="Number of commits from which one commit-group event is sent"
    ),
    commit_id_size: Optional[int] = typer.Option(
        None, "--commit-id-size", help="Length commit ids are truncated to"
    ),
    find_renames: Optional[str] = typer.Option(
        None, "--find-renames", "-M", callback=_percent_option, help="Rename similarity, see 'git help diff'"
    ),
    no_renames: bool = typer.Option(False, "--no-renames", help="Disable rename detection"),
    find_copies: Optional[str] = typer.Option(
        None, "--find-copies", "-C", callback=_percent_option, help="Copy similarity, see 'git help diff'"
    ),
    use_shortener: Optional[bool] = typer.Option(
        None, "--use-shortener/--no-shortener", help="Shorten event URLs"
    ),
):
    """
    Read '<old> <new> <ref>' lines from stdin and emit their events.

    Exit codes: 1 invalid configuration, 2 repository cannot be opened,
    3 notification endpoint unreachable.
    """
    try:
        settings = hook_settings(
            get_settings(),
            merge_threshold=merge_threshold,
            commit_id_size=commit_id_size,
            find_renames=find_renames,
            no_renames=no_renames,
            find_copies=find_copies,
            use_shortener=use_shortener,
        )
    except ValidationError as exc:
        typer.echo(f"scmhook: invalid configuration: {exc}", err=True)
        raise typer.Exit(EXIT_INIT_FAILED)

    configure_logging(json_logs=False, log_level=settings.log_level, stream=sys.stderr)

    try:
        repo = GitRepository.open(
            str(repository),
            rename_threshold=settings.rename_threshold if settings.detect_renames else None,
            copy_threshold=settings.copy_threshold if settings.detect_copies else None,
        )
    except RepositoryOpenError as exc:
        logger.error("repository_open_failed", path=str(repository), error=str(exc))
        raise typer.Exit(EXIT_REPOSITORY_UNAVAILABLE)

    lines = sys.stdin.read().splitlines()
    code = asyncio.run(_run_hook(settings, repo, lines))
    if code:
        raise typer.Exit(code)


@app.command(name="serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Address to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    cert_file: Optional[Path] = typer.Option(None, "--cert-file", help="TLS certificate (PEM)"),
    key_file: Optional[Path] = typer.Option(None, "--key-file", help="TLS private key (PEM)"),
):
    """Run the webhook gateway server."""
    import uvicorn

    try:
        settings = get_settings()
    except ValidationError as exc:
        typer.echo(f"scmhook: invalid configuration: {exc}", err=True)
        raise typer.Exit(EXIT_INIT_FAILED)

    cert = cert_file or settings.tls_cert_file
    key = key_file or settings.tls_key_file
    if bool(cert) != bool(key):
        typer.echo("scmhook: --cert-file and --key-file must be given together", err=True)
        raise typer.Exit(EXIT_INIT_FAILED)

    uvicorn.run(
        "scmhook.main:app",
        host=host or settings.host,
        port=port or settings.port,
        ssl_certfile=str(cert) if cert else None,
        ssl_keyfile=str(key) if key else None,
        log_config=None,
    )


if __name__ == "__main__":
    app()
