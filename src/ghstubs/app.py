"""Typer application and CLI entry point for ghstubs.

The CLI is a thin shell over :mod:`ghstubs.factory`: ``ghstubs call``
builds (or reuses) a stub for the requested configuration, invokes one
of its methods and prints the decoded body. Other commands inspect the
bundled service descriptors, the disk response cache and the
visited-URL history.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log
under the data directory.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import httpx
import typer
from rich.logging import RichHandler

from ghstubs import __version__
from ghstubs.exceptions import (
    ConnectionError_,
    GhStubsError,
    InvalidUsageError,
    NotInitializedError,
    raise_for_api_error,
)
from ghstubs.exit_codes import EXIT_GENERIC_FAILURE
from ghstubs.output import (
    OutputFormat,
    OutputManager,
    debug,
    error,
    get_output,
    info,
    set_output,
    success,
)

app = typer.Typer(
    name="ghstubs",
    help="Call the GitHub REST API through cached, configurable service stubs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

cache_app = typer.Typer(help="Inspect the on-disk HTTP response cache.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")

_log_handler: Optional[logging.Handler] = None


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ghstubs {__version__}")
        raise typer.Exit()


def _configure_logging(output: OutputManager, verbose: bool, http_debug: bool) -> None:
    """Route ``ghstubs`` log records to stderr through Rich.

    ``--verbose`` shows every library record; ``--debug`` alone shows the
    request/response lines of the diagnostic stages.
    """
    global _log_handler
    package_logger = logging.getLogger("ghstubs")
    if _log_handler is not None:
        package_logger.removeHandler(_log_handler)
        _log_handler = None
    if not (verbose or http_debug):
        package_logger.setLevel(logging.NOTSET)
        return
    _log_handler = RichHandler(
        console=output.stderr_console,
        show_path=False,
        show_time=False,
        rich_tracebacks=False,
    )
    package_logger.addHandler(_log_handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="API base URL."),
    http_debug: Optional[bool] = typer.Option(
        None, "--debug/--no-debug", help="Log every request and its cache provenance."
    ),
) -> None:
    """Install the output manager and stash client overrides in ``ctx.obj``."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    _configure_logging(output, verbose, bool(http_debug))

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["debug"] = http_debug


def _factory(ctx: typer.Context):
    """Return the process-wide factory, initializing it from settings on first use."""
    from ghstubs.config import resolve_settings
    from ghstubs.factory import get_factory, init_client

    try:
        return get_factory()
    except NotInitializedError:
        obj = ctx.obj or {}
        settings = resolve_settings(cli_base_url=obj.get("base_url"), cli_debug=obj.get("debug"))
        return init_client(settings)


def _parse_call_args(pairs: list[str]) -> dict[str, Any]:
    """Turn ``NAME=VALUE`` pairs into keyword arguments."""
    kwargs: dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise InvalidUsageError(f"Expected NAME=VALUE, got: {pair}")
        kwargs[name.replace("-", "_")] = value
    return kwargs


def _print_body(response: httpx.Response) -> None:
    if not response.content:
        success(f"HTTP {response.status_code}")
        return
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        get_output().format_response(response.json())
    else:
        get_output().print_data(response.text)


def _exit_for(exc: GhStubsError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


@app.command("call")
def call_command(
    ctx: typer.Context,
    service: str = typer.Argument(..., help="Service name, see `ghstubs services`."),
    method: str = typer.Argument(..., help="Method of the service."),
    args: Optional[list[str]] = typer.Argument(None, help="Method arguments as NAME=VALUE."),
    body: Optional[str] = typer.Option(None, "--body", help="JSON request body."),
    token: Optional[str] = typer.Option(None, "--token", help="Token overriding the ambient one."),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Items per page."),
    accept: Optional[str] = typer.Option(None, "--accept", help="Accept header override."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Skip cached responses."),
) -> None:
    """Invoke METHOD of SERVICE and print the response body.

    Example::

        ghstubs call users get_user username=octocat
        ghstubs call search search_repositories q=httpx --page-size 5
    """
    from ghstubs.stubs import SERVICES, Page

    try:
        descriptor = SERVICES.get(service)
        if descriptor is None:
            raise InvalidUsageError(
                f"Unknown service '{service}'. Available: {', '.join(sorted(SERVICES))}"
            )
        if method not in descriptor.endpoints():
            raise InvalidUsageError(f"Service '{service}' has no method '{method}'")

        kwargs = _parse_call_args(args or [])
        if body is not None:
            try:
                kwargs["body"] = json.loads(body)
            except json.JSONDecodeError as exc:
                raise InvalidUsageError(f"--body is not valid JSON: {exc}") from None

        stub = _factory(ctx).get(
            descriptor,
            bypass_cache=no_cache,
            accept_header=accept,
            token=token,
            page_size=page_size,
        )
        try:
            result = getattr(stub, method)(**kwargs)
        except TypeError as exc:
            raise InvalidUsageError(str(exc)) from None
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request failed: {exc}") from exc

        if isinstance(result, Page):
            raise_for_api_error(result.response)
            get_output().format_response(result.items)
            if result.links.has_next:
                info(f"Next page: {result.next_page} (last: {result.last_page or '?'})")
            response = result.response
        else:
            raise_for_api_error(result)
            _print_body(result)
            response = result

        from ghstubs.cache import cache_status, network_status

        debug(f"network {network_status(response)}, cache {cache_status(response)}")
    except GhStubsError as exc:
        raise _exit_for(exc) from None


@app.command("services")
def services_command() -> None:
    """List the bundled service descriptors and their endpoints."""
    from ghstubs.stubs import SERVICES, ServiceGenerator

    rows: list[list[str]] = []
    for name, descriptor in sorted(SERVICES.items()):
        for method, endpoint, summary in ServiceGenerator.describe(descriptor):
            rows.append([
                name,
                method,
                f"{endpoint.method} {endpoint.path}",
                "yes" if endpoint.paged else "",
                summary or "",
            ])
    get_output().print_table(["service", "method", "endpoint", "paged", "summary"], rows, "Services")


@app.command("visited")
def visited_command(ctx: typer.Context) -> None:
    """Print the URLs requested by this process, oldest first."""
    try:
        urls = _factory(ctx).tracker.recent()
    except GhStubsError as exc:
        raise _exit_for(exc) from None
    for url in urls:
        get_output().print_data(url)


@cache_app.command("stats")
def cache_stats_command(ctx: typer.Context) -> None:
    """Show disk usage, quota and location of the response cache."""
    try:
        cache = _factory(ctx).shared_client.cache
    except GhStubsError as exc:
        raise _exit_for(exc) from None
    if cache is None:
        info("The response cache is disabled.")
        return
    stats = cache.stats()
    get_output().print_table(
        ["key", "value"],
        [[key, str(value)] for key, value in stats.items()],
        "HTTP cache",
    )


@cache_app.command("clear")
def cache_clear_command(ctx: typer.Context) -> None:
    """Delete every cached response."""
    try:
        cache = _factory(ctx).shared_client.cache
    except GhStubsError as exc:
        raise _exit_for(exc) from None
    if cache is None:
        info("The response cache is disabled.")
        return
    cache.clear()
    success("Cleared the response cache.")


def _setup_signal_handlers() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback plus the visited URLs to a crash log."""
    from ghstubs.config import get_data_dir
    from ghstubs.factory import get_factory

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    text = traceback.format_exc()
    try:
        urls = get_factory().tracker.recent()
    except NotInitializedError:
        urls = []
    if urls:
        text += "\nRecently visited URLs:\n" + "\n".join(urls) + "\n"
    log_path.write_text(text)
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``ghstubs`` console script."""
    from ghstubs.factory import reset_factory

    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except GhStubsError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
    finally:
        reset_factory()
