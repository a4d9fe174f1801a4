"""Exception hierarchy for ghstubs.

All exceptions inherit from :class:`GhStubsError`, which carries an
``exit_code`` taken from :mod:`ghstubs.exit_codes`. The stub pipeline
itself never converts HTTP statuses or transport failures into these
types; they reach stub callers unchanged. Only the command line maps
statuses through :func:`raise_for_api_error`.

Subclass hierarchy::

    GhStubsError (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- AuthError             (exit 3)
    +-- NotFoundError         (exit 4)
    +-- ServerError           (exit 5)
    +-- ConnectionError_      (exit 6)
    +-- StubDefinitionError   (exit 7)
    +-- NotInitializedError   (exit 8)
    +-- ConfigError           (exit 1)
"""

from __future__ import annotations

import httpx

from ghstubs.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_NOT_INITIALIZED,
    EXIT_SERVER_ERROR,
    EXIT_STUB_DEFINITION_ERROR,
)


class GhStubsError(Exception):
    """Base exception for all ghstubs errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(GhStubsError):
    """Raised for invalid arguments, e.g. a non-positive page size."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(GhStubsError):
    """Raised by the CLI when the API returns HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(GhStubsError):
    """Raised by the CLI when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(GhStubsError):
    """Raised by the CLI for any other error status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(GhStubsError):
    """Raised by the CLI on network-level failures.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StubDefinitionError(GhStubsError):
    """Raised when a service descriptor is missing or not a :class:`~ghstubs.stubs.Service`."""

    exit_code = EXIT_STUB_DEFINITION_ERROR


class NotInitializedError(GhStubsError):
    """Raised when stubs are requested before :func:`~ghstubs.factory.init_client`."""

    exit_code = EXIT_NOT_INITIALIZED


class ConfigError(GhStubsError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


def raise_for_api_error(response: httpx.Response) -> None:
    """Raise a typed exception for an error HTTP status.

    The message is taken from the JSON ``message`` field GitHub returns
    on errors, falling back to the start of the raw body.

    Args:
        response: A response as returned by a stub method.

    Raises:
        AuthError: On 401 / 403.
        NotFoundError: On 404.
        ServerError: On any other status >= 400.
    """
    status = response.status_code
    if status < 400:
        return

    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or detail.get("error") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

    if status in (401, 403):
        raise AuthError(full_msg)
    if status == 404:
        raise NotFoundError(full_msg)
    raise ServerError(full_msg)
