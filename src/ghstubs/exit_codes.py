"""Numeric process exit codes used by the ``ghstubs`` command line.

Each constant maps to one error category and is referenced by the
matching :class:`~ghstubs.exceptions.GhStubsError` subclass, so shell
wrappers can tell failure classes apart without parsing stderr.

Example::

    $ ghstubs call users get username=does-not-exist
    $ echo $?
    4   # EXIT_NOT_FOUND
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, unknown service or method, bad page size."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API answered with another error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_STUB_DEFINITION_ERROR = 7
"""A service descriptor is missing or malformed."""

EXIT_NOT_INITIALIZED = 8
"""A stub was requested before the shared client was initialised."""
