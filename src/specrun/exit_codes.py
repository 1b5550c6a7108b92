"""Numeric process exit codes, one per error category.

Each constant is referenced by the corresponding
:class:`~specrun.exceptions.SpecrunError` subclass. Wrappers (shell
scripts, agents, CI) can inspect the exit code to determine the failure
class without parsing stderr.

Example::

    $ some-wrapper run --id apps_getCollection
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the private key could not be loaded
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, missing parameters, failed validation or a refused confirmation."""

EXIT_AUTH_FAILURE = 3
"""Key material was missing or invalid, or the JWT could not be signed."""

EXIT_NETWORK_ERROR = 4
"""A transport-level error persisted after all retries."""

EXIT_API_ERROR = 5
"""The remote API answered with a non-2xx status."""

EXIT_INTERNAL_ERROR = 6
"""An internal invariant was violated."""
