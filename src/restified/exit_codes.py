"""Numeric process exit codes used by the ``restified`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~restified.exceptions.RestifiedError` subclass.
Shell wrappers and CI scripts can inspect the exit code to tell an
authoring mistake (an unresolved ``{{variable}}``) from a bad config file
without parsing stderr.

Example::

    $ restified resolve "{{missing}}"
    $ echo $?
    8   # EXIT_RESOLUTION_ERROR -- the template references an unknown variable
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used for configuration errors)."""

EXIT_INVALID_USAGE = 2
"""The command or API was invoked with invalid arguments or values."""

EXIT_RESOLUTION_ERROR = 8
"""A template could not be resolved (unknown variable, bad syntax, failed extraction)."""

EXIT_BUILTIN_ERROR = 9
"""A builtin ``$namespace`` call failed or referenced an unknown namespace."""
