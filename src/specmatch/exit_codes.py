"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specmatch.exceptions.SpecmatchError` subclass.
CI scripts can inspect the exit code to tell a broken spec apart from an
interface mismatch without parsing stderr.

Example::

    $ specmatch diff --frontend web/src --backend server/
    $ echo $?
    8   # EXIT_INCOMPATIBLE -- error-severity issues were found
"""

EXIT_SUCCESS = 0
"""The command completed successfully and found no error-severity issues."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""The specification file (or a referenced file) does not exist."""

EXIT_REF_ERROR = 6
"""A ``$ref`` pointer could not be resolved (dangling or circular)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The specification could not be parsed, or declares no known format."""

EXIT_INCOMPATIBLE = 8
"""The check ran to completion and reported at least one error-severity issue."""

EXIT_CONVERSION_ERROR = 9
"""A Swagger 2.0 document could not be converted to OpenAPI 3.x."""
