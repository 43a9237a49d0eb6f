"""Exception hierarchy for specmatch.

All exceptions inherit from :class:`SpecmatchError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specmatch.exit_codes`.
The top-level error handler in :func:`specmatch.app.main` catches
``SpecmatchError`` and exits with the appropriate code.

Only failures to *load* a specification are raised to callers.  Problems in
source text never raise; they surface as :class:`AnalysisDegraded` notices in
the log and in result metadata.

Subclass hierarchy::

    SpecmatchError (exit 1)
    +-- InvalidUsageError    (exit 2)
    +-- SpecNotFound         (exit 4)
    +-- RefResolutionError   (exit 6)
    +-- SpecParseError       (exit 7)
    |   +-- SpecFormatError  (exit 7)
    +-- ConversionError      (exit 9)
    +-- ConfigError          (exit 1)
"""

from specmatch.exit_codes import (
    EXIT_CONVERSION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_REF_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecmatchError(Exception):
    """Base exception for all specmatch errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specmatch.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecmatchError):
    """Raised for invalid CLI arguments or unusable option combinations."""

    exit_code = EXIT_INVALID_USAGE


class SpecNotFound(SpecmatchError):
    """Raised when a specification file (or an external ``$ref`` target) does not exist."""

    exit_code = EXIT_NOT_FOUND


class SpecParseError(SpecmatchError):
    """Raised when specification text is not valid JSON or YAML, or cannot be read."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class SpecFormatError(SpecParseError):
    """Raised when a parsed document declares neither an ``openapi`` nor a ``swagger`` version."""


class RefResolutionError(SpecmatchError):
    """Raised for dangling or circular ``$ref`` pointers when ``continue_on_error`` is off.

    Args:
        message: Human-readable error description.
        ref: The offending ``$ref`` string, when known.
    """

    exit_code = EXIT_REF_ERROR

    def __init__(self, message: str, ref: str | None = None):
        super().__init__(message)
        self.ref = ref


class ConversionError(SpecmatchError):
    """Raised when Swagger 2.0 to OpenAPI 3.x conversion fails or yields a broken document."""

    exit_code = EXIT_CONVERSION_ERROR


class ConfigError(SpecmatchError):
    """Raised for configuration problems (invalid JSON, unknown keys, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class AnalysisDegraded(SpecmatchError):
    """Notice that source-text analysis fell back to an empty feature set.

    Never raised by the engine.  Instances are built to format the warning
    that is logged, and their ``side`` is recorded in result metadata.

    Args:
        message: What went wrong.
        side: Label of the side whose analysis degraded (``"frontend"``,
            ``"backend"``, ``"code"``), when known.
    """

    def __init__(self, message: str, side: str | None = None):
        super().__init__(message)
        self.side = side
