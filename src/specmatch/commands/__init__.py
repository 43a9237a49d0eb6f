"""Built-in CLI sub-commands for specmatch.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~specmatch.commands.spec` -- validate, convert, and inspect specs.
* :mod:`~specmatch.commands.check` -- ``check`` (code against a spec),
  ``diff`` (frontend against backend), and ``extract`` (show code features).
* :mod:`~specmatch.commands.config` -- view and modify global settings.
* :mod:`~specmatch.commands.cache` -- inspect and clear the disk spec cache.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``spec`` and ``config``) or plain callback
functions registered directly on the root app (for single commands like
``check``).
"""
