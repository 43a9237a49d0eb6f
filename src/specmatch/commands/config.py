"""Config commands -- view and modify global configuration.

Provides the ``specmatch config`` sub-command group for reading and
updating the user's global configuration file
(:class:`~specmatch.models.GlobalConfig`). Settings are persisted in the
specmatch config directory and control defaults such as the custom rules to
run, API prefixes for the extractor, the cache backend, and output format.
"""

from __future__ import annotations

import typer

from specmatch.commands.common import reporting_errors, resolve
from specmatch.output import format_data, info, print_data, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    effective: bool = typer.Option(
        False,
        "--effective",
        help="Show the merged result of global, project, and environment settings.",
    ),
) -> None:
    """Show current configuration.

    Without ``--effective`` only the global config file is shown.

    Example::

        specmatch config show
        specmatch --json config show --effective
    """
    from specmatch.config import get_config_dir, load_global_config

    if effective:
        config = resolve(ctx)
    else:
        with reporting_errors():
            config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_data(config.model_dump(mode="json", by_alias=True))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'check.include_warnings')."
    ),
    value: str = typer.Argument(help="Value to set, parsed as JSON when possible."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is parsed as JSON so that
    booleans, numbers, and lists keep their types; anything else is stored
    as a string. The updated config is validated against
    :class:`~specmatch.models.GlobalConfig` before saving.

    Example::

        specmatch config set check.include_warnings false
        specmatch config set check.custom_rules '["no-trailing-slash"]'
        specmatch config set cache.backend disk
    """
    from specmatch.config import set_config_value

    with reporting_errors():
        set_config_value(key, value)
    success(f"Set {key} = {value}")


@config_app.command("path")
def config_path() -> None:
    """Print the path of the global config file.

    Example::

        specmatch config path
    """
    from specmatch.config import global_config_path

    print_data(str(global_config_path()))
