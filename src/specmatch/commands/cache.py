"""Cache commands -- inspect and clear the on-disk spec cache.

The in-memory backend lives only as long as one process, so these commands
always operate on the :class:`~specmatch.cache.DiskSpecCache` under the
specmatch cache directory.
"""

from __future__ import annotations

import typer

from specmatch.commands.common import resolve
from specmatch.output import format_data, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_disk_cache(ctx: typer.Context):  # noqa: ANN202
    from specmatch.cache import DiskSpecCache
    from specmatch.config import get_cache_dir

    config = resolve(ctx)
    return DiskSpecCache(get_cache_dir(), size_limit_mb=config.cache.size_limit_mb)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show entry count, size, and hit/miss counters of the disk cache.

    Example::

        specmatch cache stats
    """
    cache = _open_disk_cache(ctx)
    try:
        format_data(cache.stats())
    finally:
        cache.close()


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached spec.

    Example::

        specmatch cache clear
    """
    cache = _open_disk_cache(ctx)
    try:
        cache.clear()
    finally:
        cache.close()
    success("Spec cache cleared.")
