"""Logging setup and ready-made progress callbacks."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from photomosaic.config import ProgressCallback

console = Console()


def setup_logging(verbose: bool = False, console: Console = console) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


class LoggingProgress:
    """Progress callback that logs each report and remembers the last one."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("photomosaic")
        self.reports: list[tuple[int, int]] = []

    def __call__(self, done: int, total: int) -> None:
        self.reports.append((done, total))
        self.logger.info("Progress %5.1f%%  (%d/%d tiles)", done / total * 100, done, total)


@contextmanager
def rich_progress(
    description: str = "Matching tiles",
    console: Console = console,
) -> Iterator[ProgressCallback]:
    """Yield a progress callback that drives a Rich progress bar.

    Usage::

        with rich_progress() as on_progress:
            cfg = MosaicConfig(progress_callback=on_progress)
            MosaicBuilder(cfg).build(target, gallery)
    """
    columns = (
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
    )
    with Progress(*columns, console=console, transient=False) as progress:
        task = progress.add_task(description, total=None)

        def _update(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        yield _update
