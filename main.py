import signal
import sys
import threading
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version as distribution_version
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError

from batch_pipeline import BatchPipeline
from configuration import FormatterConfig, default_parallelism
from errors import BatchError, FormatterError
from logger import logger, set_verbose
from reporter import Reporter
from unit_formatter import STDIN_UNIT, format_unit

FORMATTER_NAME = "nlreturnfmt"
FORMATTER_DOC = "A Go code formatter that inserts blank lines before return and branch statements to increase code clarity."

# Unix: 128 + signal number (SIGINT = 2).
EXIT_CODE_CANCELED = 130
EXIT_CODE_USAGE = 2

app = typer.Typer(name=FORMATTER_NAME, help=FORMATTER_DOC, add_completion=False)


def build_version() -> str:
    try:
        ver = distribution_version(FORMATTER_NAME)
    except PackageNotFoundError:
        ver = "dev"
    return f"{FORMATTER_NAME} version {ver}"


def _version_callback(value: bool):
    if value:
        typer.echo(build_version())
        raise typer.Exit()


@contextmanager
def cancel_on_signals(cancel_event: threading.Event):
    """Set ``cancel_event`` on SIGINT/SIGTERM for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, _frame):
        logger.warning(f"Received signal {signum}, finishing in-flight files.")
        cancel_event.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=code)


def process_source(config: FormatterConfig) -> None:
    source = sys.stdin.buffer.read()
    try:
        result = format_unit(STDIN_UNIT, source, config)
    except FormatterError as e:
        _fail(f"error: {e}")

    if not result.modified and config.verbose:
        typer.echo("No changes needed", err=True)
    typer.echo(result.content, nl=False)


def process_paths(config: FormatterConfig, paths: List[Path]) -> None:
    cancel_event = threading.Event()
    pipeline = BatchPipeline(config, Reporter(config), cancel_event)
    with cancel_on_signals(cancel_event):
        try:
            outcome = pipeline.format_paths(str(p) for p in paths)
        except BatchError as e:
            if e.canceled:
                _fail("operation canceled", EXIT_CODE_CANCELED)
            _fail(f"error: {e}")

    logger.debug(f"{len(outcome.results)} file(s) processed, {len(outcome.modified)} modified")


@app.command()
def nlreturnfmt(
    paths: Optional[List[Path]] = typer.Argument(None, help="Files or directories to format; stdin when omitted."),
    block_size: int = typer.Option(1, "--block-size", help="set block size that is still ok"),
    write: bool = typer.Option(False, "-w", "--write", help="write result to (source) file instead of stdout"),
    dry_run: bool = typer.Option(False, "-n", "--dry-run", help="don't modify files, just print what would be changed"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="verbose output"),
    parallelism: int = typer.Option(0, "--parallelism", help="number of files to process in parallel (0 = NumCPU)"),
    block_size_policy: str = typer.Option(
        "lines", "--block-size-policy", help="measure block size in 'lines' or sibling 'statements'"
    ),
    version: bool = typer.Option(
        False, "--version", help="show version information", callback=_version_callback, is_eager=True
    ),
) -> None:
    """A Go code formatter that inserts blank lines before return and branch statements."""
    try:
        config = FormatterConfig(
            block_size=block_size,
            write=write,
            dry_run=dry_run,
            verbose=verbose,
            parallelism=parallelism if parallelism != 0 else default_parallelism(),
            block_size_policy=block_size_policy,
        )
    except ValidationError as e:
        _fail(f"invalid options:\n{e}", EXIT_CODE_USAGE)

    set_verbose(config.verbose)

    if not paths:
        if config.write:
            _fail("error: -w flag is not supported when processing from stdin")
        process_source(config)
        return

    process_paths(config, paths)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
