import os
import stat
import sys
import tempfile
from typing import Optional, TextIO

from configuration import FormatterConfig
from errors import FileAccessError
from logger import logger
from results import FormatResult


class Reporter:
    """Applies one FormatResult under the configured mode: report, write or print."""

    def __init__(self, config: FormatterConfig, out: Optional[TextIO] = None):
        self.config = config
        self.out = out if out is not None else sys.stdout

    def report(self, result: FormatResult) -> None:
        config = self.config

        if not result.modified:
            if config.verbose:
                self._print(f"{result.unit}: no changes needed\n")
            return

        if config.dry_run:
            self._print(f"{result.unit}: would be modified\n" + (result.details if config.verbose else ""))
            return

        if config.write:
            if config.verbose:
                self._print(f"{result.unit}: formatted\n{result.details}")
            write_in_place(result.unit, result.content)
            return

        self._print(f"// {result.unit} - formatted:\n{result.content.decode('utf-8', errors='replace')}\n")

    def skipped(self, path: str) -> None:
        if self.config.verbose:
            self._print(f"{path} skipped\n")

    def _print(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()


def write_in_place(path: str, content: bytes) -> None:
    """
    Atomically replace the file behind ``path`` with ``content``, keeping its permission bits.

    Symlinks are resolved first, so the link stays a link and its target is rewritten.
    """
    target = os.path.realpath(path)
    try:
        mode = stat.S_IMODE(os.stat(target).st_mode)
        directory = os.path.dirname(target)
        fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(target)}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise FileAccessError(path, "write", e) from e

    try:
        with os.fdopen(fd, "wb") as temp_file:
            temp_file.write(content)
        os.chmod(temp_path, mode)
        os.replace(temp_path, target)
    except OSError as e:
        logger.debug(f"Removing temporary file {temp_path} after failed write")
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise FileAccessError(path, "write", e) from e
