"""Running build processes and formatting console log output."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)

_PACKAGE_LOGGER = __name__.split(".")[0]


class BuildFailed(Exception):
    """Raised when a build process exits unsuccessfully."""

    def __init__(self, returncode: int) -> None:
        super().__init__("Build failed")
        self.returncode = returncode


class ConsoleFormatter(logging.Formatter):
    """Plain messages for the package's own info logs, full records for everything else."""

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt or "%(asctime)s %(levelname)5s %(name)s: %(message)s", datefmt)

    def format(self, record: logging.LogRecord) -> str:
        own = record.name == _PACKAGE_LOGGER or record.name.startswith(_PACKAGE_LOGGER + ".")
        if record.levelno == logging.INFO and own:
            return record.getMessage()
        return super().format(record)


def run_process_with_replacements(
    command: str | Path,
    cwd: str | Path,
    args: Iterable[str | Path],
    replacements: Sequence[tuple[str, str]],
) -> None:
    """Run a command, logging each output line with the given strings replaced.

    Replacements are applied in order, so later ones see the result of earlier
    ones. Raises :class:`BuildFailed` if the process exits with a non-zero status.
    """
    argv = [str(command), *(str(arg) for arg in args)]
    with subprocess.Popen(
        argv,
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
    ) as process:
        assert process.stdout is not None
        for raw in process.stdout:
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Error reading output: %r", raw)
                continue
            line = line.rstrip("\n").rstrip("\r")
            for old, new in replacements:
                line = line.replace(old, new)
            logger.info("%s", line)
        returncode = process.wait()

    if returncode != 0:
        raise BuildFailed(returncode)