"""Directory layout used while building a package."""

from __future__ import annotations

import math
import os
import shutil
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

_PLACEHOLDER_TEMPLATE = "_placehold"
_PLACEHOLDER_LENGTH = 255


@dataclass(frozen=True)
class GitRev:
    """A git revision; defaults to ``HEAD``."""

    value: str = "HEAD"

    def __str__(self) -> str:
        return self.value


def setup_build_dir(
    output_dir: str | Path, name: str, no_build_id: bool, timestamp: datetime
) -> Path:
    """Create ``<output_dir>/bld/rattler-build_<name>[_<epoch>]/work`` and return its parent."""
    if no_build_id:
        dirname = f"rattler-build_{name}"
    else:
        since_the_epoch = math.floor(timestamp.timestamp())
        dirname = f"rattler-build_{name}_{since_the_epoch}"
    path = Path(output_dir) / "bld" / dirname
    (path / "work").mkdir(parents=True, exist_ok=True)
    return path


def _host_prefix(build_dir: Path) -> Path:
    if sys.platform == "win32":
        return build_dir / "h_env"
    base_length = len(os.fsencode(build_dir / "host_env"))
    if base_length > _PLACEHOLDER_LENGTH:
        raise ValueError(
            f"build directory {build_dir} is too long for a "
            f"{_PLACEHOLDER_LENGTH} character host prefix"
        )
    repeats = -(-_PLACEHOLDER_LENGTH // len(_PLACEHOLDER_TEMPLATE))
    placeholder = (_PLACEHOLDER_TEMPLATE * repeats)[: _PLACEHOLDER_LENGTH - base_length]
    return build_dir / f"host_env{placeholder}"


@dataclass
class Directories:
    """The directories used during a build.

    ``recipe_dir`` and ``output_dir`` are not part of the serialized form.
    """

    recipe_dir: Path
    host_prefix: Path
    build_prefix: Path
    work_dir: Path
    build_dir: Path
    output_dir: Path

    def __post_init__(self) -> None:
        self.recipe_dir = Path(self.recipe_dir)
        self.host_prefix = Path(self.host_prefix)
        self.build_prefix = Path(self.build_prefix)
        self.work_dir = Path(self.work_dir)
        self.build_dir = Path(self.build_dir)
        self.output_dir = Path(self.output_dir)

    @classmethod
    def create(
        cls,
        name: str,
        recipe_path: str | Path,
        output_dir: str | Path,
        no_build_id: bool,
        timestamp: datetime,
    ) -> "Directories":
        """Create all directories needed to build a package and describe them."""
        output_dir = Path(output_dir)
        if not output_dir.exists():
            output_dir.mkdir()
        output_dir = output_dir.resolve(strict=True)

        build_dir = setup_build_dir(output_dir, name, no_build_id, timestamp)
        recipe_dir = Path(recipe_path).parent

        return cls(
            recipe_dir=recipe_dir,
            host_prefix=_host_prefix(build_dir),
            build_prefix=build_dir / "build_env",
            work_dir=build_dir / "work",
            build_dir=build_dir,
            output_dir=output_dir,
        )

    def recreate_directories(self) -> None:
        """Remove the build directory and create all directories afresh."""
        if self.build_dir.exists():
            shutil.rmtree(self.build_dir)
        if not self.output_dir.exists():
            self.output_dir.mkdir()
        for directory in (self.build_dir, self.work_dir, self.build_prefix, self.host_prefix):
            directory.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict[str, str]:
        """The serializable part of the layout."""
        return {
            "host_prefix": str(self.host_prefix),
            "build_prefix": str(self.build_prefix),
            "work_dir": str(self.work_dir),
            "build_dir": str(self.build_dir),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Directories":
        """Rebuild a layout from :meth:`to_dict` output; unserialized paths are left empty."""
        return cls(
            recipe_dir=Path(),
            host_prefix=Path(data["host_prefix"]),
            build_prefix=Path(data["build_prefix"]),
            work_dir=Path(data["work_dir"]),
            build_dir=Path(data["build_dir"]),
            output_dir=Path(),
        )