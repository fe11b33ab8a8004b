"""Conda package archive types and extraction of the recipe stored in a package."""

from __future__ import annotations

import shutil
import tarfile
import zipfile
from contextlib import ExitStack, contextmanager
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterator

import zstandard

_RECIPE_FOLDER = PurePosixPath("info/recipe")


class ArchiveType(Enum):
    """The two archive formats a conda package can come in."""

    TAR_BZ2 = ".tar.bz2"
    CONDA = ".conda"

    @classmethod
    def from_path(cls, path: str | Path) -> "ArchiveType":
        """The archive type of a package file, judged by its file name."""
        name = Path(path).name
        for kind in cls:
            if name.endswith(kind.value) and len(name) > len(kind.value):
                return kind
        raise ValueError(f"{path}: not a conda package archive")

    def extension(self) -> str:
        """The file extension, including the leading dot."""
        return self.value


@contextmanager
def _open_info_tar(package: str | Path) -> Iterator[tarfile.TarFile]:
    """Open a streaming tar that holds the package's ``info/`` folder.

    For ``.tar.bz2`` packages this is the whole package; for ``.conda``
    packages it is the inner ``info-*.tar.zst`` archive.
    """
    package = Path(package)
    kind = ArchiveType.from_path(package)
    with ExitStack() as stack:
        if kind is ArchiveType.TAR_BZ2:
            tar = stack.enter_context(tarfile.open(package, mode="r|bz2"))
        else:
            outer = stack.enter_context(zipfile.ZipFile(package))
            info_name = next(
                (
                    name
                    for name in outer.namelist()
                    if name.startswith("info-") and name.endswith(".tar.zst")
                ),
                None,
            )
            if info_name is None:
                raise ValueError(f"{package}: no info archive found")
            raw = stack.enter_context(outer.open(info_name))
            reader = stack.enter_context(zstandard.ZstdDecompressor().stream_reader(raw))
            tar = stack.enter_context(tarfile.open(fileobj=reader, mode="r|"))
        yield tar


def _extract_folder(tar: tarfile.TarFile, find_path: PurePosixPath, dest_folder: Path) -> None:
    for member in tar:
        member_path = PurePosixPath(member.name)
        if not member_path.is_relative_to(find_path):
            continue
        relative = member_path.relative_to(find_path)
        if ".." in relative.parts:
            continue
        target = dest_folder.joinpath(*relative.parts)
        if member.isdir():
            target.mkdir(parents=True, exist_ok=True)
        elif member.isfile():
            target.parent.mkdir(parents=True, exist_ok=True)
            source = tar.extractfile(member)
            if source is None:
                continue
            with source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)


def extract_recipe(package: str | Path, dest_folder: str | Path) -> None:
    """Extract the ``info/recipe`` folder of a package into `dest_folder`."""
    dest_folder = Path(dest_folder)
    with _open_info_tar(package) as tar:
        _extract_folder(tar, _RECIPE_FOLDER, dest_folder)