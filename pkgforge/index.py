"""Indexing of packages in an output folder into ``repodata.json`` files."""

from __future__ import annotations

import hashlib
import json
import logging
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import zstandard

from pkgforge.archive import ArchiveType, _open_info_tar
from pkgforge.envvars import Platform

logger = logging.getLogger(__name__)

_INDEX_JSON = PurePosixPath("info/index.json")

_RECORD_FIELDS = (
    "name",
    "version",
    "build",
    "build_number",
    "arch",
    "platform",
    "depends",
    "constrains",
    "track_features",
    "features",
    "noarch",
    "license",
    "license_family",
    "timestamp",
)

_READ_ERRORS = (
    OSError,
    ValueError,
    tarfile.TarError,
    zipfile.BadZipFile,
    zstandard.ZstdError,
)


def _file_digests(path: Path) -> tuple[str, str, int]:
    sha256 = hashlib.sha256()
    md5 = hashlib.md5()
    size = 0
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 16), b""):
            sha256.update(chunk)
            md5.update(chunk)
            size += len(chunk)
    return sha256.hexdigest(), md5.hexdigest(), size


def _read_index_json(path: Path) -> dict[str, Any]:
    with _open_info_tar(path) as tar:
        for member in tar:
            if member.isfile() and PurePosixPath(member.name) == _INDEX_JSON:
                source = tar.extractfile(member)
                if source is None:
                    break
                with source:
                    data = json.load(source)
                if not isinstance(data, dict):
                    raise ValueError(f"{path}: index.json is not an object")
                return data
    raise ValueError("No index.json found")


def read_package_record(path: str | Path) -> dict[str, Any]:
    """Build the repodata record of a package from its index.json and file digests."""
    path = Path(path)
    index_json = _read_index_json(path)
    sha256, md5, size = _file_digests(path)

    record: dict[str, Any] = {
        key: index_json[key]
        for key in _RECORD_FIELDS
        if index_json.get(key) is not None
    }
    record.setdefault("depends", [])
    for key in ("constrains", "track_features"):
        if not record.get(key):
            record.pop(key, None)
    record["subdir"] = index_json.get("subdir") or "unknown"
    record["md5"] = md5
    record["sha256"] = sha256
    record["size"] = size
    return record


def _archive_type(path: Path) -> Optional[ArchiveType]:
    try:
        return ArchiveType.from_path(path)
    except ValueError:
        return None


def index(output_folder: str | Path, target_platform: Optional[Platform] = None) -> None:
    """Write a ``repodata.json`` for the subdirectories of `output_folder`.

    With a `target_platform` only that subdir is indexed, plus ``noarch`` if it
    has no repodata yet; otherwise every subdir holding packages is indexed.
    """
    output_folder = Path(output_folder)

    packages: list[Path] = [
        entry
        for subdir in sorted(output_folder.iterdir())
        if subdir.is_dir()
        for entry in sorted(subdir.iterdir())
        if _archive_type(entry) is not None
    ]

    platforms = {p.parent.name for p in packages if p.parent.name != "src_cache"}

    noarch_dir = output_folder / "noarch"
    if not noarch_dir.exists():
        noarch_dir.mkdir()
        platforms.add("noarch")

    target = str(target_platform) if target_platform is not None else None
    if target is not None:
        target_dir = output_folder / target
        if not target_dir.exists():
            target_dir.mkdir()
            platforms.add(target)

    for platform in sorted(platforms):
        if target is not None and platform != target:
            if platform != "noarch":
                continue
            if (output_folder / "noarch" / "repodata.json").exists():
                continue

        conda_packages: dict[str, Any] = {}
        for package in packages:
            if package.parent.name != platform:
                continue
            try:
                record = read_package_record(package)
            except _READ_ERRORS:
                logger.info("Could not read package record from %s", package)
                continue
            conda_packages[package.name] = record

        repodata = {
            "info": {"subdir": platform},
            "packages": {},
            "packages.conda": conda_packages,
            "repodata_version": 1,
        }
        out_file = output_folder / platform / "repodata.json"
        out_file.write_text(json.dumps(repodata, indent=2, sort_keys=True), encoding="utf-8")