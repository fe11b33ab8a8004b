"""Reading and rewriting the run paths of ELF shared objects."""

from __future__ import annotations

import logging
import os
import struct
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

ELFMAG = b"\x7fELF"

_PT_LOAD = 1
_PT_DYNAMIC = 2

_DT_NULL = 0
_DT_NEEDED = 1
_DT_STRTAB = 5
_DT_RPATH = 15
_DT_RUNPATH = 29


class ElfRelinkError(Exception):
    """Raised when an ELF file cannot be read or relinked."""


def _diff_paths(path: Path, base: Path) -> str:
    relative = os.path.relpath(path, base)
    return "" if relative == "." else relative


def _read_cstr(data: bytes, offset: int) -> str:
    end = data.find(b"\0", offset)
    if offset < 0 or offset >= len(data) or end < 0:
        raise ElfRelinkError("failed to parse elf file: string out of bounds")
    return data[offset:end].decode("utf-8", errors="replace")


def _parse_elf(data: bytes) -> tuple[list[str], list[str], list[str]]:
    """Return the needed libraries, RPATH and RUNPATH entries of an ELF image."""
    if len(data) < 16 or data[:4] != ELFMAG:
        raise ElfRelinkError("failed to parse elf file: bad magic")
    elf_class, encoding = data[4], data[5]
    if encoding == 1:
        endian = "<"
    elif encoding == 2:
        endian = ">"
    else:
        raise ElfRelinkError(f"failed to parse elf file: unknown data encoding {encoding}")
    if elf_class == 2:
        header_fmt, phdr_fmt, dyn_fmt = "HHIQQQIHHHHHH", "IIQQQQQQ", "qQ"
    elif elf_class == 1:
        header_fmt, phdr_fmt, dyn_fmt = "HHIIIIIHHHHHH", "IIIIIIII", "iI"
    else:
        raise ElfRelinkError(f"failed to parse elf file: unknown class {elf_class}")

    try:
        header = struct.unpack_from(endian + header_fmt, data, 16)
        phoff, phentsize, phnum = header[4], header[8], header[9]
        segments = []
        for number in range(phnum):
            raw = struct.unpack_from(endian + phdr_fmt, data, phoff + number * phentsize)
            if elf_class == 2:
                p_type, _, p_offset, p_vaddr, _, p_filesz, _, _ = raw
            else:
                p_type, p_offset, p_vaddr, _, p_filesz, _, _, _ = raw
            segments.append((p_type, p_offset, p_vaddr, p_filesz))
    except struct.error as exc:
        raise ElfRelinkError(f"failed to parse elf file: {exc}") from exc

    dynamic = next((seg for seg in segments if seg[0] == _PT_DYNAMIC), None)
    if dynamic is None:
        return [], [], []

    _, dyn_offset, _, dyn_size = dynamic
    entry_size = struct.calcsize(endian + dyn_fmt)
    dyn_bytes = data[dyn_offset : dyn_offset + dyn_size]
    dyn_bytes = dyn_bytes[: len(dyn_bytes) - len(dyn_bytes) % entry_size]

    needed: list[int] = []
    rpaths: list[int] = []
    runpaths: list[int] = []
    strtab_addr = None
    for tag, value in struct.iter_unpack(endian + dyn_fmt, dyn_bytes):
        if tag == _DT_NULL:
            break
        if tag == _DT_NEEDED:
            needed.append(value)
        elif tag == _DT_RPATH:
            rpaths.append(value)
        elif tag == _DT_RUNPATH:
            runpaths.append(value)
        elif tag == _DT_STRTAB:
            strtab_addr = value

    if not (needed or rpaths or runpaths):
        return [], [], []
    if strtab_addr is None:
        raise ElfRelinkError("failed to parse elf file: no string table")

    strtab_offset = next(
        (
            strtab_addr - vaddr + offset
            for p_type, offset, vaddr, filesz in segments
            if p_type == _PT_LOAD and vaddr <= strtab_addr < vaddr + filesz
        ),
        None,
    )
    if strtab_offset is None:
        raise ElfRelinkError("failed to parse elf file: string table not mapped")

    def strings(offsets: list[int]) -> list[str]:
        return [_read_cstr(data, strtab_offset + off) for off in offsets]

    return strings(needed), strings(rpaths), strings(runpaths)


@dataclass
class SharedObject:
    """A Linux shared object or executable in ELF format."""

    path: Path
    libraries: set[str] = field(default_factory=set)
    rpaths: list[str] = field(default_factory=list)
    runpaths: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    @staticmethod
    def test_file(path: Path) -> bool:
        """True if the file starts with the ELF magic bytes."""
        with open(path, "rb") as fh:
            signature = fh.read(4)
        if len(signature) < 4:
            raise OSError(f"{path}: file is shorter than 4 bytes")
        return signature == ELFMAG

    @classmethod
    def from_path(cls, path: Path) -> "SharedObject":
        """Parse the ELF file at `path`."""
        path = Path(path)
        libraries, rpaths, runpaths = _parse_elf(path.read_bytes())
        return cls(path=path, libraries=set(libraries), rpaths=rpaths, runpaths=runpaths)

    def new_rpath(self, prefix: Path, encoded_prefix: Path) -> list[str]:
        """The run path entries with encoded-prefix paths made relative to $ORIGIN."""
        prefix = Path(prefix)
        encoded_prefix = Path(encoded_prefix)
        entries = [entry for value in (*self.rpaths, *self.runpaths) for entry in value.split(":")]

        result = []
        for entry in entries:
            entry_path = Path(entry)
            if entry and entry_path.is_relative_to(encoded_prefix):
                new_path = prefix / entry_path.relative_to(encoded_prefix)
                relative = _diff_paths(new_path, self.path.parent)
                logger.info("New relative path: $ORIGIN/%s", relative)
                result.append(f"$ORIGIN/{relative}")
            else:
                result.append(entry)
        return list(dict.fromkeys(result))

    def relink(self, prefix: Path, encoded_prefix: Path) -> None:
        """Rewrite the run path of the file with patchelf."""
        _call_patchelf(self.path, self.new_rpath(prefix, encoded_prefix))


def _call_patchelf(elf_path: Path, new_rpath: list[str]) -> None:
    joined = ":".join(new_rpath)
    logger.info("patchelf for %s: %s", elf_path, joined)
    # RPATH takes precedence over LD_LIBRARY_PATH, which isolates the environment better.
    command = ["patchelf", "--force-rpath", "--set-rpath", joined, str(elf_path)]
    try:
        completed = subprocess.run(command, capture_output=True, check=False)
    except OSError as exc:
        raise ElfRelinkError(f"failed to run patchelf: {exc}") from exc
    if completed.returncode != 0:
        stderr = completed.stderr or b""
        logger.error("patchelf failed: %s", stderr.decode("utf-8", errors="replace"))
        raise ElfRelinkError("failed to run patchelf")