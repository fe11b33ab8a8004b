"""Environment variables exposed to build scripts."""

from __future__ import annotations

import os
import platform as _platform
import sys
from enum import Enum
from pathlib import Path
from typing import Mapping


class Platform(Enum):
    """A conda subdirectory / target platform."""

    NOARCH = "noarch"
    LINUX_32 = "linux-32"
    LINUX_64 = "linux-64"
    LINUX_AARCH64 = "linux-aarch64"
    LINUX_ARMV6L = "linux-armv6l"
    LINUX_ARMV7L = "linux-armv7l"
    LINUX_PPC64LE = "linux-ppc64le"
    LINUX_PPC64 = "linux-ppc64"
    LINUX_S390X = "linux-s390x"
    LINUX_RISCV32 = "linux-riscv32"
    LINUX_RISCV64 = "linux-riscv64"
    OSX_64 = "osx-64"
    OSX_ARM64 = "osx-arm64"
    WIN_32 = "win-32"
    WIN_64 = "win-64"
    WIN_ARM64 = "win-arm64"
    EMSCRIPTEN_32 = "emscripten-32"
    WASI_32 = "wasi-32"
    ZOS_Z = "zos-z"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def current(cls) -> "Platform":
        """The platform this process runs on."""
        machine = _platform.machine().lower()
        if sys.platform.startswith("linux"):
            arch = {
                "x86_64": "64",
                "amd64": "64",
                "i386": "32",
                "i686": "32",
                "aarch64": "aarch64",
                "arm64": "aarch64",
                "armv6l": "armv6l",
                "armv7l": "armv7l",
                "ppc64le": "ppc64le",
                "ppc64": "ppc64",
                "s390x": "s390x",
                "riscv32": "riscv32",
                "riscv64": "riscv64",
            }.get(machine)
            os_name = "linux"
        elif sys.platform == "darwin":
            arch = {"x86_64": "64", "arm64": "arm64", "aarch64": "arm64"}.get(machine)
            os_name = "osx"
        elif sys.platform in ("win32", "cygwin"):
            arch = {
                "amd64": "64",
                "x86_64": "64",
                "x86": "32",
                "i386": "32",
                "i686": "32",
                "arm64": "arm64",
            }.get(machine)
            os_name = "win"
        else:
            arch = None
            os_name = sys.platform
        if arch is None:
            raise RuntimeError(f"unsupported platform: {sys.platform} {machine}")
        return cls(f"{os_name}-{arch}")

    def is_windows(self) -> bool:
        return self.value.startswith("win-")

    def is_osx(self) -> bool:
        return self.value.startswith("osx-")

    def is_linux(self) -> bool:
        return self.value.startswith("linux-")

    def is_unix(self) -> bool:
        return self.is_linux() or self.is_osx()


def _major_minor(version: str, package: str) -> tuple[str, str]:
    parts = version.split(".")
    if len(parts) < 2:
        raise ValueError(f"{package} version {version!r} has no minor component")
    return parts[0], parts[1]


def _stdlib_dir(prefix: Path, platform: Platform, py_ver: str) -> Path:
    if platform.is_windows():
        return prefix / "Lib"
    return prefix / "lib" / f"python{py_ver}"


def python_vars(
    prefix: Path, platform: Platform, variant: Mapping[str, str]
) -> dict[str, str]:
    """Python related variables: PYTHON, PY3K, PY_VER, STDLIB_DIR, SP_DIR, NPY_VER."""
    prefix = Path(prefix)
    result: dict[str, str] = {}

    python = prefix / "python.exe" if platform.is_windows() else prefix / "bin" / "python"
    result["PYTHON"] = str(python)

    py_version = variant.get("python")
    if py_version is not None:
        major, minor = _major_minor(py_version, "python")
        py_ver = f"{major}.{minor}"
        stdlib_dir = _stdlib_dir(prefix, platform, py_ver)
        result["PY3K"] = "1" if major == "3" else "0"
        result["PY_VER"] = py_ver
        result["STDLIB_DIR"] = str(stdlib_dir)
        result["SP_DIR"] = str(stdlib_dir / "site-packages")

    np_version = variant.get("numpy")
    if np_version is not None:
        major, minor = _major_minor(np_version, "numpy")
        result["NPY_VER"] = f"{major}.{minor}"
    result["NPY_DISTUTILS_APPEND_FLAGS"] = "1"

    return result


def r_vars(prefix: Path, platform: Platform, variant: Mapping[str, str]) -> dict[str, str]:
    """R related variables: R_VER, R and R_USER."""
    prefix = Path(prefix)
    result: dict[str, str] = {}
    r_ver = variant.get("r-base")
    if r_ver is not None:
        result["R_VER"] = r_ver
        r_bin = prefix / "Scripts" / "R.exe" if platform.is_windows() else prefix / "bin" / "R"
        result["R"] = str(r_bin)
        result["R_USER"] = str(prefix / "Libs" / "R")
    return result


def language_vars(
    prefix: Path, platform: Platform, variant: Mapping[str, str]
) -> dict[str, str]:
    """All language specific variables combined."""
    return {**python_vars(prefix, platform, variant), **r_vars(prefix, platform, variant)}


def _shlib_ext(platform: Platform) -> str:
    if platform.is_windows():
        return ".dll"
    if platform.is_osx():
        return ".dylib"
    if platform.is_linux():
        return ".so"
    return ".not_implemented"


def os_vars(prefix: Path, platform: Platform) -> dict[str, str]:
    """Generic operating system variables and values forwarded from the environment."""
    env = os.environ
    return {
        "CPU_COUNT": env.get("CPU_COUNT", str(os.cpu_count() or 1)),
        "LANG": env.get("LANG", ""),
        "LC_ALL": env.get("LC_ALL", ""),
        "MAKEFLAGS": env.get("MAKEFLAGS", ""),
        "SHLIB_EXT": _shlib_ext(platform),
        "PATH": env.get("PATH", ""),
    }