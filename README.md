# pkgforge

Library pieces for building conda packages. pkgforge handles several of the
steps around a build script: computing the variant hash, collecting the
environment variables, laying out the build directories, running the script,
rewriting ELF run paths, and indexing the finished packages into a local
channel.

## Modules

- **`pkgforge.hash`**: `HashInfo.from_variant(variant, noarch)` computes the
  hash of a variant configuration. The variant is serialized the way
  `json.dumps` does with sorted keys, and the first 7 hex digits of its SHA-1
  are kept. The result also holds a prefix built from the `numpy`, `python`,
  `perl`, `lua` and `r` entries (for example `py311`), or just `py` for
  `NoArchType.PYTHON`. `str(info)` gives `<prefix>h<hash>`, and
  `info.hash_input` is the exact text that was hashed.
- **`pkgforge.envvars`**:
  - The `Platform` enum lists the conda subdirs (`linux-64`, `osx-arm64`,
    `win-64`, `noarch`, …). It has `Platform.current()` and the helpers
    `is_windows()`, `is_osx()`, `is_linux()` and `is_unix()`.
  - `python_vars` returns `PYTHON`, `PY3K`, `PY_VER`, `STDLIB_DIR`, `SP_DIR`,
    `NPY_VER` and `NPY_DISTUTILS_APPEND_FLAGS`.
  - `r_vars` returns `R_VER`, `R` and `R_USER`.
  - `language_vars` combines `python_vars` and `r_vars`.
  - `os_vars` returns `CPU_COUNT` and `SHLIB_EXT`, and passes through `LANG`,
    `LC_ALL`, `MAKEFLAGS` and `PATH` from the environment.
- **`pkgforge.layout`**:
  - `Directories.create(name, recipe_path, output_dir, no_build_id, timestamp)`
    creates `<output_dir>/bld/rattler-build_<name>[_<epoch>]/work`. It then
    describes the work directory, the build prefix (`build_env`) and the host
    prefix. Outside Windows, the host prefix is padded with `_placehold` to
    255 characters.
  - `recreate_directories()` clears the build directory and creates all the
    directories again.
  - `to_dict()` and `from_dict()` serialize the prefixes, the work directory
    and the build directory. The recipe and output directories are not
    serialized.
  - `setup_build_dir` and `GitRev` are also available.
- **`pkgforge.runner`**:
  - `run_process_with_replacements(command, cwd, args, replacements)` runs a
    command with stdin closed. Each line of its output is logged after the
    `(old, new)` replacements are applied in order. If the command exits with
    a non-zero status it raises `BuildFailed`, which carries `returncode`.
  - `ConsoleFormatter` is a `logging.Formatter`. It prints bare messages for
    the package's own INFO records and full records for all others.
- **`pkgforge.elf`**:
  - `SharedObject.test_file(path)` checks for the ELF magic.
  - `SharedObject.from_path(path)` reads the needed libraries and the
    `RPATH`/`RUNPATH` entries.
  - `new_rpath(prefix, encoded_prefix)` turns entries under the encoded prefix
    into `$ORIGIN/...` paths and drops duplicates.
  - `relink(...)` applies the new run path with `patchelf --force-rpath`.
  - Failures raise `ElfRelinkError`.
- **`pkgforge.archive`**:
  - `ArchiveType.from_path(path)` tells `.tar.bz2` packages from `.conda`
    packages by file name, and `extension()` returns the matching extension.
  - `extract_recipe(package, dest_folder)` extracts the package's
    `info/recipe` folder.
- **`pkgforge.index`**:
  - `read_package_record(path)` builds a repodata record from a package's
    `info/index.json`, adding its MD5, SHA-256 and size.
  - `index(output_folder, target_platform=None)` writes
    `<subdir>/repodata.json` for the subdirs of an output folder. It always
    creates `noarch`. When a target platform is given, it indexes only that
    subdir, plus `noarch` if `noarch` has no repodata yet.

## Installation

```
pip install pkgforge
```

To run the test suite:

```
pip install "pkgforge[test]"
pytest
```

## Example

```python
from pkgforge.hash import HashInfo, NoArchType

variant = {"python": "3.11.* *_cpython", "target_platform": "osx-arm64"}
info = HashInfo.from_variant(variant, NoArchType.NONE)
print(info)             # py311h followed by 7 hex digits
print(info.hash_input)  # {"python": "3.11.* *_cpython", "target_platform": "osx-arm64"}
```

`SharedObject.relink` needs `patchelf` on `PATH`.

## What pkgforge does not do

pkgforge is a set of building blocks, not a complete build tool. The following
are not included:

- A command-line program.
- Parsing of recipes and solving of dependencies.
- Fetching of sources.
- Copying built files into a package layout and writing `paths.json`,
  `index.json` or `about.json`.
- Creating `.tar.bz2` or `.conda` archives.
- Relinking of macOS (Mach-O) binaries.
- Running package tests.