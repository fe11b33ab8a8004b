import io
import tarfile
import zipfile

import pytest
import zstandard

from pkgforge.archive import ArchiveType, extract_recipe

FILES = {
    "info/index.json": b'{"name": "foo"}',
    "info/recipe/recipe.yaml": b"package:\n  name: foo\n",
    "info/recipe/sub/build.sh": b"echo hi\n",
    "lib/libfoo.txt": b"payload",
}


def _tar_bytes(files, compression=""):
    buf = io.BytesIO()
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(fileobj=buf, mode=mode) as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def _write_tar_bz2(path, files):
    path.write_bytes(_tar_bytes(files, "bz2"))
    return path


def _write_conda(path, files, with_info=True):
    info = {k: v for k, v in files.items() if k.startswith("info/")}
    pkg = {k: v for k, v in files.items() if not k.startswith("info/")}
    compressor = zstandard.ZstdCompressor()
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("metadata.json", '{"conda_pkg_format_version": 2}')
        zf.writestr("pkg-foo-1.0-h0.tar.zst", compressor.compress(_tar_bytes(pkg)))
        if with_info:
            zf.writestr("info-foo-1.0-h0.tar.zst", compressor.compress(_tar_bytes(info)))
    return path


@pytest.mark.parametrize(
    "name, expected",
    [
        ("foo-1.0-h0.tar.bz2", ArchiveType.TAR_BZ2),
        ("dir/foo-1.0-h0.conda", ArchiveType.CONDA),
    ],
)
def test_from_path(name, expected):
    assert ArchiveType.from_path(name) is expected


@pytest.mark.parametrize("name", ["foo.zip", "foo.tar.gz", ".conda"])
def test_from_path_rejects_unknown(name):
    with pytest.raises(ValueError):
        ArchiveType.from_path(name)


def test_extension():
    assert ArchiveType.TAR_BZ2.extension() == ".tar.bz2"
    assert ArchiveType.CONDA.extension() == ".conda"


def test_extension_round_trip():
    for kind in ArchiveType:
        assert ArchiveType.from_path("pkg-1-0" + kind.extension()) is kind


def _check_extracted(dest):
    assert (dest / "recipe.yaml").read_bytes() == FILES["info/recipe/recipe.yaml"]
    assert (dest / "sub" / "build.sh").read_bytes() == FILES["info/recipe/sub/build.sh"]
    assert not (dest / "index.json").exists()
    assert not (dest / "libfoo.txt").exists()
    assert sorted(p.name for p in dest.rglob("*") if p.is_file()) == ["build.sh", "recipe.yaml"]


def test_extract_recipe_tar_bz2(tmp_path):
    package = _write_tar_bz2(tmp_path / "foo-1.0-h0.tar.bz2", FILES)
    dest = tmp_path / "out"
    extract_recipe(package, dest)
    _check_extracted(dest)


def test_extract_recipe_conda(tmp_path):
    package = _write_conda(tmp_path / "foo-1.0-h0.conda", FILES)
    dest = tmp_path / "out"
    extract_recipe(package, dest)
    _check_extracted(dest)


def test_extract_recipe_conda_without_info(tmp_path):
    package = _write_conda(tmp_path / "foo-1.0-h0.conda", FILES, with_info=False)
    with pytest.raises(ValueError):
        extract_recipe(package, tmp_path / "out")


def test_extract_recipe_unknown_type(tmp_path):
    package = tmp_path / "foo.zip"
    package.write_bytes(b"")
    with pytest.raises(ValueError):
        extract_recipe(package, tmp_path / "out")


def test_extract_recipe_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        extract_recipe(tmp_path / "missing.tar.bz2", tmp_path / "out")