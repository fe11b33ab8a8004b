import pytest

from pkgforge.hash import HashInfo, NoArchType


def _sample_variant():
    return {
        "rust_compiler": "rust",
        "build_platform": "osx-64",
        "c_compiler": "clang",
        "target_platform": "osx-arm64",
        "openssl": "3",
        "CONDA_BUILD_SYSROOT": "/Applications/Xcode_13.2.1.app/Contents/Developer/Platforms/MacOSX.platform/Developer/SDKs/MacOSX11.0.sdk",
        "channel_targets": "conda-forge main",
        "python": "3.11.* *_cpython",
        "c_compiler_version": "14",
    }


def test_hash():
    info = HashInfo.from_variant(_sample_variant(), NoArchType.NONE)
    assert str(info) == "py311h507f6e9"


def test_hash_independent_of_insertion_order():
    variant = _sample_variant()
    reversed_variant = dict(reversed(list(variant.items())))
    assert HashInfo.from_variant(reversed_variant, NoArchType.NONE) == HashInfo.from_variant(
        variant, NoArchType.NONE
    )


def test_hash_input_layout():
    info = HashInfo.from_variant({"target_platform": "linux-64"}, NoArchType.NONE)
    assert info.hash_input == '{"target_platform": "linux-64"}'
    assert len(info.hash) == 7
    assert info.hash_prefix == ""
    assert str(info) == f"h{info.hash}"


def test_hash_input_sorted_keys():
    info = HashInfo.from_variant({"b": "2", "a": "1"}, NoArchType.NONE)
    assert info.hash_input == '{"a": "1", "b": "2"}'


def test_noarch_python_prefix():
    info = HashInfo.from_variant({"numpy": "1.21", "python": "3.10"}, NoArchType.PYTHON)
    assert info.hash_prefix == "py"


@pytest.mark.parametrize(
    ("variant", "expected"),
    [
        ({"python": "3.11.* *_cpython"}, "py311"),
        ({"python": "3.10", "numpy": "1.21"}, "np121py310"),
        ({"perl": "5.26.2"}, "pl5262"),
        ({"lua": "5.4"}, "lua54"),
        ({"unrelated": "1.2"}, ""),
    ],
)
def test_hash_prefix(variant, expected):
    assert HashInfo.from_variant(variant, NoArchType.NONE).hash_prefix == expected


def test_noarch_type_is_python():
    assert NoArchType.PYTHON.is_python()
    assert not NoArchType.GENERIC.is_python()
    assert not NoArchType.NONE.is_python()