"""Build-string hash computation for a variant configuration."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

HASH_LENGTH = 7

_PREFIXES = {
    "numpy": "np",
    "python": "py",
    "perl": "pl",
    "lua": "lua",
    "r": "r",
}

_PREFIX_ORDER = ("np", "py", "pl", "lua", "r", "mro")


class NoArchType(Enum):
    """The kind of architecture independence of a package."""

    NONE = "none"
    GENERIC = "generic"
    PYTHON = "python"

    def is_python(self) -> bool:
        """True for `noarch: python` packages."""
        return self is NoArchType.PYTHON


def _short_version_from_spec(spec: str, length: int) -> str:
    """Join the first `length` dot-separated parts of a version spec."""
    return "".join(spec.split(".")[:length])


def _hash_prefix(variant: Mapping[str, str], noarch: NoArchType) -> str:
    if noarch.is_python():
        return "py"

    found: dict[str, str] = {}
    for key, spec in variant.items():
        prefix = _PREFIXES.get(key)
        if prefix is None:
            continue
        length = 3 if prefix == "pl" else 2
        found[prefix] = _short_version_from_spec(spec, length)

    return "".join(f"{key}{found[key]}" for key in _PREFIX_ORDER if key in found)


def _hash_variant(variant: Mapping[str, str]) -> tuple[str, str]:
    # Same layout as Python's default json.dumps, with keys sorted.
    text = json.dumps(dict(variant), sort_keys=True, ensure_ascii=False)
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH], text


@dataclass(frozen=True)
class HashInfo:
    """The hash of a variant together with the input that produced it."""

    hash: str
    hash_input: str
    hash_prefix: str

    @classmethod
    def from_variant(cls, variant: Mapping[str, str], noarch: NoArchType) -> "HashInfo":
        """Compute the hash info for the given variant."""
        digest, text = _hash_variant(variant)
        return cls(hash=digest, hash_input=text, hash_prefix=_hash_prefix(variant, noarch))

    def __str__(self) -> str:
        return f"{self.hash_prefix}h{self.hash}"