"""Conda build building blocks: variant hashing, build environment variables, build directories, script running, ELF relinking, archive reading and channel indexing."""

__version__ = "0.1.0"