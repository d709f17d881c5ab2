"""Kernel module name normalization."""

from __future__ import annotations

MODULE_SUFFIXES = (".ko.zst", ".ko.xz", ".ko.gz", ".ko", ".o")


def strip_module_suffix(name: str) -> str:
    for suffix in MODULE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def module_name(path_or_name: str) -> str:
    """``/lib/modules/6.1/kernel/fs/ext4/ext4.ko.xz`` -> ``ext4``."""
    return strip_module_suffix(path_or_name.rsplit("/", 1)[-1])
