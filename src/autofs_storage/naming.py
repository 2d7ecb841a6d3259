"""Mount point / publish names: ``{device}_{fstype}_{label}``, filesystem-legal and unique."""

import re
from pathlib import PurePosixPath
from typing import Iterable, Optional, Set

from .schema import PLACEHOLDER

_ILLEGAL = re.compile(r"[^a-z0-9_-]")


def mount_name(device: str, fstype: str, label: Optional[str]) -> str:
    """
    Name derived from device root name, filesystem tag and label.

    ``/dev/sdb1``, ``ntfs``, ``DATA`` -> ``sdb1_ntfs_data``. A missing label
    becomes ``unknown``; every character outside ``[a-z0-9_-]`` becomes ``_``.
    """
    dev = PurePosixPath(device).name
    label = (label or "").strip() or PLACEHOLDER
    raw = f"{dev}_{fstype or PLACEHOLDER}_{label}".lower()
    return _ILLEGAL.sub("_", raw)


class NameAllocator:
    """
    Hands out unique names within one run.

    The first claimant of a base name gets it unchanged; later ones get
    ``_2``, ``_3``, ... in claim order, so enumeration order fixes the result.
    """

    def __init__(self, taken: Iterable[str] = ()):
        self._taken: Set[str] = set(taken)

    def release(self, name: str) -> None:
        self._taken.discard(name)

    def allocate(self, base: str) -> str:
        name = base
        n = 2
        while name in self._taken:
            name = f"{base}_{n}"
            n += 1
        self._taken.add(name)
        return name
