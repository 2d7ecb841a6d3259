"""
Device enumeration with runtime-selected backends.
Every backend returns BlockDevice values in the order the host lists them,
or None when it cannot run here.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from ..console import debug
from ..errors import EnumerationUnavailable
from ..executor import Executor
from ..mounts import MountTable
from ..schema import BlockDevice

from .blkid import run as run_blkid
from .lsblk import run as run_lsblk
from .static import run as run_static

BACKENDS = ("auto", "lsblk", "blkid", "static")


def _try(
    backend: str,
    executor: Executor,
    mount_table: Optional[MountTable],
    devices_file: Optional[Path],
) -> Optional[List[BlockDevice]]:
    if backend == "lsblk":
        return run_lsblk(executor)
    if backend == "blkid":
        return run_blkid(executor, mount_table)
    if backend == "static":
        return run_static(devices_file, mount_table)
    raise ValueError(f"Unknown enumeration backend: {backend}")


def enumerate_devices(
    executor: Executor,
    mount_table: Optional[MountTable] = None,
    backend: str = "auto",
    devices_file: Optional[Path] = None,
) -> Tuple[List[BlockDevice], str]:
    """
    List candidate block devices. Returns (devices, backend actually used).

    ``auto`` tries lsblk, then blkid. An empty list is a valid answer; only
    a host where no backend can run raises EnumerationUnavailable.
    """
    order = ["lsblk", "blkid"] if backend == "auto" else [backend]
    for name in order:
        devices = _try(name, executor, mount_table, devices_file)
        if devices is not None:
            debug("enumerate", f"{name}: {len(devices)} device(s)")
            return devices, name
        debug("enumerate", f"{name} backend unavailable")
    raise EnumerationUnavailable(
        f"No enumeration backend could list block devices (tried: {', '.join(order)})"
    )
