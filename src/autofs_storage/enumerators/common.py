"""Shared helpers for enumeration backends."""

import re
from pathlib import PurePosixPath
from typing import Optional

from ..classify import is_system_mountpoint
from ..fstypes import is_swap
from ..schema import PLACEHOLDER, BlockDevice, DeviceRole

# Loop devices, RAM disks and device-mapper snapshot internals
_EXCLUDED_NAME = re.compile(r"^(loop\d*|ram\d*|zram\d*)$|-(cow|real)$")
EXCLUDED_TYPES = frozenset({"loop"})


def is_excluded(path: str, devtype: str = "") -> bool:
    if (devtype or "").lower() in EXCLUDED_TYPES:
        return True
    return bool(_EXCLUDED_NAME.search(PurePosixPath(path).name))


def role_for(fstype: str, mountpoint: Optional[str]) -> DeviceRole:
    if is_system_mountpoint(mountpoint):
        return DeviceRole.BOOT if mountpoint.rstrip("/").startswith("/boot") else DeviceRole.SYSTEM
    if is_swap(fstype):
        return DeviceRole.SWAP
    return DeviceRole.DATA


def clean_mountpoint(mountpoint: Optional[str]) -> Optional[str]:
    """lsblk shows active swap as ``[SWAP]``; that is not a mount point."""
    if not mountpoint or mountpoint.startswith("["):
        return None
    return mountpoint


def make_device(
    path: str,
    size: object = 0,
    fstype: Optional[str] = None,
    label: Optional[str] = None,
    uuid: Optional[str] = None,
    mountpoint: Optional[str] = None,
) -> BlockDevice:
    """Build a BlockDevice, substituting placeholders for missing metadata."""
    try:
        size_bytes = int(size or 0)
    except (TypeError, ValueError):
        size_bytes = 0
    fstype = (fstype or "").strip()
    mountpoint = clean_mountpoint(mountpoint)
    return BlockDevice(
        path=path,
        size=size_bytes,
        fstype=fstype,
        label=(label or "").strip() or PLACEHOLDER,
        uuid=(uuid or "").strip() or PLACEHOLDER,
        mountpoint=mountpoint,
        role=role_for(fstype, mountpoint),
    )
