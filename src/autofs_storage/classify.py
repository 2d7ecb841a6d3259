"""
Classification & policy: decide mount or skip for each device.

An ordered predicate chain, first match wins. Decisions depend only on the
device as enumerated (current mount point and filesystem tag), so an
unchanged system yields identical decisions on every run.
"""

from typing import Callable, List, Optional, Tuple

from .fstypes import is_swap, is_volume_container, normalize_tag
from .schema import BlockDevice, MountAction, MountDecision, SkipReason


def is_system_mountpoint(mountpoint: Optional[str]) -> bool:
    """True for ``/`` and anything at or under a ``/boot*`` directory."""
    if not mountpoint:
        return False
    mp = mountpoint.rstrip("/") or "/"
    if mp == "/":
        return True
    return mp.startswith("/boot")


def _system(dev: BlockDevice) -> bool:
    return is_system_mountpoint(dev.mountpoint)


def _mounted(dev: BlockDevice) -> bool:
    return bool(dev.mountpoint)


def _swap(dev: BlockDevice) -> bool:
    return is_swap(dev.fstype)


def _no_filesystem(dev: BlockDevice) -> bool:
    return not normalize_tag(dev.fstype)


def _volume_container(dev: BlockDevice) -> bool:
    return is_volume_container(dev.fstype)


SKIP_CHAIN: List[Tuple[Callable[[BlockDevice], bool], SkipReason]] = [
    (_system, SkipReason.SYSTEM),
    (_mounted, SkipReason.ALREADY_MOUNTED),
    (_swap, SkipReason.SWAP),
    (_no_filesystem, SkipReason.NO_FILESYSTEM),
    (_volume_container, SkipReason.VOLUME_CONTAINER),
]


def classify(device: BlockDevice) -> MountDecision:
    for predicate, reason in SKIP_CHAIN:
        if predicate(device):
            return MountDecision(device=device, action=MountAction.SKIP, reason=reason)
    return MountDecision(device=device, action=MountAction.MOUNT)


def classify_all(devices: List[BlockDevice]) -> List[MountDecision]:
    """Decisions in enumeration order."""
    return [classify(d) for d in devices]
