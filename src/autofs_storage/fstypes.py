"""Filesystem kind lookup: which driver and options each filesystem mounts with."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Tuple

# Every mount gets these, whatever the driver.
BASELINE_OPTIONS: Tuple[str, ...] = ("ro", "noexec", "nosuid", "nodev")


class FsKind(str, Enum):
    NTFS = "ntfs"
    EXFAT = "exfat"
    FAT = "vfat"
    EXT = "ext"
    XFS = "xfs"
    BTRFS = "btrfs"
    HFSPLUS = "hfsplus"
    OPTICAL = "optical"
    NATIVE_OTHER = "native"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MountStrategy:
    kind: FsKind
    driver: str  # passed to mount -t
    extra_options: Tuple[str, ...] = ()

    @property
    def options(self) -> Tuple[str, ...]:
        return BASELINE_OPTIONS + self.extra_options


_WINDOWS_PERMS = ("umask=022",)

# Native kinds mount with the detected tag itself as the driver name.
NATIVE = "<native>"

STRATEGIES: Dict[FsKind, MountStrategy] = {
    FsKind.NTFS: MountStrategy(FsKind.NTFS, "ntfs-3g", _WINDOWS_PERMS + ("windows_names", "recover")),
    FsKind.EXFAT: MountStrategy(FsKind.EXFAT, "exfat", _WINDOWS_PERMS),
    FsKind.FAT: MountStrategy(FsKind.FAT, "vfat", _WINDOWS_PERMS),
    FsKind.EXT: MountStrategy(FsKind.EXT, NATIVE),
    FsKind.XFS: MountStrategy(FsKind.XFS, "xfs", ("nouuid",)),
    FsKind.BTRFS: MountStrategy(FsKind.BTRFS, "btrfs", ("subvol=/",)),
    FsKind.HFSPLUS: MountStrategy(FsKind.HFSPLUS, "hfsplus"),
    FsKind.OPTICAL: MountStrategy(FsKind.OPTICAL, NATIVE),
    FsKind.NATIVE_OTHER: MountStrategy(FsKind.NATIVE_OTHER, NATIVE),
    FsKind.UNKNOWN: MountStrategy(FsKind.UNKNOWN, "auto"),
}

# Detected tag -> kind. Tags not listed here resolve to UNKNOWN.
_TAG_KINDS: Dict[str, FsKind] = {
    "ntfs": FsKind.NTFS,
    "ntfs3": FsKind.NTFS,
    "exfat": FsKind.EXFAT,
    "vfat": FsKind.FAT,
    "fat": FsKind.FAT,
    "fat16": FsKind.FAT,
    "fat32": FsKind.FAT,
    "msdos": FsKind.FAT,
    "ext2": FsKind.EXT,
    "ext3": FsKind.EXT,
    "ext4": FsKind.EXT,
    "xfs": FsKind.XFS,
    "btrfs": FsKind.BTRFS,
    "hfsplus": FsKind.HFSPLUS,
    "hfs+": FsKind.HFSPLUS,
    "iso9660": FsKind.OPTICAL,
    "udf": FsKind.OPTICAL,
    "f2fs": FsKind.NATIVE_OTHER,
    "jfs": FsKind.NATIVE_OTHER,
    "reiserfs": FsKind.NATIVE_OTHER,
    "nilfs2": FsKind.NATIVE_OTHER,
}

# Tags that identify an encrypted, LVM or RAID container rather than a filesystem.
VOLUME_CONTAINER_TAGS = frozenset({
    "crypto_luks",
    "lvm2_member",
    "linux_raid_member",
    "zfs_member",
    "bcache",
    "bitlocker",
})

SWAP_TAGS = frozenset({"swap", "swsuspend"})


def normalize_tag(fstype: str) -> str:
    return (fstype or "").strip().lower()


def kind_of(fstype: str) -> FsKind:
    return _TAG_KINDS.get(normalize_tag(fstype), FsKind.UNKNOWN)


def strategy_for(fstype: str) -> MountStrategy:
    """Driver and full option list for a detected filesystem tag."""
    tag = normalize_tag(fstype)
    strategy = STRATEGIES[kind_of(tag)]
    if strategy.driver == NATIVE:
        return replace(strategy, driver=tag)
    return strategy


def is_swap(fstype: str) -> bool:
    return normalize_tag(fstype) in SWAP_TAGS


def is_volume_container(fstype: str) -> bool:
    return normalize_tag(fstype) in VOLUME_CONTAINER_TAGS
