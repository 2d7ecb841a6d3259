"""
Discovery run schema.

Strongly typed contract between the storage steps. The enumerator produces
BlockDevice values, the classifier turns them into MountDecision values,
the mounter and publisher produce MountRecord / MountFailure values, and
the reporter accumulates everything into a DiscoveryReport.
"""

from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

PLACEHOLDER = "unknown"
SENTINEL_UNKNOWN = "unknown"
SENTINEL_MANY = "many"


# --- Enumerator ---


class DeviceRole(str, Enum):
    DATA = "data"
    SYSTEM = "system"
    SWAP = "swap"
    BOOT = "boot"


class BlockDevice(BaseModel):
    """A block device carrying filesystem metadata."""

    path: str  # e.g. "/dev/sdb1"
    size: int = 0  # bytes
    fstype: str = ""  # empty when nothing was detected
    label: str = PLACEHOLDER
    uuid: str = PLACEHOLDER
    mountpoint: Optional[str] = None
    role: DeviceRole = DeviceRole.DATA

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name


# --- Classifier ---


class MountAction(str, Enum):
    MOUNT = "mount"
    SKIP = "skip"
    FAIL = "fail"


class SkipReason(str, Enum):
    ALREADY_MOUNTED = "already_mounted"
    SYSTEM = "system"
    SWAP = "swap"
    NO_FILESYSTEM = "no_filesystem"
    VOLUME_CONTAINER = "volume_container"  # LUKS, LVM PV, RAID member: reported only


class MountDecision(BaseModel):
    device: BlockDevice
    action: MountAction
    reason: Optional[SkipReason] = None


# --- Mounter / Publisher ---


class Outcome(str, Enum):
    """Terminal per-device state for one run."""

    SKIPPED_SYSTEM = "skipped_system"
    SKIPPED_MOUNTED = "skipped_mounted"
    SKIPPED_SWAP = "skipped_swap"
    SKIPPED_NO_FS = "skipped_no_fs"
    SKIPPED_CONTAINER = "skipped_container"
    PUBLISHED = "published"
    MOUNTED_NO_LINK = "mounted_no_link"
    FAILED = "failed"


SKIP_OUTCOMES = {
    SkipReason.SYSTEM: Outcome.SKIPPED_SYSTEM,
    SkipReason.ALREADY_MOUNTED: Outcome.SKIPPED_MOUNTED,
    SkipReason.SWAP: Outcome.SKIPPED_SWAP,
    SkipReason.NO_FILESYSTEM: Outcome.SKIPPED_NO_FS,
    SkipReason.VOLUME_CONTAINER: Outcome.SKIPPED_CONTAINER,
}


class DeviceStats(BaseModel):
    """Usage figures for a mounted device. Counts fall back to sentinels."""

    capacity: Optional[int] = None  # bytes; None when df was unavailable
    used: Optional[int] = None
    available: Optional[int] = None
    files: Union[int, str] = SENTINEL_UNKNOWN
    directories: Union[int, str] = SENTINEL_UNKNOWN


class MountRecord(BaseModel):
    """A device that was mounted and verified live."""

    device: BlockDevice
    name: str
    mount_point: str
    link_path: Optional[str] = None
    driver: str
    options: List[str] = Field(default_factory=list)
    stats: DeviceStats = Field(default_factory=DeviceStats)
    outcome: Outcome = Outcome.PUBLISHED
    link_error: Optional[str] = None


class MountFailure(BaseModel):
    """A mount attempt that did not produce a live mount point."""

    device: BlockDevice
    name: str
    mount_point: str
    driver: str
    options: List[str] = Field(default_factory=list)
    diagnostic: str = ""


# --- Mount table ---


class MountEntry(BaseModel):
    """One row of the live mount table."""

    source: str
    target: str
    fstype: str = ""
    options: List[str] = Field(default_factory=list)


# --- Root report ---


class DiscoveryReport(BaseModel):
    """
    Everything one discovery run decided and did, in enumeration order.
    Serialized as storage-report.json.
    """

    meta: dict = Field(default_factory=dict)  # backend, timestamps, paths
    decisions: List[MountDecision] = Field(default_factory=list)
    records: List[MountRecord] = Field(default_factory=list)
    failures: List[MountFailure] = Field(default_factory=list)
    system_links: List[str] = Field(default_factory=list)
    warnings: List[dict] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    def add_decision(self, decision: MountDecision) -> None:
        self.decisions.append(decision)

    def add_record(self, record: MountRecord) -> None:
        self.records.append(record)

    def add_failure(self, failure: MountFailure) -> None:
        self.failures.append(failure)

    def warn(self, source: str, message: str) -> None:
        self.warnings.append({"source": source, "message": message, "severity": "warning"})

    @property
    def mounted_count(self) -> int:
        return len(self.records)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def skipped_count(self) -> int:
        return sum(1 for d in self.decisions if d.action == MountAction.SKIP)

    @property
    def total_size(self) -> int:
        """Bytes across the devices mounted in this run."""
        return sum(r.device.size for r in self.records)

    def skip_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for d in self.decisions:
            if d.action == MountAction.SKIP and d.reason is not None:
                counts[d.reason.value] = counts.get(d.reason.value, 0) + 1
        return counts


# --- Status tool ---


class LinkState(BaseModel):
    name: str
    path: str
    target: str
    live: bool


class StatusMount(BaseModel):
    entry: MountEntry
    stats: DeviceStats = Field(default_factory=DeviceStats)


class StatusSnapshot(BaseModel):
    """Live state re-derived by the status tool. Never built from a report."""

    marker_present: bool = False
    marker_text: str = ""
    mounts: List[StatusMount] = Field(default_factory=list)
    drive_links: List[LinkState] = Field(default_factory=list)
    system_links: List[LinkState] = Field(default_factory=list)
