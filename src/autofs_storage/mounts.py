"""
Mount table capability: list current mounts, mount, unmount.

The mounter and classifier see the kernel mount namespace only through
this interface so tests can swap in an in-memory table.
"""

import json
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .console import debug
from .executor import Executor, RunResult
from .schema import MountEntry

PROC_MOUNTS = Path("/proc/self/mounts")


class MountTable(Protocol):
    def list_mounts(self) -> List[MountEntry]:
        ...

    def find(self, target: str) -> Optional[MountEntry]:
        """Entry mounted exactly at target, or None."""
        ...

    def mount(self, source: str, target: str, fstype: str, options: Sequence[str]) -> RunResult:
        ...

    def unmount(self, target: str) -> RunResult:
        ...


def _strip_source(source: str) -> str:
    # findmnt reports bind and btrfs subvolume sources as /dev/sda1[/sub]
    if source.endswith("]") and "[" in source:
        return source[: source.index("[")]
    return source


def _unescape(field: str) -> str:
    """Decode the octal escapes used in /proc/self/mounts (\\040 for space)."""
    out = []
    i = 0
    while i < len(field):
        if field[i] == "\\" and i + 3 < len(field) and field[i + 1:i + 4].isdigit():
            out.append(chr(int(field[i + 1:i + 4], 8)))
            i += 4
        else:
            out.append(field[i])
            i += 1
    return "".join(out)


def parse_findmnt_json(text: str) -> List[MountEntry]:
    data = json.loads(text)
    entries: List[MountEntry] = []
    for fs in data.get("filesystems", []):
        entries.append(MountEntry(
            source=_strip_source(fs.get("source") or ""),
            target=fs.get("target") or "",
            fstype=fs.get("fstype") or "",
            options=[o for o in (fs.get("options") or "").split(",") if o],
        ))
    return entries


def parse_proc_mounts(text: str) -> List[MountEntry]:
    entries: List[MountEntry] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4:
            continue
        entries.append(MountEntry(
            source=_unescape(parts[0]),
            target=_unescape(parts[1]),
            fstype=parts[2],
            options=[o for o in parts[3].split(",") if o],
        ))
    return entries


class SystemMountTable:
    """Mount table backed by findmnt/mount/umount through an executor."""

    def __init__(self, executor: Executor, proc_mounts: Path = PROC_MOUNTS, timeout: float = 30.0):
        self.executor = executor
        self.proc_mounts = Path(proc_mounts)
        self.timeout = timeout

    def list_mounts(self) -> List[MountEntry]:
        r = self.executor(
            ["findmnt", "--json", "--list", "-o", "SOURCE,TARGET,FSTYPE,OPTIONS"],
            timeout=self.timeout,
        )
        if r.ok and r.stdout.strip():
            try:
                return parse_findmnt_json(r.stdout)
            except (ValueError, AttributeError) as exc:
                debug("mounts", f"unparseable findmnt output: {exc}")
        try:
            return parse_proc_mounts(self.proc_mounts.read_text())
        except (PermissionError, OSError) as exc:
            debug("mounts", f"cannot read {self.proc_mounts}: {exc}")
            return []

    def find(self, target: str) -> Optional[MountEntry]:
        found = None
        for entry in self.list_mounts():
            if entry.target == target:
                found = entry  # last one wins when mounts are stacked
        return found

    def mount(self, source: str, target: str, fstype: str, options: Sequence[str]) -> RunResult:
        cmd = ["mount", "-t", fstype, "-o", ",".join(options), source, target]
        debug("mounts", " ".join(cmd))
        return self.executor(cmd, timeout=self.timeout)

    def unmount(self, target: str) -> RunResult:
        return self.executor(["umount", target], timeout=self.timeout)
