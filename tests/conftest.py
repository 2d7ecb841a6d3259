from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

import pytest

from autofs_storage.config import StoragePaths
from autofs_storage.executor import RunResult
from autofs_storage.schema import MountEntry

FIXTURES = Path(__file__).parent / "fixtures"


class FakeMountTable:
    """In-memory mount namespace. Records every mount/unmount call."""

    def __init__(self, entries: Optional[List[MountEntry]] = None):
        self.entries: List[MountEntry] = list(entries or [])
        self.mount_calls: List[tuple] = []
        self.unmount_calls: List[str] = []
        self.fail: Dict[str, str] = {}  # device -> stderr
        self.silent_noop: Set[str] = set()  # devices whose mount "succeeds" without mounting
        self.live_options: Dict[str, List[str]] = {}  # device -> options the kernel reports
        self.busy: Set[str] = set()  # targets whose unmount fails

    def list_mounts(self) -> List[MountEntry]:
        return list(self.entries)

    def find(self, target: str) -> Optional[MountEntry]:
        found = None
        for e in self.entries:
            if e.target == target:
                found = e
        return found

    def mount(self, source: str, target: str, fstype: str, options: Sequence[str]) -> RunResult:
        self.mount_calls.append((source, target, fstype, list(options)))
        if source in self.fail:
            return RunResult(stdout="", stderr=self.fail[source], returncode=32)
        if source in self.silent_noop:
            return RunResult(stdout="", stderr="", returncode=0)
        opts = self.live_options.get(source, list(options) + ["relatime"])
        self.entries.append(MountEntry(source=source, target=target, fstype=fstype, options=opts))
        return RunResult(stdout="", stderr="", returncode=0)

    def unmount(self, target: str) -> RunResult:
        self.unmount_calls.append(target)
        if target in self.busy:
            return RunResult(stdout="", stderr=f"umount: {target}: target is busy.", returncode=32)
        for i in range(len(self.entries) - 1, -1, -1):
            if self.entries[i].target == target:
                del self.entries[i]
                return RunResult(stdout="", stderr="", returncode=0)
        return RunResult(stdout="", stderr=f"umount: {target}: not mounted.", returncode=32)


def make_fixture_executor(lsblk_fixture: str = "lsblk_output.json", find_timeout: Set[str] = frozenset(), calls=None):
    """Executor that returns fixture content for the commands the storage stage runs."""
    def executor(cmd, timeout=None):
        if calls is not None:
            calls.append((list(cmd), timeout))
        if cmd[0] == "lsblk":
            return RunResult(stdout=(FIXTURES / lsblk_fixture).read_text(), stderr="", returncode=0)
        if cmd[0] == "blkid":
            return RunResult(stdout=(FIXTURES / "blkid_export.txt").read_text(), stderr="", returncode=0)
        if cmd[0] == "df":
            out = "     1B-blocks       Used      Avail\n 1000000000 250000000 750000000\n"
            return RunResult(stdout=out, stderr="", returncode=0)
        if cmd[0] == "find":
            if cmd[1] in find_timeout:
                return RunResult(stdout="", stderr=f"Command timed out after {timeout}s", returncode=-1)
            return RunResult(stdout="d\nf\nf\nf\n", stderr="", returncode=0)
        return RunResult(stdout="", stderr="Command not found", returncode=127)
    return executor


@pytest.fixture
def fixture_executor():
    return make_fixture_executor()


@pytest.fixture
def mount_table() -> FakeMountTable:
    return FakeMountTable([
        MountEntry(source="/dev/sda2", target="/", fstype="ext4", options=["rw", "relatime"]),
        MountEntry(source="/dev/sda3", target="/boot/efi", fstype="vfat", options=["rw", "relatime"]),
    ])


@pytest.fixture
def paths(tmp_path) -> StoragePaths:
    network_marker = tmp_path / "markers" / ".autofs-stage2-complete"
    network_marker.parent.mkdir(parents=True)
    network_marker.write_text("Stage 2 completed\n")
    return StoragePaths(
        mount_base=tmp_path / "mnt",
        web_root=tmp_path / "www",
        log_file=tmp_path / "log" / "storage.log",
        report_file=tmp_path / "log" / "storage-report.json",
        network_marker=network_marker,
        storage_marker=tmp_path / "markers" / ".autofs-stage3-complete",
        stat_timeout=2.0,
    )
