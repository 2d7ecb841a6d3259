"""
Status query: re-derive storage state from the live mount table and the
served tree. Reads nothing a discovery run kept in memory or on disk
besides the completion marker, so it works from any process at any time.
"""

import os
from pathlib import Path
from typing import List, Optional, Set

from jinja2 import Environment

from .config import StoragePaths
from .executor import Executor, make_executor
from .mounts import MountTable, SystemMountTable
from .publisher import disk_usage
from .reporter import make_env
from .schema import DeviceStats, LinkState, StatusMount, StatusSnapshot


def _links(directory: Path, live_targets: Optional[Set[str]] = None) -> List[LinkState]:
    directory = Path(directory)
    if not directory.is_dir():
        return []
    try:
        children = sorted(directory.iterdir())
    except (PermissionError, OSError):
        return []
    states: List[LinkState] = []
    for child in children:
        if not child.is_symlink():
            continue
        target = os.readlink(child)
        if live_targets is None:
            live = Path(target).exists()
        else:
            live = target in live_targets
        states.append(LinkState(name=child.name, path=str(child), target=target, live=live))
    return states


def collect_status(
    paths: Optional[StoragePaths] = None,
    executor: Optional[Executor] = None,
    mount_table: Optional[MountTable] = None,
) -> StatusSnapshot:
    paths = paths or StoragePaths()
    if executor is None:
        executor = make_executor()
    if mount_table is None:
        mount_table = SystemMountTable(executor)

    status = StatusSnapshot()
    marker = Path(paths.storage_marker)
    if marker.exists():
        status.marker_present = True
        try:
            status.marker_text = marker.read_text()
        except (PermissionError, OSError):
            status.marker_text = ""

    base = Path(paths.mount_base)
    for entry in mount_table.list_mounts():
        if Path(entry.target).parent != base:
            continue
        stats = DeviceStats()
        usage = disk_usage(entry.target, executor, paths.stat_timeout)
        if usage is not None:
            stats.capacity, stats.used, stats.available = usage
        status.mounts.append(StatusMount(entry=entry, stats=stats))

    mounted_targets = {m.entry.target for m in status.mounts}
    status.drive_links = _links(paths.drives_dir, mounted_targets)
    status.system_links = _links(paths.system_dir)
    return status


def render_status(status: StatusSnapshot, paths: Optional[StoragePaths] = None, env: Optional[Environment] = None) -> str:
    paths = paths or StoragePaths()
    env = env or make_env()
    return env.get_template("status.txt.j2").render(status=status, mount_base=str(paths.mount_base))
