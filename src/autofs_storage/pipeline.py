"""
Discovery run: enumerate -> classify -> name -> mount -> publish -> report,
one device at a time, in enumeration order.

The run assumes it is the only writer of the mount table and the served
tree while it executes. Nothing enforces that beyond the stage markers;
concurrent external mounts or unmounts give undefined results.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from . import console
from .classify import classify, is_system_mountpoint
from .config import SYSTEM_PATHS, StoragePaths
from .enumerators import enumerate_devices
from .errors import EnvironmentFailure, PrerequisiteMissing
from .executor import Executor, make_executor
from .mounter import mount_device
from .mounts import MountTable, SystemMountTable
from .naming import NameAllocator, mount_name
from .publisher import collect_stats, publish_mount, publish_system_paths, remove_link
from .reporter import record_failure, record_mounted, record_skip, save_report, write_marker
from .schema import BlockDevice, DiscoveryReport, MountAction, MountFailure

logger = logging.getLogger("autofs_storage")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def check_prerequisites(paths: StoragePaths) -> None:
    if not Path(paths.network_marker).exists():
        raise PrerequisiteMissing(
            f"Network stage marker {paths.network_marker} not found. "
            "Run the network configuration stage first."
        )


def prepare_directories(paths: StoragePaths) -> None:
    for d in (paths.mount_base, paths.drives_dir, paths.system_dir):
        try:
            Path(d).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise EnvironmentFailure(f"Cannot create {d}: {exc}") from exc


def _names_in_use(mount_table: MountTable, mount_base: Path) -> List[str]:
    base = Path(mount_base)
    return [Path(e.target).name for e in mount_table.list_mounts() if Path(e.target).parent == base]


def _refresh_mountpoint(device: BlockDevice, mount_table: MountTable) -> BlockDevice:
    """
    Pick up mounts made since enumeration, earlier in this same run included.
    A device mounted in several places counts as system if any of them is.
    """
    targets = [device.mountpoint] if device.mountpoint else []
    targets += [e.target for e in mount_table.list_mounts() if e.source == device.path]
    if not targets:
        return device
    current = next((t for t in targets if is_system_mountpoint(t)), targets[0])
    if current == device.mountpoint:
        return device
    return device.model_copy(update={"mountpoint": current})


def run_discovery(
    paths: Optional[StoragePaths] = None,
    executor: Optional[Executor] = None,
    mount_table: Optional[MountTable] = None,
    backend: str = "auto",
    devices_file: Optional[Path] = None,
    publish_system: bool = True,
    system_paths: Iterable[Tuple[str, str]] = SYSTEM_PATHS,
) -> DiscoveryReport:
    """Run the storage stage once. Raises only for prerequisite or environment failures."""
    paths = paths or StoragePaths()
    check_prerequisites(paths)
    if executor is None:
        executor = make_executor()
    if mount_table is None:
        mount_table = SystemMountTable(executor)

    console.banner("Storage System Preparation")
    prepare_directories(paths)
    report = DiscoveryReport(meta={
        "started": _now(),
        "mount_base": str(paths.mount_base),
        "web_root": str(paths.web_root),
    })

    console.banner("Storage Device Discovery")
    devices, used = enumerate_devices(executor, mount_table, backend=backend, devices_file=devices_file)
    report.meta["backend"] = used
    if not devices:
        console.warn("No storage devices found")
        logger.info("no block devices found (backend=%s)", used)
        report.warn("enumerate", "No block devices found")
    else:
        console.info(f"Found {len(devices)} device(s) via {used}")
        for d in devices:
            console.info(f"  {d.path}: TYPE={d.fstype or '-'} LABEL={d.label} SIZE={console.human_size(d.size)}")

    console.banner("Processing Storage Devices")
    allocator = NameAllocator(_names_in_use(mount_table, paths.mount_base))
    for device in devices:
        device = _refresh_mountpoint(device, mount_table)
        decision = classify(device)
        if decision.action == MountAction.SKIP:
            record_skip(report, decision, logger)
            continue

        name = allocator.allocate(mount_name(device.path, device.fstype, device.label))
        console.info(f"Mounting {device.path} ({device.fstype}) at {Path(paths.mount_base) / name}")
        result = mount_device(device, name, paths.mount_base, mount_table)
        if isinstance(result, MountFailure):
            allocator.release(name)
            record_failure(report, result, logger)
            continue

        result.stats = collect_stats(result.mount_point, executor, paths.stat_timeout, paths.count_depth)
        publish_mount(result, paths.drives_dir)
        record_mounted(report, result, logger)

    if publish_system:
        created, problems = publish_system_paths(paths.system_dir, system_paths)
        report.system_links = created
        for problem in problems:
            report.warn("publish", problem)
            logger.warning("system path: %s", problem)
            console.warn(problem)

    report.meta["finished"] = _now()
    try:
        save_report(report, paths.report_file)
    except OSError as exc:
        console.warn(f"Could not save report to {paths.report_file}: {exc}")
    try:
        write_marker(paths.storage_marker, report)
    except OSError as exc:
        logger.error("cannot write marker %s: %s", paths.storage_marker, exc)
        raise EnvironmentFailure(
            f"Cannot write completion marker {paths.storage_marker}: {exc} "
            f"(mounted={report.mounted_count} failed={report.failed_count})"
        ) from exc
    logger.info(
        "run complete mounted=%d failed=%d skipped=%d total_size=%d",
        report.mounted_count, report.failed_count, report.skipped_count, report.total_size,
    )
    return report


def release_all(
    paths: Optional[StoragePaths] = None,
    executor: Optional[Executor] = None,
    mount_table: Optional[MountTable] = None,
) -> Tuple[List[str], List[str]]:
    """
    Unmount everything this stage mounted under the mount base and drop the
    matching drive links. Returns (released targets, problems).
    """
    paths = paths or StoragePaths()
    if executor is None:
        executor = make_executor()
    if mount_table is None:
        mount_table = SystemMountTable(executor)

    released: List[str] = []
    problems: List[str] = []
    base = Path(paths.mount_base)
    for entry in mount_table.list_mounts():
        target = Path(entry.target)
        if target.parent != base or is_system_mountpoint(entry.target):
            continue
        r = mount_table.unmount(entry.target)
        if mount_table.find(entry.target) is not None:
            msg = f"could not unmount {entry.target}: {r.combined or r.returncode}"
            problems.append(msg)
            logger.error("release %s", msg)
            continue
        remove_link(paths.drives_dir / target.name)
        try:
            target.rmdir()
        except OSError as exc:
            console.debug("release", f"could not remove {target}: {exc}")
        released.append(entry.target)
        logger.info("released %s (%s)", entry.target, entry.source)
    return released, problems
