"""
Publisher: expose verified mounts in the served tree, compute usage figures.

Mounted content is linked, never copied. Usage figures come from ``df`` and
a depth-bounded ``find``; both run under a short timeout so an unresponsive
device yields a sentinel instead of stalling the run.
"""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .config import SYSTEM_PATHS
from .console import debug
from .executor import Executor
from .schema import SENTINEL_MANY, SENTINEL_UNKNOWN, DeviceStats, MountRecord, Outcome


class LinkError(Exception):
    pass


def make_link(target: Path, link: Path) -> Path:
    """
    Point ``link`` at ``target``. An existing symlink is replaced; anything
    else already at ``link`` is left alone and raises LinkError.
    """
    link = Path(link)
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink():
            if os.readlink(link) == str(target):
                return link
            link.unlink()
        elif link.exists():
            raise LinkError(f"{link} exists and is not a symlink")
        link.symlink_to(target, target_is_directory=True)
    except OSError as exc:
        raise LinkError(f"cannot link {link} -> {target}: {exc}") from exc
    return link


def remove_link(link: Path) -> bool:
    link = Path(link)
    if not link.is_symlink():
        return False
    try:
        link.unlink()
        return True
    except OSError as exc:
        debug("publish", f"could not remove {link}: {exc}")
        return False


def publish_mount(record: MountRecord, drives_dir: Path) -> MountRecord:
    """Link the verified mount into the served tree; a link failure keeps the mount."""
    link = Path(drives_dir) / record.name
    try:
        make_link(Path(record.mount_point), link)
    except LinkError as exc:
        record.outcome = Outcome.MOUNTED_NO_LINK
        record.link_error = str(exc)
        record.link_path = None
        return record
    record.outcome = Outcome.PUBLISHED
    record.link_path = str(link)
    return record


def publish_system_paths(
    system_dir: Path,
    system_paths: Iterable[Tuple[str, str]] = SYSTEM_PATHS,
) -> Tuple[List[str], List[str]]:
    """
    Link the fixed whitelist of live system paths. Returns (links created,
    problems). Missing sources are reported, not linked.
    """
    created: List[str] = []
    problems: List[str] = []
    for name, source in system_paths:
        if not Path(source).is_dir():
            problems.append(f"{source} does not exist; not published")
            continue
        try:
            created.append(str(make_link(Path(source), Path(system_dir) / name)))
        except LinkError as exc:
            problems.append(str(exc))
    return created, problems


# --- Usage figures ---


def parse_df(text: str) -> Optional[Tuple[int, int, int]]:
    lines = [l for l in text.splitlines() if l.strip()]
    if len(lines) < 2:
        return None
    parts = lines[-1].split()
    if len(parts) < 3:
        return None
    try:
        return int(parts[0]), int(parts[1]), int(parts[2])
    except ValueError:
        return None


def disk_usage(path: str, executor: Executor, timeout: float) -> Optional[Tuple[int, int, int]]:
    """(capacity, used, available) in bytes, or None when df did not answer in time."""
    r = executor(["df", "-B1", "--output=size,used,avail", path], timeout=timeout)
    if not r.ok:
        debug("publish", f"df {path}: {r.stderr.strip()}")
        return None
    return parse_df(r.stdout)


def count_entries(
    path: str,
    executor: Executor,
    timeout: float,
    depth: int,
) -> Tuple[Union[int, str], Union[int, str]]:
    """
    (files, directories) within ``depth`` levels, never crossing into other
    filesystems. A timeout gives ``many``; no usable output gives ``unknown``.
    """
    r = executor(
        ["find", path, "-xdev", "-mindepth", "1", "-maxdepth", str(depth), "-printf", "%y\n"],
        timeout=timeout,
    )
    if r.timed_out:
        return SENTINEL_MANY, SENTINEL_MANY
    # find exits 1 after permission errors but still lists what it could read
    if not r.ok and not r.stdout.strip():
        return SENTINEL_UNKNOWN, SENTINEL_UNKNOWN
    files = dirs = 0
    for line in r.stdout.splitlines():
        kind = line.strip()
        if kind == "f":
            files += 1
        elif kind == "d":
            dirs += 1
    return files, dirs


def collect_stats(path: str, executor: Executor, timeout: float, depth: int) -> DeviceStats:
    stats = DeviceStats()
    usage = disk_usage(path, executor, timeout)
    if usage is not None:
        stats.capacity, stats.used, stats.available = usage
    stats.files, stats.directories = count_entries(path, executor, timeout, depth)
    return stats
