"""lsblk backend: one JSON call lists devices, filesystems and mount points."""

import json
from typing import Any, Dict, List, Optional

from ..classify import is_system_mountpoint
from ..console import debug
from ..executor import Executor
from ..schema import BlockDevice
from .common import is_excluded, make_device

LSBLK_CMD = [
    "lsblk", "--json", "--bytes", "--paths",
    "-o", "NAME,SIZE,FSTYPE,LABEL,UUID,MOUNTPOINT,TYPE",
]

_LEAF_TYPES = {"disk", "rom"}


def _mountpoint(node: Dict[str, Any]) -> Optional[str]:
    """Single mount point; with several (newer lsblk), a system one wins."""
    if node.get("mountpoint"):
        return node["mountpoint"]
    points = [mp for mp in node.get("mountpoints") or [] if mp]
    for mp in points:
        if is_system_mountpoint(mp):
            return mp
    return points[0] if points else None


def _wanted(node: Dict[str, Any]) -> bool:
    if node.get("fstype"):
        return True
    devtype = (node.get("type") or "").lower()
    if devtype == "part":
        return True
    # a whole disk with a partition table is listed through its partitions
    return devtype in _LEAF_TYPES and not node.get("children")


def _walk(nodes: List[Dict[str, Any]], out: List[BlockDevice], seen: set) -> None:
    for node in nodes:
        path = node.get("name") or ""
        if not path or is_excluded(path, node.get("type") or ""):
            continue
        if _wanted(node) and path not in seen:
            seen.add(path)
            out.append(make_device(
                path=path,
                size=node.get("size"),
                fstype=node.get("fstype"),
                label=node.get("label"),
                uuid=node.get("uuid"),
                mountpoint=_mountpoint(node),
            ))
        _walk(node.get("children") or [], out, seen)


def parse_lsblk_json(text: str) -> List[BlockDevice]:
    data = json.loads(text)
    devices: List[BlockDevice] = []
    _walk(data.get("blockdevices") or [], devices, set())
    return devices


def run(executor: Executor) -> Optional[List[BlockDevice]]:
    """Devices in lsblk order, or None when lsblk is unavailable or unparseable."""
    r = executor(LSBLK_CMD, timeout=30)
    if not r.ok:
        debug("lsblk", f"lsblk failed ({r.returncode}): {r.stderr.strip()}")
        return None
    try:
        return parse_lsblk_json(r.stdout)
    except (ValueError, AttributeError) as exc:
        debug("lsblk", f"unparseable output: {exc}")
        return None
