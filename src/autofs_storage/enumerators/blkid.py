"""blkid backend: filesystem tags from ``blkid -o export``, mount points from the mount table."""

from pathlib import Path
from typing import Dict, List, Optional

from ..console import debug
from ..executor import Executor
from ..mounts import MountTable
from ..schema import BlockDevice
from .common import is_excluded, make_device

SYS_BLOCK = Path("/sys/class/block")


def parse_blkid_export(text: str) -> List[Dict[str, str]]:
    """Split ``KEY=value`` blocks separated by blank lines."""
    blocks: List[Dict[str, str]] = []
    current: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line:
            if current:
                blocks.append(current)
                current = {}
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            current[k.strip()] = v.strip().strip('"')
    if current:
        blocks.append(current)
    return blocks


def _size_from_sys(name: str, sys_block: Path) -> int:
    try:
        return int((sys_block / name / "size").read_text().strip()) * 512
    except (OSError, ValueError):
        return 0


def run(
    executor: Executor,
    mount_table: Optional[MountTable] = None,
    sys_block: Path = SYS_BLOCK,
) -> Optional[List[BlockDevice]]:
    r = executor(["blkid", "-o", "export"], timeout=30)
    # blkid exits 2 when it found nothing to report
    if r.returncode == 2 and not r.stdout.strip():
        return []
    if not r.ok:
        debug("blkid", f"blkid failed ({r.returncode}): {r.stderr.strip()}")
        return None

    mounted: Dict[str, str] = {}
    if mount_table is not None:
        for entry in mount_table.list_mounts():
            mounted.setdefault(entry.source, entry.target)

    devices: List[BlockDevice] = []
    for block in parse_blkid_export(r.stdout):
        path = block.get("DEVNAME", "")
        if not path or is_excluded(path):
            continue
        devices.append(make_device(
            path=path,
            size=_size_from_sys(Path(path).name, Path(sys_block)),
            fstype=block.get("TYPE"),
            label=block.get("LABEL"),
            uuid=block.get("UUID"),
            mountpoint=mounted.get(path),
        ))
    return devices
