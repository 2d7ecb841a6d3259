"""Static backend: a JSON device table, for debugging on hosts where probing misbehaves.

The file holds a list of objects with ``path``, ``fstype`` and optionally
``size``, ``label``, ``uuid``, ``mountpoint``. Live mount points from the
mount table override the file so re-runs stay idempotent.
"""

import json
from pathlib import Path
from typing import List, Optional

from ..console import debug
from ..mounts import MountTable
from ..schema import BlockDevice
from .common import is_excluded, make_device


def run(devices_file: Optional[Path], mount_table: Optional[MountTable] = None) -> Optional[List[BlockDevice]]:
    if devices_file is None:
        return None
    try:
        rows = json.loads(Path(devices_file).read_text())
    except (OSError, ValueError) as exc:
        debug("static", f"cannot load {devices_file}: {exc}")
        return None
    if not isinstance(rows, list):
        debug("static", f"{devices_file}: expected a list of devices")
        return None

    mounted = {}
    if mount_table is not None:
        for entry in mount_table.list_mounts():
            mounted.setdefault(entry.source, entry.target)

    devices: List[BlockDevice] = []
    for row in rows:
        path = row.get("path", "") if isinstance(row, dict) else ""
        if not path or is_excluded(path):
            continue
        devices.append(make_device(
            path=path,
            size=row.get("size", 0),
            fstype=row.get("fstype"),
            label=row.get("label"),
            uuid=row.get("uuid"),
            mountpoint=mounted.get(path) or row.get("mountpoint"),
        ))
    return devices
