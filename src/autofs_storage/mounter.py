"""
Mount executor: create the mount point, mount read-only, verify it is live.

Success means the mount table shows the target as an active mount carrying
``ro`` and ``noexec``; the mount command's exit status alone is not trusted.
On failure the mount point directory is removed again.
"""

from pathlib import Path
from typing import Union

from .console import debug
from .fstypes import strategy_for
from .mounts import MountTable
from .schema import BlockDevice, MountFailure, MountRecord

REQUIRED_LIVE_OPTIONS = ("ro", "noexec")


def _remove_empty_dir(path: Path) -> None:
    try:
        path.rmdir()
    except FileNotFoundError:
        pass
    except OSError as exc:
        debug("mount", f"could not remove {path}: {exc}")


def mount_device(
    device: BlockDevice,
    name: str,
    mount_base: Path,
    mount_table: MountTable,
) -> Union[MountRecord, MountFailure]:
    strategy = strategy_for(device.fstype)
    options = list(strategy.options)
    target = Path(mount_base) / name

    def failed(diagnostic: str) -> MountFailure:
        return MountFailure(
            device=device,
            name=name,
            mount_point=str(target),
            driver=strategy.driver,
            options=options,
            diagnostic=diagnostic.strip() or "mount failed without output",
        )

    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return failed(f"cannot create mount point {target}: {exc}")

    result = mount_table.mount(device.path, str(target), strategy.driver, options)
    entry = mount_table.find(str(target))

    if entry is None:
        if result.ok:
            diagnostic = "mount reported success but the target is not an active mount point"
            if result.combined:
                diagnostic += f"\n{result.combined}"
        else:
            diagnostic = result.combined or f"mount exited with status {result.returncode}"
        _remove_empty_dir(target)
        return failed(diagnostic)

    missing = [o for o in REQUIRED_LIVE_OPTIONS if o not in entry.options]
    if missing:
        lacking = (
            f"live mount lacks required options {','.join(missing)} "
            f"(has {','.join(entry.options)})"
        )
        undo = mount_table.unmount(str(target))
        if mount_table.find(str(target)) is not None:
            return failed(
                f"{lacking}; unmount failed, mount is still active\n"
                f"{undo.combined or f'umount exited with status {undo.returncode}'}"
            )
        _remove_empty_dir(target)
        return failed(f"{lacking}; unmounted")

    return MountRecord(
        device=device,
        name=name,
        mount_point=str(target),
        driver=strategy.driver,
        options=options,
    )
