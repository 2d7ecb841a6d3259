"""
End-to-end discovery runs: fixture executor + in-memory mount table + tmp_path tree.
"""

import os

import pytest

from autofs_storage import console
from autofs_storage.errors import EnumerationUnavailable, EnvironmentFailure, PrerequisiteMissing
from autofs_storage.executor import RunResult
from autofs_storage.pipeline import release_all, run_discovery
from autofs_storage.reporter import load_report, render_summary
from autofs_storage.schema import (
    SENTINEL_MANY,
    MountAction,
    MountEntry,
    Outcome,
    SkipReason,
)

from conftest import FakeMountTable, make_fixture_executor


def _run(paths, table, executor=None, **kw):
    kw.setdefault("publish_system", False)
    return run_discovery(paths, executor=executor or make_fixture_executor(), mount_table=table, **kw)


def test_scenario_a_mount_ntfs_skip_root(paths):
    table = FakeMountTable([MountEntry(source="/dev/sda2", target="/", fstype="ext4", options=["rw"])])
    report = _run(paths, table, make_fixture_executor("lsblk_scenario_a.json"))

    assert (report.mounted_count, report.skipped_count, report.failed_count) == (1, 1, 0)
    link = paths.drives_dir / "sda1_ntfs_win"
    assert link.is_symlink()
    assert os.readlink(link) == str(paths.mount_base / "sda1_ntfs_win")
    skip = [d for d in report.decisions if d.action == MountAction.SKIP][0]
    assert skip.device.path == "/dev/sda2"
    assert skip.reason == SkipReason.SYSTEM

    summary = render_summary(report)
    assert "Mounted:   1" in summary
    assert "Skipped:   1" in summary
    assert "Failed:    0" in summary


def test_full_run_decisions_in_enumeration_order(paths, mount_table):
    report = _run(paths, mount_table)
    assert [d.device.path for d in report.decisions] == [
        "/dev/sda1", "/dev/sda2", "/dev/sda3", "/dev/sda4",
        "/dev/sdb1", "/dev/sdb2", "/dev/sdb3", "/dev/sr0",
    ]
    assert report.skip_counts() == {
        "system": 2, "swap": 1, "no_filesystem": 1, "volume_container": 1,
    }
    assert [r.name for r in report.records] == [
        "sda1_ntfs_win", "sdb1_ntfs_data", "sr0_iso9660_ubuntu_22_04",
    ]
    assert report.total_size == 209715200000 + 32000000000 + 3654957056
    assert report.meta["backend"] == "lsblk"


def test_mounted_records_are_read_only_and_live(paths, mount_table):
    report = _run(paths, mount_table)
    for record in report.records:
        live = mount_table.find(record.mount_point)
        assert live is not None
        assert "ro" in live.options and "noexec" in live.options
        assert record.outcome == Outcome.PUBLISHED


def test_system_devices_never_touched(paths, mount_table):
    _run(paths, mount_table)
    _run(paths, mount_table)
    release_all(paths, mount_table=mount_table)
    touched = [c[0] for c in mount_table.mount_calls] + mount_table.unmount_calls
    assert "/dev/sda2" not in touched and "/dev/sda3" not in touched
    assert "/" not in touched and "/boot/efi" not in touched
    assert mount_table.find("/").source == "/dev/sda2"


def test_second_run_is_idempotent(paths, mount_table):
    first = _run(paths, mount_table)
    calls_after_first = len(mount_table.mount_calls)
    second = _run(paths, mount_table)

    assert second.mounted_count == 0
    assert len(mount_table.mount_calls) == calls_after_first
    already = [d.device.path for d in second.decisions if d.reason == SkipReason.ALREADY_MOUNTED]
    assert already == [r.device.path for r in first.records]
    unchanged = {k: v for k, v in second.skip_counts().items() if k != "already_mounted"}
    assert unchanged == first.skip_counts()


def test_failure_cleans_up_and_continues(paths, mount_table):
    mount_table.fail["/dev/sdb1"] = "ntfs-3g: Failed to mount '/dev/sdb1': Input/output error"
    report = _run(paths, mount_table)

    assert report.failed_count == 1
    assert report.mounted_count == 2
    failure = report.failures[0]
    assert failure.device.path == "/dev/sdb1"
    assert "Input/output error" in failure.diagnostic
    assert not (paths.mount_base / "sdb1_ntfs_data").exists()
    assert not (paths.drives_dir / "sdb1_ntfs_data").exists()
    fail_decision = [d for d in report.decisions if d.device.path == "/dev/sdb1"][0]
    assert fail_decision.action == MountAction.FAIL


def test_failed_device_retried_on_next_run(paths, mount_table):
    mount_table.fail["/dev/sdb1"] = "busy"
    _run(paths, mount_table)
    del mount_table.fail["/dev/sdb1"]
    report = _run(paths, mount_table)
    assert [r.device.path for r in report.records] == ["/dev/sdb1"]
    assert report.records[0].name == "sdb1_ntfs_data"


def test_scenario_b_no_filesystem_never_published(paths, mount_table):
    report = _run(paths, mount_table)
    sdb2 = [d for d in report.decisions if d.device.path == "/dev/sdb2"][0]
    assert sdb2.reason == SkipReason.NO_FILESYSTEM
    assert not any(p.name.startswith("sdb2") for p in paths.drives_dir.iterdir())
    assert not any(p.name.startswith("sdb2") for p in paths.mount_base.iterdir())


def test_scenario_c_unresponsive_count_gives_sentinel(paths, mount_table):
    slow = {str(paths.mount_base / "sda1_ntfs_win")}
    report = _run(paths, mount_table, make_fixture_executor(find_timeout=slow))
    sda1 = [r for r in report.records if r.device.path == "/dev/sda1"][0]
    assert sda1.stats.files == SENTINEL_MANY
    assert sda1.stats.directories == SENTINEL_MANY
    assert report.mounted_count == 3
    assert paths.storage_marker.exists()


def test_name_collision_with_existing_mount(paths, mount_table):
    taken = str(paths.mount_base / "sda1_ntfs_win")
    mount_table.entries.append(MountEntry(source="/dev/sdz9", target=taken, fstype="ntfs", options=["ro", "noexec"]))
    report = _run(paths, mount_table)
    sda1 = [r for r in report.records if r.device.path == "/dev/sda1"][0]
    assert sda1.name == "sda1_ntfs_win_2"


def test_prerequisite_missing_aborts_before_any_work(paths, mount_table):
    paths.network_marker.unlink()
    with pytest.raises(PrerequisiteMissing):
        _run(paths, mount_table)
    assert mount_table.mount_calls == []
    assert not paths.mount_base.exists()
    assert not paths.storage_marker.exists()


def test_no_devices_is_not_an_error(paths):
    def executor(cmd, timeout=None):
        if cmd[0] == "lsblk":
            return RunResult(stdout='{"blockdevices": []}', stderr="", returncode=0)
        return RunResult(stdout="", stderr="", returncode=1)

    report = _run(paths, FakeMountTable(), executor)
    assert report.mounted_count == report.failed_count == report.skipped_count == 0
    assert any("No block devices" in w["message"] for w in report.warnings)
    assert paths.storage_marker.exists()


def test_enumeration_unavailable_propagates(paths):
    def executor(cmd, timeout=None):
        return RunResult(stdout="", stderr="Command not found", returncode=127)

    with pytest.raises(EnumerationUnavailable):
        _run(paths, FakeMountTable(), executor)


def test_marker_and_report_written(paths, mount_table):
    report = _run(paths, mount_table)
    marker = paths.storage_marker.read_text()
    assert "Stage 3 completed" in marker
    assert "mounted=3 failed=0 skipped=5" in marker
    loaded = load_report(paths.report_file)
    assert loaded.mounted_count == report.mounted_count
    assert [r.name for r in loaded.records] == [r.name for r in report.records]


def test_log_line_per_device(paths, mount_table):
    console.setup_log(paths.log_file)
    try:
        _run(paths, mount_table)
    finally:
        console.setup_log(None)
    lines = paths.log_file.read_text().splitlines()
    for dev in ("/dev/sda1", "/dev/sda2", "/dev/sda4", "/dev/sdb2", "/dev/sdb3", "/dev/sr0"):
        assert sum(1 for l in lines if l.split(" - ", 2)[-1].startswith(dev + " ")) == 1
    assert any("outcome=skipped_system" in l for l in lines)
    assert any("outcome=published" in l for l in lines)


def test_system_paths_published(paths, mount_table, tmp_path):
    home = tmp_path / "fake_home"
    home.mkdir()
    report = _run(paths, mount_table, publish_system=True, system_paths=[("home", str(home))])
    assert report.system_links == [str(paths.system_dir / "home")]
    assert os.readlink(paths.system_dir / "home") == str(home)


def test_release_all(paths, mount_table):
    report = _run(paths, mount_table)
    released, problems = release_all(paths, mount_table=mount_table)
    assert problems == []
    assert sorted(released) == sorted(r.mount_point for r in report.records)
    assert list(paths.drives_dir.iterdir()) == []
    assert list(paths.mount_base.iterdir()) == []


def test_device_mounted_twice_counts_as_system(paths, tmp_path):
    devices_file = tmp_path / "devices.json"
    devices_file.write_text('[{"path": "/dev/vda2", "size": 4096, "fstype": "btrfs"}]')
    table = FakeMountTable([
        MountEntry(source="/dev/vda2", target="/home", fstype="btrfs", options=["rw", "subvol=/home"]),
        MountEntry(source="/dev/vda2", target="/", fstype="btrfs", options=["rw", "subvol=/root"]),
    ])
    report = _run(paths, table, backend="static", devices_file=devices_file)
    assert report.decisions[0].reason == SkipReason.SYSTEM
    assert table.mount_calls == []


def test_unwritable_mount_base_is_environment_failure(paths, mount_table, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory\n")
    paths = paths.model_copy(update={"mount_base": blocker / "mnt"})
    with pytest.raises(EnvironmentFailure) as exc_info:
        _run(paths, mount_table)
    assert exc_info.value.exit_code == 2
    assert mount_table.mount_calls == []
    assert not paths.storage_marker.exists()


def test_unwritable_marker_is_environment_failure(paths, mount_table, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory\n")
    paths = paths.model_copy(update={"storage_marker": blocker / ".autofs-stage3-complete"})
    with pytest.raises(EnvironmentFailure) as exc_info:
        _run(paths, mount_table)
    assert "completion marker" in str(exc_info.value)
    # devices mounted before the failure are still described in the saved report
    assert load_report(paths.report_file).mounted_count == 3
