"""Fixed path constants shared with the other deployment stages."""

from pathlib import Path

from pydantic import BaseModel

MOUNT_BASE = Path("/mnt/autofs")
WEB_ROOT = Path("/var/www/autofs")
LOG_FILE = Path("/var/log/autofs/storage.log")
REPORT_FILE = Path("/var/log/autofs/storage-report.json")
NETWORK_MARKER = Path("/tmp/.autofs-stage2-complete")
STORAGE_MARKER = Path("/tmp/.autofs-stage3-complete")

DRIVES_DIR = "drives"
SYSTEM_DIR = "system"

STAT_TIMEOUT = 5.0  # seconds, per df / find call
COUNT_DEPTH = 3

# Published directly, outside the mount pipeline: link name -> live path
SYSTEM_PATHS = (
    ("home", "/home"),
    ("root", "/root"),
    ("etc", "/etc"),
    ("logs", "/var/log"),
    ("tmp", "/tmp"),
    ("media", "/media"),
)


class StoragePaths(BaseModel):
    """Locations one run reads and writes. Defaults are the deployment constants."""

    mount_base: Path = MOUNT_BASE
    web_root: Path = WEB_ROOT
    log_file: Path = LOG_FILE
    report_file: Path = REPORT_FILE
    network_marker: Path = NETWORK_MARKER
    storage_marker: Path = STORAGE_MARKER
    stat_timeout: float = STAT_TIMEOUT
    count_depth: int = COUNT_DEPTH

    @property
    def drives_dir(self) -> Path:
        return self.web_root / DRIVES_DIR

    @property
    def system_dir(self) -> Path:
        return self.web_root / SYSTEM_DIR
