"""Command-line entry points: ``autofs-storage`` and ``autofs-storage-status``."""

import argparse
from pathlib import Path
from typing import List, Optional

from . import config
from .enumerators import BACKENDS


def _add_path_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--mount-base", type=Path, default=config.MOUNT_BASE,
                        help="Directory that receives one mount point per device (default: %(default)s)")
    parser.add_argument("--web-root", type=Path, default=config.WEB_ROOT,
                        help="Root of the served tree (default: %(default)s)")
    parser.add_argument("--storage-marker", type=Path, default=config.STORAGE_MARKER,
                        help="Completion marker written for the web server stage (default: %(default)s)")
    parser.add_argument("--stat-timeout", type=float, default=config.STAT_TIMEOUT,
                        help="Seconds allowed for each df/find call (default: %(default)s)")
    parser.add_argument("--no-color", action="store_true", help="Plain progress output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autofs-storage",
        description="Discover block devices, mount them read-only and publish them into the served tree.",
    )
    _add_path_args(parser)
    parser.add_argument("--log-file", type=Path, default=config.LOG_FILE,
                        help="Append-only discovery log (default: %(default)s)")
    parser.add_argument("--report-file", type=Path, default=config.REPORT_FILE,
                        help="Where the run's JSON report is saved (default: %(default)s)")
    parser.add_argument("--network-marker", type=Path, default=config.NETWORK_MARKER,
                        help="Marker left by the network stage; required (default: %(default)s)")
    parser.add_argument("--count-depth", type=int, default=config.COUNT_DEPTH,
                        help="Directory levels scanned when counting files (default: %(default)s)")
    parser.add_argument("--backend", choices=BACKENDS, default="auto",
                        help="Device enumeration backend (default: %(default)s)")
    parser.add_argument("--devices-file", type=Path, default=None,
                        help="JSON device table for --backend static")
    parser.add_argument("--no-system-paths", action="store_true",
                        help="Do not publish the fixed system path links")
    parser.add_argument("--release", action="store_true",
                        help="Unmount everything under the mount base and remove its drive links")
    return parser


def build_status_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autofs-storage-status",
        description="Show mounted storage and published links from live system state.",
    )
    _add_path_args(parser)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def parse_status_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_status_parser().parse_args(argv)


def paths_from_args(args: argparse.Namespace) -> config.StoragePaths:
    values = {
        "mount_base": args.mount_base,
        "web_root": args.web_root,
        "storage_marker": args.storage_marker,
        "stat_timeout": args.stat_timeout,
    }
    for name in ("log_file", "report_file", "network_marker", "count_depth"):
        if hasattr(args, name):
            values[name] = getattr(args, name)
    return config.StoragePaths(**values)
