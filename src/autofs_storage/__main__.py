"""
Entry points. ``python -m autofs_storage`` runs discovery.
"""

import sys
from typing import List, Optional

from . import console
from .cli import parse_args, parse_status_args, paths_from_args
from .errors import AutofsStorageError
from .pipeline import release_all, run_discovery
from .reporter import render_summary
from .status import collect_status, render_status


def _release(paths) -> int:
    console.banner("Releasing Storage Mounts")
    released, problems = release_all(paths)
    for target in released:
        console.success(f"Released {target}")
    for problem in problems:
        console.error(problem)
    console.info(f"Released {len(released)} mount(s), {len(problems)} problem(s)")
    return 1 if problems else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    console.set_color(not args.no_color)
    paths = paths_from_args(args)
    console.setup_log(paths.log_file)

    if args.release:
        return _release(paths)

    console.banner("AutoFS Stage 3: Storage Discovery & Mounting")
    try:
        report = run_discovery(
            paths,
            backend=args.backend,
            devices_file=args.devices_file,
            publish_system=not args.no_system_paths,
        )
    except AutofsStorageError as e:
        console.error(str(e))
        console.get_logger().error("aborted: %s", e)
        return e.exit_code

    print(render_summary(report), end="")
    console.success(
        f"Storage stage complete: mounted={report.mounted_count} "
        f"failed={report.failed_count} skipped={report.skipped_count} "
        f"total={console.human_size(report.total_size)}"
    )
    return 0


def status_main(argv: Optional[List[str]] = None) -> int:
    args = parse_status_args(argv)
    console.set_color(not args.no_color)
    paths = paths_from_args(args)
    print(render_status(collect_status(paths), paths), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
