"""
Reporter: accumulate outcomes into the DiscoveryReport, log one line per
device, write the completion marker and the operator summary.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from . import console
from .schema import (
    SKIP_OUTCOMES,
    BlockDevice,
    DiscoveryReport,
    MountAction,
    MountDecision,
    MountFailure,
    MountRecord,
    Outcome,
)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def make_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["human_size"] = console.human_size
    return env


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _identity(device: BlockDevice) -> str:
    return f"{device.path} fstype={device.fstype or '-'} label={device.label} uuid={device.uuid}"


def outcome_line(device: BlockDevice, outcome: Outcome, detail: str = "") -> str:
    line = f"{_identity(device)} outcome={outcome.value}"
    return f"{line} {detail}" if detail else line


def record_skip(report: DiscoveryReport, decision: MountDecision, logger: logging.Logger) -> None:
    report.add_decision(decision)
    outcome = SKIP_OUTCOMES[decision.reason]
    logger.info(outcome_line(decision.device, outcome))
    console.info(f"Skipping {decision.device.name} - {decision.reason.value.replace('_', ' ')}"
                 + (f" (mounted at {decision.device.mountpoint})" if decision.device.mountpoint else ""))


def record_mounted(report: DiscoveryReport, record: MountRecord, logger: logging.Logger) -> None:
    report.add_decision(MountDecision(device=record.device, action=MountAction.MOUNT))
    report.add_record(record)
    if record.outcome == Outcome.MOUNTED_NO_LINK:
        logger.warning(outcome_line(record.device, record.outcome,
                                    f"mount_point={record.mount_point} link_error={record.link_error}"))
        console.warn(f"Mounted {record.device.name} at {record.mount_point} but could not publish: {record.link_error}")
        return
    logger.info(outcome_line(record.device, record.outcome,
                             f"mount_point={record.mount_point} link={record.link_path}"))
    console.success(f"Mounted {record.device.name} ({record.device.fstype}) -> {record.link_path}")


def record_failure(report: DiscoveryReport, failure: MountFailure, logger: logging.Logger) -> None:
    report.add_decision(MountDecision(device=failure.device, action=MountAction.FAIL))
    report.add_failure(failure)
    diagnostic = " | ".join(failure.diagnostic.splitlines())
    logger.error(outcome_line(failure.device, Outcome.FAILED,
                              f"driver={failure.driver} diagnostic={diagnostic}"))
    console.error(f"Failed to mount {failure.device.name} ({failure.device.fstype}): {diagnostic}")


def render_summary(report: DiscoveryReport, env: Optional[Environment] = None) -> str:
    env = env or make_env()
    return env.get_template("summary.txt.j2").render(report=report)


def write_marker(marker: Path, report: DiscoveryReport) -> None:
    """Completion marker read by the web server stage."""
    marker = Path(marker)
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_text(
        f"{_now()}: Stage 3 completed - storage discovered\n"
        f"mounted={report.mounted_count} failed={report.failed_count} "
        f"skipped={report.skipped_count} total_size={report.total_size}\n"
    )


def save_report(report: DiscoveryReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2))


def load_report(path: Path) -> DiscoveryReport:
    return DiscoveryReport.model_validate_json(Path(path).read_text())
