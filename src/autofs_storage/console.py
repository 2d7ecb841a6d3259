"""
Operator output and the persistent discovery log.

Progress lines go to the terminal with colors; outcome lines go to the
append-only log through the ``autofs_storage`` logger.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click

LOGGER_NAME = "autofs_storage"

_DEBUG = bool(os.environ.get("AUTOFS_STORAGE_DEBUG", ""))
_color = True


def debug(area: str, msg: str) -> None:
    if _DEBUG:
        print(f"[autofs-storage] {area}: {msg}", file=sys.stderr)


def set_color(enabled: bool) -> None:
    global _color
    _color = enabled


def _emit(text: str, fg: Optional[str] = None, bold: bool = False, err: bool = False) -> None:
    if _color and fg:
        text = click.style(text, fg=fg, bold=bold)
    click.echo(text, err=err)


def info(msg: str) -> None:
    _emit(f"[INFO] {msg}", fg="blue")


def success(msg: str) -> None:
    _emit(f"[OK] {msg}", fg="green")


def warn(msg: str) -> None:
    _emit(f"[WARN] {msg}", fg="yellow")


def error(msg: str) -> None:
    _emit(f"[ERROR] {msg}", fg="red", err=True)


def banner(msg: str) -> None:
    _emit(msg, fg="cyan", bold=True)
    _emit("=" * len(msg))


def setup_log(log_file: Optional[Path], level: int = logging.INFO) -> logging.Logger:
    """
    Attach an append-only file handler to the package logger.

    A log file that cannot be opened leaves the logger without handlers;
    the run continues with console output only.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    if log_file is None:
        logger.addHandler(logging.NullHandler())
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as exc:
        warn(f"Could not open log file {log_file}: {exc}")
        logger.addHandler(logging.NullHandler())
        return logger
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)
    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)


def human_size(num: Optional[int]) -> str:
    """Bytes as a short string (``1.5G``); ``unknown`` for None."""
    if num is None:
        return "unknown"
    value = float(num)
    for unit in ("B", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            if unit == "B":
                return f"{int(value)}B"
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}T"
