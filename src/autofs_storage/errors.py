"""Run-level failures. Per-device problems are recorded in the report instead."""


class AutofsStorageError(Exception):
    exit_code = 1


class PrerequisiteMissing(AutofsStorageError):
    """An earlier stage has not completed; nothing was touched."""

    exit_code = 1


class EnumerationUnavailable(AutofsStorageError):
    """No enumeration backend could list block devices on this host."""

    exit_code = 2


class EnvironmentFailure(AutofsStorageError):
    """The host refused a write the stage cannot run without (mount base, served tree, marker)."""

    exit_code = 2
