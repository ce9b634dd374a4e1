"""Run status and report phase state machines."""

from __future__ import annotations

from enum import Enum


class IllegalTransitionError(RuntimeError):
    """Raised when code tries to leave a terminal state or skip a defined transition."""


class RunStatus(str, Enum):
    """Lifecycle of one remote run as tracked locally."""

    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    FINISHING = "finishing"
    PASSED = "passed"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_RUN_STATUSES


class ReportPhase(str, Enum):
    """Report generation progress after the run ended."""

    NOT_REQUESTED = "not_requested"
    SKIPPED = "skipped"
    GENERATING = "generating"
    READY = "ready"
    UNAVAILABLE = "unavailable"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        return not _REPORT_TRANSITIONS[self]


_TERMINAL_RUN_STATUSES = frozenset({RunStatus.PASSED, RunStatus.FAILED, RunStatus.CANCELED})
_ACTIVE_TARGETS = frozenset(
    {
        RunStatus.STARTING,
        RunStatus.RUNNING,
        RunStatus.FINISHING,
        RunStatus.PASSED,
        RunStatus.FAILED,
        RunStatus.CANCELED,
    }
)
# Remote statuses may repeat or oscillate, so active states reach each other freely.
_RUN_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.CREATED: frozenset({RunStatus.STARTING, RunStatus.FAILED, RunStatus.CANCELED}),
    RunStatus.STARTING: _ACTIVE_TARGETS,
    RunStatus.RUNNING: _ACTIVE_TARGETS,
    RunStatus.FINISHING: _ACTIVE_TARGETS,
    RunStatus.PASSED: frozenset(),
    RunStatus.FAILED: frozenset(),
    RunStatus.CANCELED: frozenset(),
}
_REPORT_TRANSITIONS: dict[ReportPhase, frozenset[ReportPhase]] = {
    ReportPhase.NOT_REQUESTED: frozenset({ReportPhase.SKIPPED, ReportPhase.GENERATING}),
    ReportPhase.GENERATING: frozenset({ReportPhase.READY, ReportPhase.UNAVAILABLE}),
    ReportPhase.READY: frozenset({ReportPhase.DONE}),
    ReportPhase.SKIPPED: frozenset(),
    ReportPhase.UNAVAILABLE: frozenset(),
    ReportPhase.DONE: frozenset(),
}

_REMOTE_STATUS_MAP = {
    "INITIALIZING": RunStatus.STARTING,
    "CHECKING_STATUS": RunStatus.STARTING,
    "PENDING": RunStatus.STARTING,
    "STARTING": RunStatus.STARTING,
    "RUNNING": RunStatus.RUNNING,
    "IN_PROGRESS": RunStatus.RUNNING,
    "STOPPING": RunStatus.FINISHING,
    "COLLATING": RunStatus.FINISHING,
    "COLLATING_RESULTS": RunStatus.FINISHING,
    "CREATING_ANALYSIS_DATA": RunStatus.FINISHING,
    "PASSED": RunStatus.PASSED,
    "FAILED": RunStatus.FAILED,
    "HALTED": RunStatus.FAILED,
    "ABORTED": RunStatus.FAILED,
    "STOPPED": RunStatus.FAILED,
    "SYSTEM_ERROR": RunStatus.FAILED,
    "CANCELED": RunStatus.FAILED,
}


def advance_run_status(current: RunStatus, target: RunStatus) -> RunStatus:
    """Return ``target`` if the transition is defined, otherwise raise."""
    if target not in _RUN_TRANSITIONS[current]:
        raise IllegalTransitionError(f"Run status cannot move from {current.name} to {target.name}.")
    return target


def advance_report_phase(current: ReportPhase, target: ReportPhase) -> ReportPhase:
    """Return ``target`` if the transition is defined, otherwise raise."""
    if target not in _REPORT_TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"Report phase cannot move from {current.name} to {target.name}."
        )
    return target


def map_remote_status(remote_status: str) -> RunStatus | None:
    """Map a remote status code to a local status; None for codes this client does not know."""
    return _REMOTE_STATUS_MAP.get(remote_status.strip().upper())
