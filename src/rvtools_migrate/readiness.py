"""Readiness aggregation of pre-flight results into a single percentage."""

from __future__ import annotations

from dataclasses import dataclass

from .complexity import ComplexityScore
from .models import MigrationMode
from .os_compatibility import is_os_blocker
from .preflight import VMCheckResults

BLOCKER_WEIGHT = 50
WARNING_WEIGHT = 30
UNSUPPORTED_OS_WEIGHT = 20


def calculate_readiness_score(
    blocker_count: int,
    warning_count: int,
    unsupported_os_count: int,
    total_vms: int,
) -> int:
    """Percentage of the estate ready to move.

    An empty inventory (``total_vms == 0``) is reported as 100 % ready.
    """
    n = total_vms if total_vms > 0 else 1
    penalty = (
        max(0, blocker_count) / n * BLOCKER_WEIGHT
        + max(0, warning_count) / n * WARNING_WEIGHT
        + max(0, unsupported_os_count) / n * UNSUPPORTED_OS_WEIGHT
    )
    return int(max(0, min(100, round(100 - penalty))))


@dataclass
class ReadinessSummary:
    mode: MigrationMode
    total_vms: int = 0
    vms_with_blockers: int = 0
    vms_with_warnings: int = 0       # warnings only, no blockers
    unsupported_os_count: int = 0
    hard_blockers: int = 0
    ready_vms: int = 0
    readiness_pct: int = 100


def summarize_readiness(
    check_results: list[VMCheckResults],
    complexity_scores: list[ComplexityScore] | None,
    mode: MigrationMode,
) -> ReadinessSummary:
    total = len(check_results)
    blockers = sum(1 for r in check_results if r.blocker_count > 0)
    warnings = sum(1 for r in check_results if r.blocker_count == 0 and r.warning_count > 0)
    unsupported = sum(1 for r in check_results if r.guest_os and is_os_blocker(r.guest_os, mode))
    hard = sum(1 for s in complexity_scores or [] if s.hard_blocker)
    return ReadinessSummary(
        mode=mode,
        total_vms=total,
        vms_with_blockers=blockers,
        vms_with_warnings=warnings,
        unsupported_os_count=unsupported,
        hard_blockers=hard,
        ready_vms=total - blockers - warnings,
        readiness_pct=calculate_readiness_score(blockers, warnings, unsupported, total),
    )
