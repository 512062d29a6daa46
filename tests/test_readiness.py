import pytest

from rvtools_migrate.complexity import calculate_complexity_scores
from rvtools_migrate.models import MigrationMode
from rvtools_migrate.preflight import run_preflight_checks
from rvtools_migrate.readiness import calculate_readiness_score, summarize_readiness


@pytest.mark.parametrize(
    "blockers, warnings, unsupported, total, expected",
    [
        (0, 0, 0, 10, 100),
        (10, 0, 0, 10, 50),
        (0, 10, 0, 10, 70),
        (0, 0, 10, 10, 80),
        (10, 10, 10, 10, 0),
        (1, 2, 1, 10, 87),
        (0, 0, 0, 0, 100),
        (3, 0, 0, 0, 0),
    ],
)
def test_readiness_formula(blockers, warnings, unsupported, total, expected):
    assert calculate_readiness_score(blockers, warnings, unsupported, total) == expected


def test_readiness_is_clamped():
    assert calculate_readiness_score(100, 100, 100, 1) == 0
    assert calculate_readiness_score(-5, 0, 0, 10) == 100


def test_summary_counts(small_inventory):
    results = run_preflight_checks(small_inventory, MigrationMode.ROKS)
    scores = calculate_complexity_scores(small_inventory, MigrationMode.ROKS)
    summary = summarize_readiness(results, scores, MigrationMode.ROKS)

    assert summary.total_vms == 3
    # DB_Server (snapshot, shared disk) and legacy-app (tools, HW, OS) are blocked
    assert summary.vms_with_blockers == 2
    assert summary.unsupported_os_count == 1
    assert summary.vms_with_blockers + summary.vms_with_warnings + summary.ready_vms == 3
    assert 0 <= summary.readiness_pct <= 100
