import pytest
from conftest import make_disk, make_vm

from rvtools_migrate.complexity import (
    ComplexityCategory,
    calculate_complexity_scores,
    get_assessment_summary,
    get_complexity_category,
    get_complexity_distribution,
    get_top_complex_vms,
    score_vm,
)
from rvtools_migrate.models import MigrationMode, NetworkAdapter


@pytest.mark.parametrize(
    "score, expected",
    [
        (0, ComplexityCategory.SIMPLE),
        (25, ComplexityCategory.SIMPLE),
        (26, ComplexityCategory.MODERATE),
        (50, ComplexityCategory.MODERATE),
        (51, ComplexityCategory.COMPLEX),
        (75, ComplexityCategory.COMPLEX),
        (76, ComplexityCategory.BLOCKER),
        (100, ComplexityCategory.BLOCKER),
    ],
)
def test_category_bands(score, expected):
    assert get_complexity_category(score) == expected


def _nics(name, count):
    return [NetworkAdapter(name, "VMXNET3", f"net-{i}") for i in range(count)]


def test_simple_vm_scores_zero():
    vm = make_vm("web-01", 2, 8, guest_os="Red Hat Enterprise Linux 9 (64-bit)", hardware_version=19)
    result = score_vm(vm, [make_disk("web-01")], _nics("web-01", 1), MigrationMode.ROKS)
    assert result.score == 0
    assert result.category == ComplexityCategory.SIMPLE
    assert result.factors_text == "No complexity factors"


def test_roks_penalties_accumulate():
    vm = make_vm("app-01", 20, 64, guest_os="Microsoft Windows Server 2012 R2 (64-bit)", hardware_version=13)
    disks = [make_disk("app-01", key=2000 + i) for i in range(3)]
    result = score_vm(vm, disks, _nics("app-01", 2), MigrationMode.ROKS)
    # OS round((100 - 50) * 0.3) = 15, NICs 15, disks 15, HW 10, >16 vCPU 20
    assert result.score == 75
    assert result.category == ComplexityCategory.COMPLEX
    assert len(result.factors) == 5


def test_vsi_os_and_size_penalties():
    vm = make_vm("app-01", 40, 600, guest_os="CentOS 7 (64-bit)")
    result = score_vm(vm, [make_disk("app-01", 3000)], [], MigrationMode.VSI)
    # community OS 15, large disk 30, >512 GiB 20, >32 vCPU 15
    assert result.score == 80
    assert result.category == ComplexityCategory.BLOCKER
    assert not result.hard_blocker


def test_vsi_memory_over_limit_is_hard_blocker():
    vm = make_vm("huge-db", 8, 1100, guest_os="Red Hat Enterprise Linux 8 (64-bit)")
    result = score_vm(vm, [], [], MigrationMode.VSI)
    assert result.hard_blocker
    assert result.score == 40


def test_score_is_clamped():
    vm = make_vm("monster", 96, 1100, guest_os="Plan 9", hardware_version=7)
    disks = [make_disk("monster", 3000, key=2000 + i) for i in range(8)]
    result = score_vm(vm, disks, _nics("monster", 5), MigrationMode.VSI)
    assert result.score == 100


def test_unknown_os_adds_factor_but_no_points():
    result = score_vm(make_vm("a"), [], [], MigrationMode.ROKS)
    assert result.score == 0
    assert "Guest OS unknown" in result.factors


def test_unknown_hardware_version_adds_nothing():
    vm = make_vm("a", guest_os="Red Hat Enterprise Linux 9 (64-bit)")
    assert score_vm(vm, [], [], MigrationMode.ROKS).score == 0


def test_scores_within_range(small_inventory):
    for mode in MigrationMode:
        for s in calculate_complexity_scores(small_inventory, mode):
            assert 0 <= s.score <= 100


def test_inventory_scoring_excludes_templates(small_inventory):
    scores = calculate_complexity_scores(small_inventory, MigrationMode.ROKS)
    assert [s.vm_name for s in scores] == ["web-01", "DB_Server", "legacy-app"]


def test_rollups(small_inventory):
    scores = calculate_complexity_scores(small_inventory, MigrationMode.ROKS)
    summary = get_assessment_summary(scores)
    assert summary.total_vms == 3
    assert sum(get_complexity_distribution(scores).values()) == 3
    assert summary.simple_count + summary.moderate_count + summary.complex_count + summary.blocker_count == 3

    top = get_top_complex_vms(scores, 2)
    assert len(top) == 2
    assert top[0].score >= top[1].score
