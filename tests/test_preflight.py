import pytest
from conftest import make_disk, make_vm

from rvtools_migrate.models import (
    CdromDevice,
    CheckStatus,
    Inventory,
    MigrationMode,
    NetworkAdapter,
    Snapshot,
    ToolsStatus,
)
from rvtools_migrate.preflight import (
    CHECK_DEFINITIONS,
    PreflightThresholds,
    evaluate_vm,
    get_checks_for_mode,
    is_rfc1123_compliant,
    run_preflight_checks,
    summarize_check_counts,
)
from rvtools_migrate.readiness import summarize_readiness


def test_check_ids_are_unique():
    ids = [d.id for d in CHECK_DEFINITIONS]
    assert len(ids) == len(set(ids))


def test_mode_specific_catalogue():
    roks = {d.id for d in get_checks_for_mode(MigrationMode.ROKS)}
    vsi = {d.id for d in get_checks_for_mode(MigrationMode.VSI)}
    assert "tools-installed" in roks and "tools-installed" not in vsi
    assert "boot-disk-size" in vsi and "boot-disk-size" not in roks
    assert {"old-snapshots", "rdm-disks", "shared-disks"} <= roks & vsi


def test_bare_vm_has_no_findings():
    inventory = Inventory(vms=[make_vm("app-01", 2, 4)])

    for mode in MigrationMode:
        results = run_preflight_checks(inventory, mode)
        assert len(results) == 1
        result = results[0]
        assert result.blocker_count == 0
        assert result.warning_count == 0
        assert all(c.status in (CheckStatus.PASS, CheckStatus.NA) for c in result.checks.values())

        readiness = summarize_readiness(results, None, mode)
        assert readiness.readiness_pct == 100


def test_every_check_reported_for_every_vm(small_inventory):
    results = run_preflight_checks(small_inventory, MigrationMode.ROKS)
    assert [r.vm_name for r in results] == ["web-01", "DB_Server", "legacy-app"]
    for r in results:
        assert set(r.checks) == {d.id for d in CHECK_DEFINITIONS}


def test_inapplicable_checks_are_na(small_inventory):
    results = run_preflight_checks(small_inventory, MigrationMode.VSI)
    for r in results:
        assert r.checks["tools-installed"].status == CheckStatus.NA
        assert r.checks["hw-version"].status == CheckStatus.NA


def test_counts_match_statuses(small_inventory):
    for mode in MigrationMode:
        for r in run_preflight_checks(small_inventory, mode):
            statuses = [c.status for c in r.checks.values()]
            assert r.blocker_count == statuses.count(CheckStatus.BLOCK)
            assert r.warning_count == statuses.count(CheckStatus.WARN)


def test_snapshot_age_thresholds():
    vm = make_vm("app-01")
    thresholds = PreflightThresholds(snapshot_warning_days=15, snapshot_blocker_days=30)

    old = evaluate_vm(vm, MigrationMode.ROKS, snapshots=[Snapshot("app-01", "s1", 45)], thresholds=thresholds)
    assert old.checks["old-snapshots"].status == CheckStatus.BLOCK

    aging = evaluate_vm(vm, MigrationMode.ROKS, snapshots=[Snapshot("app-01", "s1", 20)], thresholds=thresholds)
    assert aging.checks["old-snapshots"].status == CheckStatus.WARN

    fresh = evaluate_vm(vm, MigrationMode.ROKS, snapshots=[Snapshot("app-01", "s1", 3)], thresholds=thresholds)
    assert fresh.checks["old-snapshots"].status == CheckStatus.PASS


def test_snapshot_without_age_is_not_flagged():
    result = evaluate_vm(make_vm("app-01"), MigrationMode.ROKS, snapshots=[Snapshot("app-01", "s1", None)])
    assert result.checks["old-snapshots"].status == CheckStatus.PASS


def test_tools_states():
    vm = make_vm("app-01")
    missing = evaluate_vm(vm, MigrationMode.ROKS, tools=ToolsStatus("app-01", "toolsNotInstalled"))
    assert missing.checks["tools-installed"].status == CheckStatus.BLOCK
    assert missing.checks["tools-running"].status == CheckStatus.NA

    stopped = evaluate_vm(vm, MigrationMode.ROKS, tools=ToolsStatus("app-01", "toolsNotRunning"))
    assert stopped.checks["tools-installed"].status == CheckStatus.PASS
    assert stopped.checks["tools-running"].status == CheckStatus.WARN

    old = evaluate_vm(vm, MigrationMode.ROKS, tools=ToolsStatus("app-01", "toolsOld"))
    assert old.checks["tools-current"].status == CheckStatus.WARN

    vsi = evaluate_vm(vm, MigrationMode.VSI, tools=ToolsStatus("app-01", "toolsNotInstalled"))
    assert vsi.checks["vsi-tools"].status == CheckStatus.WARN
    assert vsi.blocker_count == 0


def test_hardware_version_bands():
    def status(version):
        vm = make_vm("app-01", hardware_version=version)
        return evaluate_vm(vm, MigrationMode.ROKS).checks["hw-version"].status

    assert status(8) == CheckStatus.BLOCK
    assert status(13) == CheckStatus.WARN
    assert status(14) == CheckStatus.PASS
    assert status(None) == CheckStatus.NA


def test_disk_checks():
    vm = make_vm("app-01")
    disks = [
        make_disk("app-01", 300, key=2000),
        make_disk("app-01", 2500, key=2001, raw=True),
        make_disk("app-01", 50, key=2002, disk_mode="independent_persistent"),
    ]
    roks = evaluate_vm(vm, MigrationMode.ROKS, disks=disks)
    assert roks.checks["rdm-disks"].status == CheckStatus.BLOCK
    assert roks.checks["independent-disks"].status == CheckStatus.BLOCK

    vsi = evaluate_vm(vm, MigrationMode.VSI, disks=disks)
    assert vsi.checks["boot-disk-size"].status == CheckStatus.BLOCK
    assert vsi.checks["boot-disk-size"].value == "300 GiB"
    assert vsi.checks["large-disks"].status == CheckStatus.WARN
    assert vsi.checks["disk-count"].status == CheckStatus.PASS


def test_vsi_disk_limit():
    vm = make_vm("app-01")
    disks = [make_disk("app-01", 10, key=2000 + i) for i in range(13)]
    result = evaluate_vm(vm, MigrationMode.VSI, disks=disks)
    assert result.checks["disk-count"].status == CheckStatus.BLOCK


def test_vsi_memory_limits():
    big = evaluate_vm(make_vm("app-01", 64, 1100), MigrationMode.VSI)
    assert big.checks["memory-1tb"].status == CheckStatus.BLOCK
    assert big.checks["memory-512gb"].status == CheckStatus.NA

    high = evaluate_vm(make_vm("app-01", 64, 600), MigrationMode.VSI)
    assert high.checks["memory-1tb"].status == CheckStatus.PASS
    assert high.checks["memory-512gb"].status == CheckStatus.WARN


def test_config_checks():
    vm = make_vm("App_01", cbt_enabled=False, cpu_hot_add=True, memory_hot_add=False,
                 guest_hostname="localhost")
    result = evaluate_vm(
        vm,
        MigrationMode.ROKS,
        networks=[NetworkAdapter("App_01", "E1000e", "VM Network")],
        cdroms=[CdromDevice("App_01", connected=True)],
    )
    assert result.checks["cbt-enabled"].status == CheckStatus.WARN
    assert result.checks["cpu-hotplug"].status == CheckStatus.WARN
    assert result.checks["mem-hotplug"].status == CheckStatus.PASS
    assert result.checks["hostname-valid"].status == CheckStatus.WARN
    assert result.checks["legacy-nic"].status == CheckStatus.WARN
    assert result.checks["cd-connected"].status == CheckStatus.WARN
    assert result.checks["rfc1123-name"].status == CheckStatus.WARN
    assert "uppercase" in result.checks["rfc1123-name"].message


def test_rfc1123():
    assert is_rfc1123_compliant("web-01")
    assert is_rfc1123_compliant("a")
    assert not is_rfc1123_compliant("Web-01")
    assert not is_rfc1123_compliant("-web")
    assert not is_rfc1123_compliant("web_01")
    assert not is_rfc1123_compliant("a" * 64)
    assert not is_rfc1123_compliant("")


def test_os_checks():
    roks = evaluate_vm(make_vm("a", guest_os="Microsoft Windows Server 2008 R2 (64-bit)"), MigrationMode.ROKS)
    assert roks.checks["os-compatible"].status == CheckStatus.BLOCK

    caveats = evaluate_vm(make_vm("a", guest_os="CentOS 7 (64-bit)"), MigrationMode.ROKS)
    assert caveats.checks["os-compatible"].status == CheckStatus.WARN

    vsi = evaluate_vm(make_vm("a", guest_os="FreeBSD 12"), MigrationMode.VSI)
    assert vsi.checks["vsi-os"].status == CheckStatus.BLOCK


def test_templates_are_skipped(small_inventory):
    names = [r.vm_name for r in run_preflight_checks(small_inventory, MigrationMode.ROKS)]
    assert "golden-image" not in names


def test_tools_lookup_falls_back_to_case_insensitive_name():
    inventory = Inventory(vms=[make_vm("app-01")], tools=[ToolsStatus("APP-01", "toolsNotInstalled")])
    result = run_preflight_checks(inventory, MigrationMode.ROKS)[0]
    assert result.checks["tools-installed"].status == CheckStatus.BLOCK


def test_summarize_check_counts(small_inventory):
    results = run_preflight_checks(small_inventory, MigrationMode.ROKS)
    affected = summarize_check_counts(results)
    assert affected["old-snapshots"] == ["DB_Server"]
    assert affected["shared-disks"] == ["DB_Server"]
    assert affected["tools-installed"] == ["legacy-app"]
    assert sorted(affected["legacy-nic"]) == ["DB_Server", "legacy-app"]


@pytest.mark.parametrize("age, expected", [
    (7, CheckStatus.PASS),
    (8, CheckStatus.WARN),
    (30, CheckStatus.WARN),
    (31, CheckStatus.BLOCK),
])
def test_snapshot_age_at_threshold_is_not_flagged(age, expected):
    result = evaluate_vm(make_vm("app-01"), MigrationMode.ROKS, snapshots=[Snapshot("app-01", "s1", age)])
    check = result.checks["old-snapshots"]
    assert check.status == expected
    if expected == CheckStatus.BLOCK:
        assert check.threshold == ">30 days"
