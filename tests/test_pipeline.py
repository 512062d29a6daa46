import json
from datetime import datetime, timezone

import pytest
from conftest import make_vm

from rvtools_migrate.catalog import find_hardware_profile
from rvtools_migrate.exclusion import ExclusionRules, VMOverrides
from rvtools_migrate.inventory_io import inventory_to_dict
from rvtools_migrate.models import Inventory, MigrationMode
from rvtools_migrate.pipeline import analyze
from rvtools_migrate.sizing import SizingParameters
from rvtools_migrate.visualization import export_report_json
from rvtools_migrate.waves import WaveStrategy

# Powered-off VMs are out of scope unless force-included
WITH_LEGACY = VMOverrides(force_included={"legacy-app"})


def test_roks_analysis(small_inventory):
    report = analyze(small_inventory, MigrationMode.ROKS)

    assert report.ok
    assert report.scope.included_names == {"web-01", "DB_Server"}
    assert report.scope.auto_excluded_count == 2
    assert len(report.check_results) == 2
    assert len(report.complexity_scores) == 2
    assert report.readiness.total_vms == 2
    assert report.sizing is not None
    assert report.sizing.profile.name == "cx2d-metal-96x192"   # cheapest NVMe profile
    assert report.vsi_mappings == []
    assert report.cost.architecture == "All-NVMe Converged"
    assert sum(w.vm_count for w in report.waves) == 2


def test_vsi_analysis(small_inventory):
    report = analyze(small_inventory, "vsi", region="eu-gb", discount="threeYear",
                     overrides={"web-01": "bx2-4x16"}, vm_overrides=WITH_LEGACY)

    assert report.ok
    assert report.sizing is None
    assert len(report.vsi_mappings) == 3
    assert report.profile_totals.vm_count == 3
    assert report.cost.architecture == "VPC Virtual Server Instances"
    assert report.cost.region == "eu-gb"
    assert report.cost.discount_pct == 40
    assert any(i.description == "VSI - bx2-4x16" for i in report.cost.line_items)


def test_explicit_profile_and_strategy(small_inventory):
    profile = find_hardware_profile("bx2d-metal-96x384")
    report = analyze(small_inventory, MigrationMode.ROKS, profile=profile, wave_strategy="cluster",
                     vm_overrides=WITH_LEGACY)
    assert report.sizing.profile is profile
    assert report.wave_strategy == WaveStrategy.CLUSTER
    assert {w.name for w in report.waves} == {"prod", "dev"}


def test_invalid_inputs_surface_as_validation_errors(small_inventory):
    report = analyze(small_inventory, MigrationMode.ROKS, params=SizingParameters(replica_factor=5),
                     region="nowhere")
    assert not report.ok
    assert report.sizing is None
    assert report.cost is None
    assert [e.field for e in report.validation.errors] == ["replica_factor"]

    report = analyze(small_inventory, MigrationMode.ROKS, region="nowhere")
    assert not report.ok
    assert report.sizing is not None
    assert [e.field for e in report.validation.errors] == ["region"]


def test_no_eligible_profile(small_inventory):
    report = analyze(small_inventory, MigrationMode.ROKS, profiles=[find_hardware_profile("bx2-metal-96x384")])
    assert not report.ok
    assert report.validation.errors[0].field == "profile"


def test_empty_inventory():
    report = analyze(Inventory(), MigrationMode.ROKS)
    assert report.ok
    assert report.readiness.readiness_pct == 100
    assert report.waves == []
    assert report.sizing.compute_nodes == 4


def test_analysis_does_not_mutate_inventory(small_inventory):
    before = inventory_to_dict(small_inventory)
    analyze(small_inventory, MigrationMode.ROKS)
    analyze(small_inventory, MigrationMode.VSI)
    assert inventory_to_dict(small_inventory) == before


def test_hard_blocker_routes_to_remediation():
    inventory = Inventory(vms=[make_vm("big-db", 16, 1100, guest_os="Red Hat Enterprise Linux 8 (64-bit)")])
    report = analyze(inventory, MigrationMode.VSI)
    assert report.complexity_scores[0].hard_blocker
    assert [w.name for w in report.waves] == ["Wave 5: Remediation"]
    assert report.readiness.hard_blockers == 1


@pytest.mark.parametrize("mode", list(MigrationMode))
def test_export_report_json(small_inventory, tmp_path, mode):
    report = analyze(small_inventory, mode, vm_overrides=WITH_LEGACY)
    out = tmp_path / "report.json"
    export_report_json(report, out)

    data = json.loads(out.read_text())
    assert data["mode"] == mode.value
    assert data["readiness"]["total_vms"] == 3
    assert len(data["preflight"]) == 3
    assert data["cost"]["total_monthly"] > 0
    assert sum(w["vm_count"] for w in data["waves"]) == 3
    assert data["validation_errors"] == []
    assert data["excluded_vms"] == [{"name": "golden-image", "manual": False, "reasons": ["template"]}]


def test_scope_is_shared_by_every_engine(small_inventory):
    overrides = VMOverrides(excluded={"DB_Server"}, force_included={"legacy-app"})
    report = analyze(small_inventory, MigrationMode.ROKS, vm_overrides=overrides, include_powered_off=True)

    expected = {"web-01", "legacy-app"}
    assert report.scope.included_names == expected
    assert report.scope.manually_excluded_count == 1
    assert {r.vm_name for r in report.check_results} == expected
    assert {s.vm_name for s in report.complexity_scores} == expected
    assert {v.vm_name for v in report.wave_data} == expected
    assert report.sizing.demand.vm_count == 2


def test_vsi_mapping_follows_scope(small_inventory):
    report = analyze(small_inventory, MigrationMode.VSI, vm_overrides=VMOverrides(excluded={"web-01"}))
    assert [m.vm_name for m in report.vsi_mappings] == ["DB_Server"]
    assert report.vsi_mappings[0].recommended_family == "memory"


def test_disabling_auto_exclusion_keeps_templates(small_inventory):
    report = analyze(small_inventory, MigrationMode.VSI, exclusion_rules=ExclusionRules())
    assert report.scope.excluded == []
    assert len(report.vsi_mappings) == 4


def test_generated_at_is_supplied_by_caller(small_inventory):
    stamp = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)
    assert analyze(small_inventory, MigrationMode.ROKS, generated_at=stamp).cost.generated_at == stamp.isoformat()
    assert analyze(small_inventory, MigrationMode.ROKS).cost == analyze(small_inventory, MigrationMode.ROKS).cost
