import logging

import pytest
from conftest import make_vm

from rvtools_migrate.exclusion import (
    DEFAULT_EXCLUSION_RULES,
    VMWARE_INFRASTRUCTURE,
    ExclusionRules,
    NameMatch,
    NamePatternRule,
    VMOverrides,
    apply_scope,
    exclusion_rules_from_dict,
    get_auto_exclusion,
    is_effectively_excluded,
    is_vmware_infrastructure_vm,
    resolve_scope,
)
from rvtools_migrate.models import Inventory, PowerState


def test_regular_vm_is_not_excluded():
    result = get_auto_exclusion(make_vm("app-server-01"))
    assert not result.is_excluded
    assert result.labels == []


def test_template_is_excluded():
    result = get_auto_exclusion(make_vm("golden-image", template=True))
    assert result.reasons == ["template"]
    assert result.labels == ["Template"]


@pytest.mark.parametrize("state", [PowerState.POWERED_OFF, PowerState.SUSPENDED])
def test_not_powered_on_is_excluded(state):
    result = get_auto_exclusion(make_vm("app-01", power_state=state))
    assert result.reasons == ["powered-off"]
    assert result.labels == ["Powered Off"]


@pytest.mark.parametrize("name", [
    "vCLS-a1b2c3d4",
    "vCLS (1)",
    "nsx-edge-01",
    "NSX-Manager-01",
    "vcenter-appliance-01",
    "VCSA01",
    "sddc-manager",
    "hcx-connector",
    "edge-01",
    "site-a-edge-2",
])
def test_vmware_infrastructure_names(name):
    result = get_auto_exclusion(make_vm(name))
    assert result.is_excluded
    assert result.labels == [VMWARE_INFRASTRUCTURE]
    assert is_vmware_infrastructure_vm(name)


def test_labels_are_not_repeated():
    # matches both the NSX and the edge rule
    result = get_auto_exclusion(make_vm("nsx-edge"))
    assert result.reasons == ["vmware-nsx", "vmware-edge"]
    assert result.labels == [VMWARE_INFRASTRUCTURE]


@pytest.mark.parametrize("name", ["cust-edge-01", "service-edge-02"])
def test_network_edge_appliance_is_not_vmware(name):
    result = get_auto_exclusion(make_vm(name))
    assert result.labels == ["Network Edge Appliance"]
    assert not is_vmware_infrastructure_vm(name)


def test_windows_ad_dns_is_case_insensitive():
    assert get_auto_exclusion(make_vm("ADNSvcs01")).labels == ["Windows AD/DNS"]


@pytest.mark.parametrize("name", ["knowledge-base", "edgeworth", "hedge-fund-app"])
def test_similar_names_are_kept(name):
    assert not get_auto_exclusion(make_vm(name)).is_excluded


def test_multiple_reasons():
    vm = make_vm("vcenter-old", template=True, power_state=PowerState.POWERED_OFF)
    result = get_auto_exclusion(vm)
    assert result.reasons == ["template", "powered-off", "vmware-appliances"]
    assert result.labels == ["Template", "Powered Off", VMWARE_INFRASTRUCTURE]


def test_name_rule_match_types():
    assert NamePatternRule("r", "R", NameMatch.EXACT, ("DC01",)).matches("dc01")
    assert not NamePatternRule("r", "R", NameMatch.EXACT, ("dc01",)).matches("dc01-old")
    assert NamePatternRule("r", "R", NameMatch.ENDS_WITH, ("-witness",)).matches("vsan-Witness")
    assert NamePatternRule("r", "R", NameMatch.REGEX, (r"^db\d+$",)).matches("DB42")


# ---------------------------------------------------------------------------
# Override precedence
# ---------------------------------------------------------------------------

def test_force_include_beats_every_exclusion():
    overrides = VMOverrides(excluded={"vcsa-01"}, force_included={"vcsa-01"})
    assert not is_effectively_excluded("vcsa-01", True, overrides)


def test_manual_exclusion_and_default():
    overrides = VMOverrides(excluded={"app-01"})
    assert is_effectively_excluded("app-01", False, overrides)
    assert is_effectively_excluded("app-02", True, overrides)
    assert not is_effectively_excluded("app-02", False, None)


def test_resolve_scope(small_inventory):
    overrides = VMOverrides(excluded={"web-01"}, force_included={"golden-image"})
    scope = resolve_scope(small_inventory, overrides)

    assert scope.included_names == {"DB_Server", "golden-image"}
    assert {d.vm_name for d in scope.excluded} == {"web-01", "legacy-app"}
    assert scope.manually_excluded_count == 1
    assert scope.auto_excluded_count == 1
    forced = next(d for d in scope.decisions if d.vm_name == "golden-image")
    assert forced.force_included and forced.auto.is_excluded


def test_unknown_override_is_logged(small_inventory, caplog):
    with caplog.at_level(logging.WARNING, logger="rvtools_migrate.exclusion"):
        scope = resolve_scope(small_inventory, VMOverrides(excluded={"ghost-vm"}))
    assert "ghost-vm" in caplog.text
    assert len(scope.decisions) == 4


def test_apply_scope_restricts_analyzable_vms(small_inventory):
    scoped, scope = apply_scope(small_inventory, VMOverrides(force_included={"golden-image"}))

    assert [vm.name for vm in scoped.analyzable_vms()] == ["web-01", "DB_Server", "golden-image"]
    assert scoped.disks is small_inventory.disks
    assert small_inventory.scope is None
    assert len(scope.excluded) == 1


def test_no_rules_includes_everything(small_inventory):
    scoped, scope = apply_scope(small_inventory, rules=ExclusionRules())
    assert scope.excluded == []
    assert len(scoped.analyzable_vms()) == 4


def test_empty_inventory_scope():
    scoped, scope = apply_scope(Inventory())
    assert scoped.analyzable_vms() == []
    assert scope.decisions == []


# ---------------------------------------------------------------------------
# Rules from configuration documents
# ---------------------------------------------------------------------------

def test_rules_from_dict(caplog):
    data = {
        "fieldRules": [
            {"id": "template", "label": "Template", "field": "template", "value": True},
            {"label": "no id", "field": "template", "value": True},
        ],
        "namePatterns": [
            {"id": "lab", "label": "Lab", "match": "startsWith", "patterns": ["lab-"],
             "excludePatterns": ["lab-keep"]},
            {"id": "weird", "match": "glob", "patterns": ["*"]},
            "not-a-rule",
        ],
    }
    with caplog.at_level(logging.WARNING, logger="rvtools_migrate.exclusion"):
        rules = exclusion_rules_from_dict(data)

    assert [r.id for r in rules.field_rules] == ["template"]
    assert [r.id for r in rules.name_rules] == ["lab"]
    assert "unknown match type" in caplog.text

    assert get_auto_exclusion(make_vm("lab-01"), rules).labels == ["Lab"]
    assert not get_auto_exclusion(make_vm("lab-keep-01"), rules).is_excluded
    assert not get_auto_exclusion(make_vm("app-01", power_state=PowerState.POWERED_OFF), rules).is_excluded


def test_default_rules_cover_field_and_name_rules():
    assert {r.id for r in DEFAULT_EXCLUSION_RULES.field_rules} == {"template", "powered-off"}
    assert "vmware-vcls" in {r.id for r in DEFAULT_EXCLUSION_RULES.name_rules}
