from dataclasses import asdict

import pytest
from conftest import make_vm

from rvtools_migrate.catalog import BARE_METAL_PROFILES
from rvtools_migrate.cost_estimation import DEFAULT_PRICING
from rvtools_migrate.models import Inventory, PowerState
from rvtools_migrate.sizing import (
    LimitingFactor,
    NodeRequirements,
    SizingParameters,
    StorageMetric,
    calculate_node_capacity,
    calculate_workload_demand,
    demand_from_totals,
    projected_storage_gib,
    select_default_profile,
    size_cluster,
    validate_redundancy,
    validate_sizing_parameters,
)


def test_node_capacity_for_nvme_profile(nvme_profile):
    cap = calculate_node_capacity(nvme_profile, SizingParameters())

    assert cap.odf_reserved_cpu == 21          # 5 + 2 x 8 devices
    assert cap.odf_reserved_memory_gib == 61   # 21 + 5 x 8 devices
    assert cap.total_reserved_cpu == 22
    assert cap.available_cores == 26
    assert cap.vcpu_capacity == 58             # floor(26 x 1.25 x 1.8)
    assert cap.memory_capacity == 319          # 384 - 65
    assert cap.max_storage_efficiency == pytest.approx(0.2833, abs=1e-4)
    assert cap.max_usable_storage_gib == 7253
    assert cap.usable_storage_gib == 5439


def test_capacity_without_hyperthreading(nvme_profile):
    cap = calculate_node_capacity(nvme_profile, SizingParameters(use_hyperthreading=False))
    assert cap.vcpu_capacity == 46             # floor(26 x 1.8)


def test_reservations_larger_than_profile_floor_at_zero(nvme_profile):
    from dataclasses import replace

    tiny = replace(nvme_profile, physical_cores=8, memory_gib=32)
    cap = calculate_node_capacity(tiny, SizingParameters())
    assert cap.available_cores == 0
    assert cap.vcpu_capacity == 0
    assert cap.memory_capacity == 0


def test_demand_overheads():
    demand = demand_from_totals(10, 20, 40 * 1024)
    assert demand.cpu_overhead_vcpus == pytest.approx(3.3)
    assert demand.total_vcpus == 24
    assert demand.total_memory_gib == pytest.approx((40960 + 3780 + 1228.8) / 1024)


def test_projected_storage():
    assert projected_storage_gib(1000, SizingParameters()) == pytest.approx(1656)
    flat = SizingParameters(annual_growth_rate_pct=0, virtualization_overhead_pct=0)
    assert projected_storage_gib(1000, flat) == pytest.approx(1000)


def test_node_requirements(nvme_profile):
    demand = demand_from_totals(100, 400, 100 * 16 * 1024, in_use_storage_gib=10000)
    result = size_cluster(demand, nvme_profile)
    assert result.ok
    req = result.value.requirements

    assert req.total_vcpus == 439
    assert req.nodes_for_cpu == 8
    assert req.nodes_for_memory == 6
    assert req.nodes_for_storage == 4
    assert req.min_surviving_nodes == 8
    assert req.total_nodes == 9
    assert req.limiting_factor == LimitingFactor.CPU
    assert result.value.validation.all_pass


def test_storage_metric_selects_base(nvme_profile):
    demand = demand_from_totals(1, 2, 4096, provisioned_storage_gib=500, in_use_storage_gib=100,
                                disk_capacity_storage_gib=800)
    for metric, expected in [(StorageMetric.PROVISIONED, 500), (StorageMetric.IN_USE, 100),
                             (StorageMetric.DISK_CAPACITY, 800)]:
        result = size_cluster(demand, nvme_profile, SizingParameters(storage_metric=metric))
        assert result.value.requirements.base_storage_gib == expected


def test_minimum_cluster_is_quorum_plus_redundancy(nvme_profile):
    result = size_cluster(Inventory(), nvme_profile)
    assert result.ok
    assert result.value.requirements.min_surviving_nodes == 3
    assert result.value.compute_nodes == 4
    assert result.value.limiting_factor == LimitingFactor.MEMORY


@pytest.mark.parametrize("redundancy", [0, 1, 2, 4])
def test_node_floor(nvme_profile, redundancy):
    params = SizingParameters(node_redundancy_count=redundancy)
    result = size_cluster(Inventory(vms=[make_vm("a", 1, 1)]), nvme_profile, params)
    assert result.value.compute_nodes >= 3 + redundancy


def test_sizing_is_idempotent(small_inventory, nvme_profile):
    first = size_cluster(small_inventory, nvme_profile)
    second = size_cluster(small_inventory, nvme_profile)
    assert asdict(first.value) == asdict(second.value)


def test_more_demand_never_needs_fewer_nodes(nvme_profile):
    previous = 0
    for count in (1, 10, 50, 200, 800):
        inventory = Inventory(vms=[make_vm(f"vm-{i}", 8, 32, in_use_mib=200 * 1024) for i in range(count)])
        nodes = size_cluster(inventory, nvme_profile).value.compute_nodes
        assert nodes >= previous
        previous = nodes


def test_templates_and_powered_off_vms_excluded(small_inventory):
    demand = calculate_workload_demand(small_inventory)
    assert demand.vm_count == 2                 # web-01, DB_Server
    assert demand.base_vcpus == 10

    with_off = calculate_workload_demand(small_inventory, include_powered_off=True)
    assert with_off.vm_count == 3
    assert with_off.base_vcpus == 14


def test_adding_template_does_not_change_sizing(small_inventory, nvme_profile):
    before = size_cluster(small_inventory, nvme_profile).value
    small_inventory.vms.append(make_vm("tpl-2", 64, 512, template=True, power_state=PowerState.POWERED_ON))
    after = size_cluster(small_inventory, nvme_profile).value
    assert asdict(before) == asdict(after)


def test_profile_without_nvme_marks_storage_not_applicable(small_inventory, diskless_profile):
    result = size_cluster(small_inventory, diskless_profile)
    assert result.ok
    sizing = result.value
    assert sizing.capacity.max_usable_storage_gib == 0
    assert sizing.requirements.nodes_for_storage == 0
    assert sizing.validation.storage_passes is None
    assert not sizing.validation.storage_applicable
    assert sizing.validation.storage_util_after_failure is None
    assert sizing.validation.all_pass
    assert any("NVMe" in note for note in sizing.notes)


def test_n_plus_one_cpu_failure(nvme_profile):
    params = SizingParameters()
    capacity = calculate_node_capacity(nvme_profile, params)
    requirements = NodeRequirements(
        total_vcpus=230,
        total_memory_gib=100,
        base_storage_gib=0,
        total_storage_gib=0,
        nodes_for_cpu=5,
        nodes_for_memory=1,
        nodes_for_storage=0,
        min_surviving_nodes=4,
        node_redundancy_count=1,
        total_nodes=5,
        limiting_factor=LimitingFactor.CPU,
    )
    validation = validate_redundancy(requirements, capacity, params)

    assert validation.surviving_nodes == 4
    assert validation.cpu_util_after_failure == pytest.approx(230 / 4 / 58 * 100)
    assert not validation.cpu_passes
    assert validation.memory_passes
    assert validation.quorum_passes
    assert not validation.all_pass


def test_quorum_fails_when_too_few_survivors(nvme_profile):
    params = SizingParameters(node_redundancy_count=2)
    capacity = calculate_node_capacity(nvme_profile, params)
    requirements = NodeRequirements(10, 10, 0, 0, 1, 1, 0, 3, 2, 4, LimitingFactor.MEMORY)
    validation = validate_redundancy(requirements, capacity, params)
    assert validation.surviving_nodes == 2
    assert not validation.quorum_passes
    assert not validation.all_pass


def test_invalid_parameters_are_reported_not_clamped(nvme_profile):
    params = SizingParameters(cpu_overcommit_ratio=12, replica_factor=4, operational_capacity_pct=95)
    result = size_cluster(Inventory(), nvme_profile, params)

    assert not result.ok
    assert result.value is None
    fields = {e.field for e in result.validation.errors}
    assert fields == {"cpu_overcommit_ratio", "replica_factor", "operational_capacity_pct"}


def test_fractional_integer_parameter_rejected():
    result = validate_sizing_parameters(SizingParameters(planning_horizon_years=2.5))
    assert not result.valid
    assert result.errors[0].field == "planning_horizon_years"


def test_default_parameters_are_valid():
    assert validate_sizing_parameters(SizingParameters()).valid


def test_select_default_profile():
    assert select_default_profile(BARE_METAL_PROFILES).name == "bx2d-metal-96x384"
    assert select_default_profile(BARE_METAL_PROFILES, DEFAULT_PRICING).name == "cx2d-metal-96x192"
    diskless = [p for p in BARE_METAL_PROFILES if not p.has_nvme]
    assert select_default_profile(diskless) is None


def test_negative_figures_do_not_reduce_demand():
    inventory = Inventory(vms=[make_vm("a", 4, 16), make_vm("b", -8, -32, provisioned_mib=-1024, in_use_mib=-512)])
    demand = calculate_workload_demand(inventory)
    assert demand.vm_count == 2
    assert demand.base_vcpus == 4
    assert demand.base_memory_gib == 16
