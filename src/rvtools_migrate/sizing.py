"""Capacity sizing engine — bare metal worker count for ROKS with ODF on local NVMe.

Two phases:

1. **Node capacity**: what one worker can host after platform and ODF
   reservations, hyperthreading and overcommit (CPU / memory), and after
   Ceph replication and overhead (storage).
2. **Node requirements**: how many workers the workload needs so that,
   after ``node_redundancy_count`` failures, the survivors stay below the
   eviction threshold (CPU / memory) and the operational capacity target
   (storage).  The cluster never drops below 3 surviving nodes.

A final N+X validation recomputes utilization on the surviving nodes and
reports every sub-check with its exact percentage.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .catalog import HardwareProfile
from .models import Inventory
from .validation import Outcome, ValidationError, ValidationResult, check_range

if TYPE_CHECKING:
    from .cost_estimation import PricingTable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Platform constants
# ---------------------------------------------------------------------------

SYSTEM_RESERVED_CPU = 1          # cores per node for OpenShift system processes
SYSTEM_RESERVED_MEMORY_GIB = 4   # kubelet, monitoring, etc.

ODF_BASE_CPU = 5
ODF_CPU_PER_DEVICE = 2
ODF_BASE_MEMORY_GIB = 21
ODF_MEMORY_PER_DEVICE_GIB = 5

# KubeVirt per-VM overhead: fixed + proportional
CPU_OVERHEAD_PER_VM = 0.27       # vCPU
CPU_OVERHEAD_PCT = 3
MEMORY_OVERHEAD_PER_VM_MIB = 378
MEMORY_OVERHEAD_PCT = 3

MIN_QUORUM_NODES = 3


class StorageMetric(str, Enum):
    PROVISIONED = "provisioned"
    IN_USE = "inUse"
    DISK_CAPACITY = "diskCapacity"


class LimitingFactor(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    STORAGE = "storage"


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SizingParameters:
    cpu_overcommit_ratio: float = 1.8
    memory_overcommit_ratio: float = 1.0
    hyperthreading_multiplier: float = 1.25
    use_hyperthreading: bool = True
    replica_factor: int = 3
    operational_capacity_pct: float = 75
    ceph_overhead_pct: float = 15
    node_redundancy_count: int = 1
    eviction_threshold_pct: float = 96
    storage_metric: StorageMetric = StorageMetric.IN_USE
    annual_growth_rate_pct: float = 20
    planning_horizon_years: int = 2
    virtualization_overhead_pct: float = 15


# field -> (low, high, integer)
PARAMETER_RANGES: dict[str, tuple[float, float, bool]] = {
    "cpu_overcommit_ratio": (1.0, 10.0, False),
    "memory_overcommit_ratio": (1.0, 2.0, False),
    "hyperthreading_multiplier": (1.0, 1.5, False),
    "replica_factor": (2, 3, True),
    "operational_capacity_pct": (50, 90, False),
    "ceph_overhead_pct": (10, 25, False),
    "node_redundancy_count": (0, 4, True),
    "eviction_threshold_pct": (80, 99, False),
    "annual_growth_rate_pct": (0, 50, False),
    "planning_horizon_years": (1, 5, True),
    "virtualization_overhead_pct": (0, 25, False),
}


def validate_sizing_parameters(params: SizingParameters) -> ValidationResult:
    """List every out-of-range field; nothing is clamped."""
    errors: list[ValidationError] = []
    for name, (low, high, integer) in PARAMETER_RANGES.items():
        check_range(errors, name, getattr(params, name), low, high, integer=integer)
    if not isinstance(params.use_hyperthreading, bool):
        errors.append(ValidationError("use_hyperthreading", "must be true or false"))
    try:
        StorageMetric(params.storage_metric)
    except ValueError:
        valid = ", ".join(m.value for m in StorageMetric)
        errors.append(ValidationError("storage_metric", f"must be one of: {valid}"))
    return ValidationResult.from_errors(errors)


# ---------------------------------------------------------------------------
# Phase A: per-node capacity
# ---------------------------------------------------------------------------

@dataclass
class NodeCapacity:
    profile_name: str
    odf_reserved_cpu: int
    odf_reserved_memory_gib: float
    total_reserved_cpu: int
    total_reserved_memory_gib: float
    available_cores: float
    effective_cores: float
    vcpu_capacity: int
    available_memory_gib: float
    memory_capacity: int
    raw_storage_gib: float
    max_storage_efficiency: float
    max_usable_storage_gib: int   # before operational capacity
    usable_storage_gib: int       # at operational capacity, used for sizing


def odf_reserved_cpu(nvme_disks: int) -> int:
    return ODF_BASE_CPU + ODF_CPU_PER_DEVICE * nvme_disks


def odf_reserved_memory_gib(nvme_disks: int) -> float:
    return ODF_BASE_MEMORY_GIB + ODF_MEMORY_PER_DEVICE_GIB * nvme_disks


def calculate_node_capacity(profile: HardwareProfile, params: SizingParameters) -> NodeCapacity:
    nvme_disks = profile.nvme_disks or 0
    odf_cpu = odf_reserved_cpu(nvme_disks)
    odf_mem = odf_reserved_memory_gib(nvme_disks)
    reserved_cpu = SYSTEM_RESERVED_CPU + odf_cpu
    reserved_mem = SYSTEM_RESERVED_MEMORY_GIB + odf_mem

    available_cores = max(0, profile.physical_cores - reserved_cpu)
    if params.use_hyperthreading:
        effective_cores = available_cores * params.hyperthreading_multiplier
    else:
        effective_cores = available_cores
    vcpu_capacity = math.floor(effective_cores * params.cpu_overcommit_ratio)

    available_memory = max(0.0, profile.memory_gib - reserved_mem)
    memory_capacity = math.floor(available_memory * params.memory_overcommit_ratio)

    raw_storage = profile.total_nvme_gib or 0
    efficiency = (1 / params.replica_factor) * (1 - params.ceph_overhead_pct / 100)
    max_usable = math.floor(raw_storage * efficiency)
    usable = math.floor(max_usable * (params.operational_capacity_pct / 100))

    return NodeCapacity(
        profile_name=profile.name,
        odf_reserved_cpu=odf_cpu,
        odf_reserved_memory_gib=odf_mem,
        total_reserved_cpu=reserved_cpu,
        total_reserved_memory_gib=reserved_mem,
        available_cores=available_cores,
        effective_cores=effective_cores,
        vcpu_capacity=vcpu_capacity,
        available_memory_gib=available_memory,
        memory_capacity=memory_capacity,
        raw_storage_gib=raw_storage,
        max_storage_efficiency=efficiency,
        max_usable_storage_gib=max_usable,
        usable_storage_gib=usable,
    )


# ---------------------------------------------------------------------------
# Workload demand
# ---------------------------------------------------------------------------

@dataclass
class WorkloadDemand:
    vm_count: int = 0
    base_vcpus: int = 0
    base_memory_gib: float = 0.0
    cpu_overhead_vcpus: float = 0.0
    memory_overhead_gib: float = 0.0
    total_vcpus: int = 0
    total_memory_gib: float = 0.0
    provisioned_storage_gib: float = 0.0
    in_use_storage_gib: float = 0.0
    disk_capacity_storage_gib: float = 0.0

    def base_storage_gib(self, metric: StorageMetric) -> float:
        if metric == StorageMetric.PROVISIONED:
            return self.provisioned_storage_gib
        if metric == StorageMetric.DISK_CAPACITY:
            return self.disk_capacity_storage_gib
        return self.in_use_storage_gib


def demand_from_totals(
    vm_count: int,
    base_vcpus: int,
    base_memory_mib: float,
    *,
    provisioned_storage_gib: float = 0.0,
    in_use_storage_gib: float = 0.0,
    disk_capacity_storage_gib: float = 0.0,
) -> WorkloadDemand:
    """Apply virtualization overhead to raw guest totals."""
    cpu_overhead = vm_count * CPU_OVERHEAD_PER_VM + base_vcpus * (CPU_OVERHEAD_PCT / 100)
    mem_overhead_mib = vm_count * MEMORY_OVERHEAD_PER_VM_MIB + base_memory_mib * (MEMORY_OVERHEAD_PCT / 100)
    return WorkloadDemand(
        vm_count=vm_count,
        base_vcpus=base_vcpus,
        base_memory_gib=base_memory_mib / 1024,
        cpu_overhead_vcpus=cpu_overhead,
        memory_overhead_gib=mem_overhead_mib / 1024,
        total_vcpus=math.ceil(base_vcpus + cpu_overhead),
        total_memory_gib=(base_memory_mib + mem_overhead_mib) / 1024,
        provisioned_storage_gib=provisioned_storage_gib,
        in_use_storage_gib=in_use_storage_gib,
        disk_capacity_storage_gib=disk_capacity_storage_gib,
    )


def calculate_workload_demand(inventory: Inventory, *, include_powered_off: bool = False) -> WorkloadDemand:
    """Aggregate demand over the non-template VMs that will run on the cluster."""
    vms = [vm for vm in inventory.analyzable_vms() if include_powered_off or vm.is_powered_on]
    names = {vm.name for vm in vms}
    disk_capacity_mib = sum(d.capacity_mib for d in inventory.disks if d.vm_name in names)
    return demand_from_totals(
        len(vms),
        sum(max(vm.cpus, 0) for vm in vms),
        sum(max(vm.memory_mib, 0) for vm in vms),
        provisioned_storage_gib=sum(max(vm.provisioned_mib, 0) for vm in vms) / 1024,
        in_use_storage_gib=sum(max(vm.in_use_mib, 0) for vm in vms) / 1024,
        disk_capacity_storage_gib=disk_capacity_mib / 1024,
    )


# ---------------------------------------------------------------------------
# Phase B: node requirements
# ---------------------------------------------------------------------------

@dataclass
class NodeRequirements:
    total_vcpus: int
    total_memory_gib: float
    base_storage_gib: float
    total_storage_gib: float      # growth and virtualization overhead applied
    nodes_for_cpu: int            # at eviction threshold
    nodes_for_memory: int
    nodes_for_storage: int        # at operational capacity
    min_surviving_nodes: int
    node_redundancy_count: int
    total_nodes: int
    limiting_factor: LimitingFactor


def _nodes_needed(demand: float, capacity: float) -> int:
    if capacity <= 0:
        return 0
    return math.ceil(demand / capacity)


def projected_storage_gib(base_storage_gib: float, params: SizingParameters) -> float:
    growth = (1 + params.annual_growth_rate_pct / 100) ** params.planning_horizon_years
    return base_storage_gib * growth * (1 + params.virtualization_overhead_pct / 100)


def calculate_node_requirements(
    demand: WorkloadDemand,
    capacity: NodeCapacity,
    params: SizingParameters,
) -> NodeRequirements:
    base_storage = demand.base_storage_gib(StorageMetric(params.storage_metric))
    total_storage = projected_storage_gib(base_storage, params)

    eviction = params.eviction_threshold_pct / 100
    nodes_cpu = _nodes_needed(demand.total_vcpus, capacity.vcpu_capacity * eviction)
    nodes_mem = _nodes_needed(demand.total_memory_gib, capacity.memory_capacity * eviction)
    nodes_storage = _nodes_needed(total_storage, capacity.usable_storage_gib)

    min_surviving = max(MIN_QUORUM_NODES, nodes_cpu, nodes_mem, nodes_storage)

    # Ties resolve memory > storage > cpu
    if nodes_mem >= nodes_cpu and nodes_mem >= nodes_storage:
        limiting = LimitingFactor.MEMORY
    elif nodes_storage >= nodes_cpu and nodes_storage >= nodes_mem:
        limiting = LimitingFactor.STORAGE
    else:
        limiting = LimitingFactor.CPU

    return NodeRequirements(
        total_vcpus=demand.total_vcpus,
        total_memory_gib=demand.total_memory_gib,
        base_storage_gib=base_storage,
        total_storage_gib=total_storage,
        nodes_for_cpu=nodes_cpu,
        nodes_for_memory=nodes_mem,
        nodes_for_storage=nodes_storage,
        min_surviving_nodes=min_surviving,
        node_redundancy_count=params.node_redundancy_count,
        total_nodes=min_surviving + params.node_redundancy_count,
        limiting_factor=limiting,
    )


# ---------------------------------------------------------------------------
# N+X redundancy validation
# ---------------------------------------------------------------------------

@dataclass
class RedundancyValidation:
    total_nodes: int
    failed_nodes: int
    surviving_nodes: int
    eviction_threshold_pct: float
    storage_threshold_pct: float
    # Utilization in percent; None when the dimension has no capacity (N/A)
    cpu_util_healthy: float | None
    memory_util_healthy: float | None
    storage_util_healthy: float | None
    cpu_util_after_failure: float | None
    memory_util_after_failure: float | None
    storage_util_after_failure: float | None
    cpu_passes: bool
    memory_passes: bool
    storage_passes: bool | None   # None: storage provided externally
    quorum_passes: bool
    all_pass: bool

    @property
    def storage_applicable(self) -> bool:
        return self.storage_passes is not None


def _utilization(demand: float, nodes: int, capacity: float) -> float | None:
    if capacity <= 0 or nodes <= 0:
        return None
    return demand / nodes / capacity * 100


def validate_redundancy(
    requirements: NodeRequirements,
    capacity: NodeCapacity,
    params: SizingParameters,
) -> RedundancyValidation:
    total = requirements.total_nodes
    failed = params.node_redundancy_count
    surviving = max(0, total - failed)

    cpu_after = _utilization(requirements.total_vcpus, surviving, capacity.vcpu_capacity)
    mem_after = _utilization(requirements.total_memory_gib, surviving, capacity.memory_capacity)
    storage_after = _utilization(requirements.total_storage_gib, surviving, capacity.max_usable_storage_gib)

    if cpu_after is None:
        cpu_passes = requirements.total_vcpus == 0
    else:
        cpu_passes = cpu_after <= params.eviction_threshold_pct
    if mem_after is None:
        memory_passes = requirements.total_memory_gib == 0
    else:
        memory_passes = mem_after <= params.eviction_threshold_pct
    if capacity.max_usable_storage_gib <= 0:
        storage_passes = None
    elif storage_after is None:
        storage_passes = requirements.total_storage_gib == 0
    else:
        storage_passes = storage_after <= params.operational_capacity_pct
    quorum_passes = surviving >= MIN_QUORUM_NODES

    return RedundancyValidation(
        total_nodes=total,
        failed_nodes=failed,
        surviving_nodes=surviving,
        eviction_threshold_pct=params.eviction_threshold_pct,
        storage_threshold_pct=params.operational_capacity_pct,
        cpu_util_healthy=_utilization(requirements.total_vcpus, total, capacity.vcpu_capacity),
        memory_util_healthy=_utilization(requirements.total_memory_gib, total, capacity.memory_capacity),
        storage_util_healthy=_utilization(requirements.total_storage_gib, total, capacity.max_usable_storage_gib),
        cpu_util_after_failure=cpu_after,
        memory_util_after_failure=mem_after,
        storage_util_after_failure=storage_after,
        cpu_passes=cpu_passes,
        memory_passes=memory_passes,
        storage_passes=storage_passes,
        quorum_passes=quorum_passes,
        all_pass=cpu_passes and memory_passes and storage_passes is not False and quorum_passes,
    )


# ---------------------------------------------------------------------------
# Full sizing
# ---------------------------------------------------------------------------

@dataclass
class SizingResult:
    profile: HardwareProfile
    params: SizingParameters
    capacity: NodeCapacity
    demand: WorkloadDemand
    requirements: NodeRequirements
    validation: RedundancyValidation
    notes: list[str] = field(default_factory=list)

    @property
    def compute_nodes(self) -> int:
        return self.requirements.total_nodes

    @property
    def storage_tib(self) -> int:
        return math.ceil(self.requirements.total_storage_gib / 1024)

    @property
    def limiting_factor(self) -> LimitingFactor:
        return self.requirements.limiting_factor


def size_cluster(
    source: Inventory | WorkloadDemand,
    profile: HardwareProfile,
    params: SizingParameters | None = None,
    *,
    include_powered_off: bool = False,
) -> Outcome[SizingResult]:
    """Size a ROKS cluster for an inventory (or a precomputed demand)."""
    params = params or SizingParameters()
    check = validate_sizing_parameters(params)
    if not check.valid:
        return Outcome(validation=check)

    if isinstance(source, Inventory):
        demand = calculate_workload_demand(source, include_powered_off=include_powered_off)
    else:
        demand = source

    capacity = calculate_node_capacity(profile, params)
    requirements = calculate_node_requirements(demand, capacity, params)
    validation = validate_redundancy(requirements, capacity, params)

    notes: list[str] = []
    if capacity.max_usable_storage_gib <= 0:
        notes.append("Profile has no local NVMe; storage is provided externally")
    if not profile.roks_supported:
        notes.append(f"{profile.name} is not supported as a ROKS worker")
    if capacity.vcpu_capacity <= 0:
        notes.append("Reservations exceed the profile's physical cores")

    logger.debug(
        "Sized %d VM(s) on %s: %d node(s), limiting factor %s",
        demand.vm_count, profile.name, requirements.total_nodes, requirements.limiting_factor.value,
    )
    return Outcome(value=SizingResult(profile, params, capacity, demand, requirements, validation, notes))


def select_default_profile(
    profiles: list[HardwareProfile],
    pricing: PricingTable | None = None,
) -> HardwareProfile | None:
    """Cheapest ROKS-supported NVMe profile, else the first one in catalog order."""
    candidates = [p for p in profiles if p.roks_supported and p.has_nvme]
    if not candidates:
        return None
    if pricing is not None:
        priced = [
            (pricing.bare_metal[p.name].monthly_rate, index, p)
            for index, p in enumerate(candidates)
            if p.name in pricing.bare_metal
        ]
        if priced:
            return min(priced, key=lambda item: item[:2])[2]
    return candidates[0]
