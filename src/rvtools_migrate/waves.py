"""Wave planning — partitions the VM estate into ordered migration waves.

Three strategies:

* ``complexity`` — Pilot → Quick Wins → Standard → Complex → Remediation
  (VMs with any blocker always go to Remediation).
* ``cluster`` — one wave per source vSphere cluster.
* ``port_group`` — one wave per primary port group.

Every strategy is a partition: each analyzed VM lands in exactly one wave.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, field
from enum import Enum

from .complexity import ComplexityScore
from .models import Inventory, MigrationMode
from .os_compatibility import get_roks_os_compatibility, get_vsi_os_compatibility
from .preflight import VMCheckResults

logger = logging.getLogger(__name__)

NO_NETWORK = "No Network"
NO_CLUSTER = "No Cluster"


class WaveStrategy(str, Enum):
    COMPLEXITY = "complexity"
    CLUSTER = "cluster"
    PORT_GROUP = "port_group"


@dataclass
class VMWaveData:
    vm_name: str
    complexity: int = 0
    os_status: str = ""
    has_blocker: bool = False
    vcpus: int = 0
    memory_gib: int = 0
    storage_gib: int = 0
    network_name: str = NO_NETWORK
    ip_address: str = ""
    subnet: str = "Unknown"
    cluster: str = NO_CLUSTER


@dataclass
class WaveGroup:
    name: str
    description: str = ""
    vms: list[VMWaveData] = field(default_factory=list)
    has_blockers: bool = False

    @property
    def vm_count(self) -> int:
        return len(self.vms)

    @property
    def vcpus(self) -> int:
        return sum(v.vcpus for v in self.vms)

    @property
    def memory_gib(self) -> int:
        return sum(v.memory_gib for v in self.vms)

    @property
    def storage_gib(self) -> int:
        return sum(v.storage_gib for v in self.vms)

    @property
    def avg_complexity(self) -> float:
        return sum(v.complexity for v in self.vms) / len(self.vms) if self.vms else 0.0


def _subnet(ip: str) -> str:
    """The /24 an IPv4 address sits in; "Unknown" for anything else."""
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return "Unknown"
    if address.version != 4:
        return "Unknown"
    return str(ipaddress.ip_network(f"{address}/24", strict=False))


def build_vm_wave_data(
    inventory: Inventory,
    complexity_scores: list[ComplexityScore],
    check_results: list[VMCheckResults],
    mode: MigrationMode,
) -> list[VMWaveData]:
    """Join inventory, scores and pre-flight results into one record per VM."""
    scores = {s.vm_name: s for s in complexity_scores}
    checks = {r.vm_name: r for r in check_results}
    nics: dict[str, list] = {}
    for nic in inventory.networks:
        nics.setdefault(nic.vm_name.lower(), []).append(nic)

    data: list[VMWaveData] = []
    for vm in inventory.analyzable_vms():
        score = scores.get(vm.name)
        result = checks.get(vm.name)
        if mode == MigrationMode.VSI:
            os_status = get_vsi_os_compatibility(vm.guest_os).status
        else:
            os_status = get_roks_os_compatibility(vm.guest_os).status

        has_blocker = bool(result and result.blocker_count > 0) or bool(score and score.hard_blocker)

        primary = (nics.get(vm.name.lower()) or [None])[0]
        ip = (primary.ipv4_address or "") if primary else ""
        data.append(VMWaveData(
            vm_name=vm.name,
            complexity=score.score if score else 0,
            os_status=os_status,
            has_blocker=has_blocker,
            vcpus=vm.cpus,
            memory_gib=round(vm.memory_gib),
            storage_gib=round(vm.in_use_mib / 1024),
            network_name=(primary.network_name if primary else "") or NO_NETWORK,
            ip_address=ip,
            subnet=_subnet(ip) if ip else "Unknown",
            cluster=vm.cluster or NO_CLUSTER,
        ))
    return data


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

_COMPLEXITY_WAVES = [
    ("Wave 1: Pilot", "Simple VMs with supported OS for initial validation"),
    ("Wave 2: Quick Wins", "Low complexity VMs ready for migration"),
    ("Wave 3: Standard", "Moderate complexity VMs"),
    ("Wave 4: Complex", "High complexity VMs requiring careful planning"),
    ("Wave 5: Remediation", "VMs with blockers requiring fixes before migration"),
]


def _complexity_wave_index(vm: VMWaveData, supported_status: str) -> int:
    if vm.has_blocker:
        return 4
    if vm.complexity <= 15 and vm.os_status == supported_status:
        return 0
    if vm.complexity <= 30:
        return 1
    if vm.complexity <= 55:
        return 2
    return 3


def create_complexity_waves(data: list[VMWaveData], mode: MigrationMode) -> list[WaveGroup]:
    supported = "supported" if mode == MigrationMode.VSI else "fully-supported"
    waves = [
        WaveGroup(name, description, has_blockers=(i == 4))
        for i, (name, description) in enumerate(_COMPLEXITY_WAVES)
    ]
    for vm in data:
        waves[_complexity_wave_index(vm, supported)].vms.append(vm)
    return [w for w in waves if w.vms]


def _summarize(values: list[str], label: str, empty: str) -> str:
    if not values:
        return empty
    text = ", ".join(values[:3])
    if len(values) > 3:
        text += f" +{len(values) - 3} more"
    return f"{label}: {text}"


def create_network_waves(data: list[VMWaveData], group_by: str = WaveStrategy.PORT_GROUP) -> list[WaveGroup]:
    by_cluster = WaveStrategy(group_by) == WaveStrategy.CLUSTER
    groups: dict[str, list[VMWaveData]] = {}
    for vm in data:
        key = vm.cluster if by_cluster else (vm.network_name or NO_NETWORK)
        groups.setdefault(key, []).append(vm)

    waves: list[WaveGroup] = []
    for name, vms in groups.items():
        if by_cluster:
            port_groups = list(dict.fromkeys(v.network_name for v in vms if v.network_name != NO_NETWORK))
            description = _summarize(port_groups, "Port Group", "No port group info")
        else:
            ips = list(dict.fromkeys(v.ip_address for v in vms if v.ip_address))
            description = _summarize(ips, "IPs", "No IP addresses detected")
        waves.append(WaveGroup(name, description, vms, has_blockers=any(v.has_blocker for v in vms)))

    waves.sort(key=lambda w: (w.has_blockers, w.vm_count, w.name))
    return waves


def plan_waves(strategy: str, data: list[VMWaveData], mode: MigrationMode) -> list[WaveGroup]:
    strategy = WaveStrategy(strategy)
    if strategy == WaveStrategy.COMPLEXITY:
        waves = create_complexity_waves(data, mode)
    else:
        waves = create_network_waves(data, strategy)
    logger.info("Planned %d wave(s) for %d VM(s) by %s", len(waves), len(data), strategy.value)
    return waves
