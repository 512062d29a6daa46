"""Data models representing a parsed RVTools inventory export."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class PowerState(str, Enum):
    POWERED_ON = "poweredOn"
    POWERED_OFF = "poweredOff"
    SUSPENDED = "suspended"


class ToolsState(str, Enum):
    OK = "toolsOk"
    OLD = "toolsOld"
    NOT_RUNNING = "toolsNotRunning"
    NOT_INSTALLED = "toolsNotInstalled"


class MigrationMode(str, Enum):
    ROKS = "roks"
    VSI = "vsi"


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    BLOCK = "block"
    NA = "na"


_DATASTORE_RE = re.compile(r"^\s*\[([^\]]+)\]")
_HW_VERSION_RE = re.compile(r"(\d+)")


@dataclass
class VirtualMachine:
    """A VM row from the vInfo sheet (plus vCPU/vMemory hot-add flags)."""
    # Identity
    name: str = ""
    uuid: str = ""

    # Compute
    power_state: PowerState = PowerState.POWERED_OFF
    cpus: int = 0
    memory_mib: int = 0

    # Storage footprint
    provisioned_mib: float = 0.0
    in_use_mib: float = 0.0

    # Guest
    guest_os: str = ""
    guest_hostname: str | None = None
    dns_name: str | None = None
    hardware_version: int | None = None   # None when the export carries no value

    # Location in vCenter hierarchy
    datacenter: str = ""
    cluster: str = ""
    host: str = ""

    # Configuration flags (None = not reported)
    cbt_enabled: bool | None = None
    cpu_hot_add: bool | None = None
    memory_hot_add: bool | None = None

    annotation: str = ""
    template: bool = False

    @property
    def memory_gib(self) -> float:
        return self.memory_mib / 1024

    @property
    def is_powered_on(self) -> bool:
        return self.power_state == PowerState.POWERED_ON


@dataclass
class Disk:
    vm_name: str = ""
    label: str = ""
    disk_key: int = 0
    capacity_mib: float = 0.0
    thin: bool = False
    disk_mode: str = ""          # persistent, independent_persistent, ...
    sharing_mode: str = ""       # sharingNone, sharingMultiWriter
    raw: bool = False            # RDM
    disk_path: str = ""          # "[datastore1] vm/vm.vmdk"

    @property
    def capacity_gib(self) -> float:
        return self.capacity_mib / 1024

    @property
    def datastore_name(self) -> str:
        match = _DATASTORE_RE.match(self.disk_path or "")
        return match.group(1).strip() if match else ""

    @property
    def is_shared(self) -> bool:
        return bool(self.sharing_mode) and self.sharing_mode.lower() != "sharingnone"

    @property
    def is_independent(self) -> bool:
        return "independent" in (self.disk_mode or "").lower()


@dataclass
class NetworkAdapter:
    vm_name: str = ""
    adapter_type: str = ""       # VMXNET3, E1000, ...
    network_name: str = ""
    switch_name: str = ""
    connected: bool = True
    ipv4_address: str | None = None


@dataclass
class CdromDevice:
    vm_name: str = ""
    connected: bool = False


@dataclass
class Host:
    name: str = ""
    cluster: str = ""
    total_cpu_cores: int = 0
    cpu_mhz: int = 0
    cpu_usage_mhz: int = 0
    memory_mib: int = 0
    memory_usage_mib: int = 0
    esxi_version: str = ""
    vendor: str = ""
    connection_state: str = ""
    hyperthreading: bool = False


@dataclass
class Cluster:
    name: str = ""
    host_count: int = 0
    vm_count: int = 0
    ha_enabled: bool = False
    drs_enabled: bool = False
    num_cpu_cores: int = 0
    total_memory_mib: int = 0


@dataclass
class Datastore:
    name: str = ""
    type: str = ""               # VMFS, NFS, vsan, ...
    capacity_mib: float = 0.0
    in_use_mib: float = 0.0
    free_mib: float = 0.0
    vm_count: int = 0
    host_count: int = 0

    @property
    def used_percent(self) -> float:
        if self.capacity_mib <= 0:
            return 0.0
        return self.in_use_mib / self.capacity_mib * 100


@dataclass
class Snapshot:
    vm_name: str = ""
    name: str = ""
    age_in_days: int | None = None
    size_total_mib: float = 0.0


@dataclass
class ToolsStatus:
    vm_name: str = ""
    status: str = ""             # raw value; see ToolsState for the known ones


@dataclass
class Inventory:
    """Complete normalized inventory from one RVTools export."""
    source_name: str = ""
    vms: list[VirtualMachine] = field(default_factory=list)
    disks: list[Disk] = field(default_factory=list)
    networks: list[NetworkAdapter] = field(default_factory=list)
    cdroms: list[CdromDevice] = field(default_factory=list)
    hosts: list[Host] = field(default_factory=list)
    clusters: list[Cluster] = field(default_factory=list)
    datastores: list[Datastore] = field(default_factory=list)
    snapshots: list[Snapshot] = field(default_factory=list)
    tools: list[ToolsStatus] = field(default_factory=list)
    # VM names in migration scope; None means every non-template VM
    scope: frozenset[str] | None = None

    def analyzable_vms(self) -> list[VirtualMachine]:
        """VMs that take part in analysis.

        Without a scope, templates are never analyzed.  A scope set by
        :meth:`with_scope` is authoritative, so a force-included template counts.
        """
        if self.scope is not None:
            return [vm for vm in self.vms if vm.name in self.scope]
        return [vm for vm in self.vms if not vm.template]

    def with_scope(self, names: set[str] | frozenset[str]) -> Inventory:
        """A view of this inventory restricted to *names*; sheets are shared."""
        return replace(self, scope=frozenset(names))

    def disks_by_vm(self) -> dict[str, list[Disk]]:
        return _group_by_vm(self.disks)

    def nics_by_vm(self) -> dict[str, list[NetworkAdapter]]:
        return _group_by_vm(self.networks)

    def cdroms_by_vm(self) -> dict[str, list[CdromDevice]]:
        return _group_by_vm(self.cdroms)

    def snapshots_by_vm(self) -> dict[str, list[Snapshot]]:
        return _group_by_vm(self.snapshots)

    def tools_by_vm(self) -> dict[str, ToolsStatus]:
        """Tools rows keyed by exact name and by lower-cased name."""
        index: dict[str, ToolsStatus] = {}
        for t in self.tools:
            index.setdefault(t.vm_name.lower(), t)
        for t in self.tools:
            index[t.vm_name] = t
        return index


def _group_by_vm(items: list) -> dict[str, list]:
    grouped: dict[str, list] = defaultdict(list)
    for item in items:
        grouped[item.vm_name].append(item)
    return dict(grouped)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def mib_to_gib(mib: float) -> float:
    return mib / 1024


def parse_hardware_version(value: str | int | None) -> int | None:
    """Extract the numeric part of "vmx-14" / "14"; None when absent."""
    if value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    match = _HW_VERSION_RE.search(str(value))
    return int(match.group(1)) if match else None


def snapshot_age_days(created: datetime | None, as_of: datetime) -> int | None:
    """Whole days between snapshot creation and the export date."""
    if created is None:
        return None
    if created.tzinfo is None and as_of.tzinfo is not None:
        created = created.replace(tzinfo=as_of.tzinfo)
    elif created.tzinfo is not None and as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=created.tzinfo)
    return max(0, (as_of - created).days)
