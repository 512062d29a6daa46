"""Pre-flight check engine — evaluates every VM against target-specific migration rules.

Each check yields pass / warn / block / na.  A failing check is reported as
``block`` or ``warn`` according to its severity; checks that do not belong
to the selected target are reported ``na``, as are checks whose inputs are
missing from the export.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .models import (
    CdromDevice,
    CheckStatus,
    Disk,
    Inventory,
    MigrationMode,
    NetworkAdapter,
    Snapshot,
    ToolsState,
    ToolsStatus,
    VirtualMachine,
)
from .os_compatibility import get_roks_os_compatibility, get_vsi_os_compatibility

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreflightThresholds:
    snapshot_warning_days: int = 7
    snapshot_blocker_days: int = 30
    hw_version_minimum: int = 10
    hw_version_recommended: int = 14
    vpc_boot_disk_max_gib: int = 250
    vpc_max_disks: int = 12
    large_disk_gib: int = 2000
    high_memory_gib: int = 512
    max_memory_gib: int = 1024


LEGACY_NIC_TYPES = ("e1000", "e1000e", "pcnet32", "vlance", "flexible")
_RFC1123_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
_LOCALHOST_NAMES = {"localhost", "localhost.localdomain", "localhost.local"}


# ---------------------------------------------------------------------------
# Check catalogue
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckDefinition:
    id: str
    name: str
    category: str                # tools | storage | hardware | config | os
    severity: str                # blocker | warning
    description: str
    modes: tuple[MigrationMode, ...]


_ROKS = (MigrationMode.ROKS,)
_VSI = (MigrationMode.VSI,)
_BOTH = (MigrationMode.ROKS, MigrationMode.VSI)

CHECK_DEFINITIONS: list[CheckDefinition] = [
    # Tools
    CheckDefinition("tools-installed", "VMware Tools Installed", "tools", "blocker",
                    "VMware Tools must be installed for migration", _ROKS),
    CheckDefinition("tools-running", "VMware Tools Running", "tools", "warning",
                    "VMware Tools should be running for best results", _ROKS),
    CheckDefinition("tools-current", "VMware Tools Current", "tools", "warning",
                    "Outdated VMware Tools should be upgraded before migration", _ROKS),
    CheckDefinition("vsi-tools", "VMware Tools", "tools", "warning",
                    "VMware Tools needed for clean VM export", _VSI),
    # Storage
    CheckDefinition("old-snapshots", "Snapshot Age", "storage", "blocker",
                    "Old snapshots should be consolidated before migration", _BOTH),
    CheckDefinition("rdm-disks", "RDM Disks", "storage", "blocker",
                    "Raw Device Mapping disks are not supported", _BOTH),
    CheckDefinition("shared-disks", "Shared Disks", "storage", "blocker",
                    "Shared/multi-writer disks are not supported", _BOTH),
    CheckDefinition("independent-disks", "Independent Disk Mode", "storage", "blocker",
                    "Independent disks cannot be snapshotted for warm migration", _ROKS),
    CheckDefinition("boot-disk-size", "Boot Disk Size", "storage", "blocker",
                    "VPC VSI boot volume is limited in size", _VSI),
    CheckDefinition("disk-count", "Disk Count", "storage", "blocker",
                    "VPC VSI supports a limited number of volumes per instance", _VSI),
    CheckDefinition("large-disks", "Large Disks", "storage", "warning",
                    "Very large disks may require splitting", _VSI),
    # Hardware
    CheckDefinition("cd-connected", "CD-ROM Connected", "hardware", "warning",
                    "CD-ROM should be disconnected before migration", _ROKS),
    CheckDefinition("hw-version", "Hardware Version", "hardware", "blocker",
                    "Virtual hardware version must meet the migration minimum", _ROKS),
    CheckDefinition("legacy-nic", "Legacy NIC Type", "hardware", "warning",
                    "Emulated legacy adapters should be replaced with VMXNET3", _ROKS),
    CheckDefinition("memory-1tb", "Memory ≤1TB", "hardware", "blocker",
                    "VPC VSI maximum memory is 1 TiB", _VSI),
    CheckDefinition("memory-512gb", "Memory ≤512GB", "hardware", "warning",
                    "Memory above 512 GiB requires high-memory profiles", _VSI),
    # Config
    CheckDefinition("cbt-enabled", "CBT Enabled", "config", "warning",
                    "Changed Block Tracking should be enabled for warm migration", _ROKS),
    CheckDefinition("rfc1123-name", "RFC 1123 Name", "config", "warning",
                    "VM name should be RFC 1123 compliant (lowercase, alphanumeric, hyphens)", _ROKS),
    CheckDefinition("hostname-valid", "Valid Hostname", "config", "warning",
                    "Guest hostname should be configured (not localhost)", _ROKS),
    CheckDefinition("cpu-hotplug", "CPU Hot Plug", "config", "warning",
                    "CPU hot plug will be disabled after migration", _ROKS),
    CheckDefinition("mem-hotplug", "Memory Hot Plug", "config", "warning",
                    "Memory hot plug will be disabled after migration", _ROKS),
    # OS
    CheckDefinition("os-compatible", "OS Compatible", "os", "blocker",
                    "Operating system compatibility with OpenShift Virtualization", _ROKS),
    CheckDefinition("vsi-os", "VPC OS Supported", "os", "blocker",
                    "Operating system must be supported by IBM Cloud VPC", _VSI),
]

_DEFINITIONS_BY_ID = {d.id: d for d in CHECK_DEFINITIONS}


def get_checks_for_mode(mode: MigrationMode) -> list[CheckDefinition]:
    return [d for d in CHECK_DEFINITIONS if mode in d.modes]


def get_check_definition(check_id: str) -> CheckDefinition | None:
    return _DEFINITIONS_BY_ID.get(check_id)


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass
class CheckResult:
    status: CheckStatus
    message: str = ""
    value: str = ""
    threshold: str = ""


@dataclass
class VMCheckResults:
    vm_name: str
    power_state: str = ""
    cluster: str = ""
    host: str = ""
    guest_os: str = ""
    checks: dict[str, CheckResult] = field(default_factory=dict)
    blocker_count: int = 0
    warning_count: int = 0

    @property
    def has_blockers(self) -> bool:
        return self.blocker_count > 0


@dataclass
class _CheckContext:
    tools: ToolsStatus | None
    snapshots: list[Snapshot]
    disks: list[Disk]
    networks: list[NetworkAdapter]
    cdroms: list[CdromDevice]


def _fail(defn: CheckDefinition, message: str, value: str = "", threshold: str = "") -> CheckResult:
    status = CheckStatus.BLOCK if defn.severity == "blocker" else CheckStatus.WARN
    return CheckResult(status, message, value, threshold)


def _pass(value: str = "", message: str = "") -> CheckResult:
    return CheckResult(CheckStatus.PASS, message, value)


def _na(message: str) -> CheckResult:
    return CheckResult(CheckStatus.NA, message)


def is_rfc1123_compliant(name: str) -> bool:
    if not name or len(name) > 63:
        return False
    return bool(_RFC1123_RE.match(name))


# ---------------------------------------------------------------------------
# Individual evaluators
# ---------------------------------------------------------------------------

def _check_tools_installed(defn, vm, ctx, th) -> CheckResult:
    if ctx.tools is None or not ctx.tools.status:
        return _na("No VMware Tools data for this VM")
    status = ctx.tools.status
    if "notinstalled" in status.lower():
        return _fail(defn, "VMware Tools not installed", status)
    return _pass(status)


def _check_tools_running(defn, vm, ctx, th) -> CheckResult:
    if ctx.tools is None or not ctx.tools.status:
        return _na("No VMware Tools data for this VM")
    status = ctx.tools.status
    if "notinstalled" in status.lower():
        return _na("Tools not installed")
    if "notrunning" in status.lower():
        return _fail(defn, "VMware Tools installed but not running", status)
    return _pass(status)


def _check_tools_current(defn, vm, ctx, th) -> CheckResult:
    if ctx.tools is None or not ctx.tools.status:
        return _na("No VMware Tools data for this VM")
    status = ctx.tools.status
    if "notinstalled" in status.lower():
        return _na("Tools not installed")
    if status == ToolsState.OLD.value or "needupgrade" in status.lower():
        return _fail(defn, "VMware Tools out of date", status)
    return _pass(status)


def _check_vsi_tools(defn, vm, ctx, th) -> CheckResult:
    if ctx.tools is None or not ctx.tools.status:
        return _na("No VMware Tools data for this VM")
    if "notinstalled" in ctx.tools.status.lower():
        return _fail(defn, "VMware Tools not installed", ctx.tools.status)
    return _pass(ctx.tools.status)


def _check_snapshots(defn, vm, ctx, th) -> CheckResult:
    aged = [s.age_in_days for s in ctx.snapshots if s.age_in_days is not None]
    if not ctx.snapshots:
        return _pass("No snapshots")
    if not aged:
        return _pass(f"{len(ctx.snapshots)} snapshots", "Snapshot age unknown")
    oldest = max(aged)
    if oldest > th.snapshot_blocker_days:
        return CheckResult(CheckStatus.BLOCK, f"Oldest snapshot: {oldest} days",
                           f"{len(ctx.snapshots)} snapshots", f">{th.snapshot_blocker_days} days")
    if oldest > th.snapshot_warning_days:
        return CheckResult(CheckStatus.WARN, f"Oldest snapshot: {oldest} days",
                           f"{len(ctx.snapshots)} snapshots", f">{th.snapshot_warning_days} days")
    return _pass(f"{len(ctx.snapshots)} snapshots", "All snapshots within age limit")


def _check_rdm(defn, vm, ctx, th) -> CheckResult:
    rdm = [d for d in ctx.disks if d.raw]
    if rdm:
        return _fail(defn, ", ".join(d.label or d.disk_path for d in rdm), f"{len(rdm)} RDM disk(s)")
    return _pass("No RDM disks")


def _check_shared(defn, vm, ctx, th) -> CheckResult:
    shared = [d for d in ctx.disks if d.is_shared]
    if shared:
        return _fail(defn, ", ".join(f"{d.label}: {d.sharing_mode}" for d in shared),
                     f"{len(shared)} shared disk(s)")
    return _pass("No shared disks")


def _check_independent(defn, vm, ctx, th) -> CheckResult:
    independent = [d for d in ctx.disks if d.is_independent]
    if independent:
        return _fail(defn, ", ".join(f"{d.label}: {d.disk_mode}" for d in independent),
                     f"{len(independent)} independent disk(s)")
    return _pass("No independent disks")


def _check_boot_disk(defn, vm, ctx, th) -> CheckResult:
    if not ctx.disks:
        return _na("No disk info available")
    boot = min(ctx.disks, key=lambda d: d.disk_key or 0)
    size = round(boot.capacity_gib)
    if size > th.vpc_boot_disk_max_gib:
        return _fail(defn, "Boot disk exceeds VPC limit", f"{size} GiB", f"{th.vpc_boot_disk_max_gib} GiB")
    return _pass(f"{size} GiB")


def _check_disk_count(defn, vm, ctx, th) -> CheckResult:
    count = len(ctx.disks)
    if count > th.vpc_max_disks:
        return _fail(defn, "Exceeds VPC disk limit", str(count), str(th.vpc_max_disks))
    return _pass(str(count))


def _check_large_disks(defn, vm, ctx, th) -> CheckResult:
    large = [d for d in ctx.disks if d.capacity_gib > th.large_disk_gib]
    if large:
        biggest = round(max(d.capacity_gib for d in large))
        return _fail(defn, f"Largest: {biggest} GiB", f"{len(large)} disk(s)", f"{th.large_disk_gib} GiB")
    return _pass(f"All disks ≤{th.large_disk_gib} GiB")


def _check_cd(defn, vm, ctx, th) -> CheckResult:
    connected = [c for c in ctx.cdroms if c.connected]
    if connected:
        return _fail(defn, "Disconnect CD-ROM before migration", f"{len(connected)} CD(s) connected")
    return _pass("No CD connected")


def _check_hw_version(defn, vm, ctx, th) -> CheckResult:
    version = vm.hardware_version
    if not version:
        return _na("Hardware version not reported")
    if version < th.hw_version_minimum:
        return CheckResult(CheckStatus.BLOCK, "Hardware version below migration minimum",
                           f"v{version}", f"v{th.hw_version_minimum}+")
    if version < th.hw_version_recommended:
        return CheckResult(CheckStatus.WARN, "Hardware version below recommended",
                           f"v{version}", f"v{th.hw_version_recommended}+")
    return _pass(f"v{version}")


def _check_legacy_nic(defn, vm, ctx, th) -> CheckResult:
    legacy = [n for n in ctx.networks if (n.adapter_type or "").strip().lower() in LEGACY_NIC_TYPES]
    if legacy:
        types = sorted({n.adapter_type for n in legacy})
        return _fail(defn, "Replace with VMXNET3 before migration", ", ".join(types))
    return _pass("No legacy adapters")


def _check_memory_1tb(defn, vm, ctx, th) -> CheckResult:
    memory = vm.memory_gib
    if memory > th.max_memory_gib:
        return _fail(defn, "Exceeds VPC maximum", f"{round(memory)} GiB", f"{th.max_memory_gib} GiB")
    return _pass(f"{round(memory)} GiB")


def _check_memory_512(defn, vm, ctx, th) -> CheckResult:
    memory = vm.memory_gib
    if memory > th.max_memory_gib:
        return _na("Checked by memory-1tb")
    if memory > th.high_memory_gib:
        return _fail(defn, "Requires high-memory profile", f"{round(memory)} GiB", f"{th.high_memory_gib} GiB")
    return _pass(f"{round(memory)} GiB")


def _check_cbt(defn, vm, ctx, th) -> CheckResult:
    if vm.cbt_enabled is None:
        return _na("CBT state not reported")
    if not vm.cbt_enabled:
        return _fail(defn, "Enable CBT for warm migration", "Disabled")
    return _pass("Enabled")


def _check_rfc1123(defn, vm, ctx, th) -> CheckResult:
    name = vm.name
    if is_rfc1123_compliant(name):
        return _pass("Compliant")
    issues: list[str] = []
    if len(name) > 63:
        issues.append("too long")
    if name != name.lower():
        issues.append("uppercase")
    if re.search(r"[^a-z0-9-]", name.lower()):
        issues.append("invalid chars")
    if not issues:
        issues.append("must start and end with an alphanumeric character")
    return _fail(defn, ", ".join(issues), name[:20] + ("..." if len(name) > 20 else ""))


def _check_hostname(defn, vm, ctx, th) -> CheckResult:
    raw = vm.guest_hostname or vm.dns_name
    if raw is None:
        return _na("Guest hostname not reported")
    hostname = raw.strip().lower()
    if not hostname or hostname in _LOCALHOST_NAMES:
        return _fail(defn, "Configure valid hostname", hostname or "Not set")
    return _pass(hostname[:30])


def _check_cpu_hotplug(defn, vm, ctx, th) -> CheckResult:
    if vm.cpu_hot_add is None:
        return _na("CPU hot plug state not reported")
    if vm.cpu_hot_add:
        return _fail(defn, "Will be disabled after migration", "Enabled")
    return _pass("Disabled")


def _check_mem_hotplug(defn, vm, ctx, th) -> CheckResult:
    if vm.memory_hot_add is None:
        return _na("Memory hot plug state not reported")
    if vm.memory_hot_add:
        return _fail(defn, "Will be disabled after migration", "Enabled")
    return _pass("Disabled")


def _check_roks_os(defn, vm, ctx, th) -> CheckResult:
    if not vm.guest_os:
        return _na("Guest OS not reported")
    compat = get_roks_os_compatibility(vm.guest_os)
    if compat.status == "unsupported":
        return _fail(defn, "Not supported by OpenShift Virtualization", vm.guest_os[:30])
    if compat.status == "supported-with-caveats":
        return CheckResult(CheckStatus.WARN, "Supported with caveats", vm.guest_os[:30])
    return _pass(vm.guest_os[:30])


def _check_vsi_os(defn, vm, ctx, th) -> CheckResult:
    if not vm.guest_os:
        return _na("Guest OS not reported")
    compat = get_vsi_os_compatibility(vm.guest_os)
    if compat.status == "unsupported":
        return _fail(defn, compat.notes, vm.guest_os[:30])
    return _pass(vm.guest_os[:30], compat.notes)


_EVALUATORS = {
    "tools-installed": _check_tools_installed,
    "tools-running": _check_tools_running,
    "tools-current": _check_tools_current,
    "vsi-tools": _check_vsi_tools,
    "old-snapshots": _check_snapshots,
    "rdm-disks": _check_rdm,
    "shared-disks": _check_shared,
    "independent-disks": _check_independent,
    "boot-disk-size": _check_boot_disk,
    "disk-count": _check_disk_count,
    "large-disks": _check_large_disks,
    "cd-connected": _check_cd,
    "hw-version": _check_hw_version,
    "legacy-nic": _check_legacy_nic,
    "memory-1tb": _check_memory_1tb,
    "memory-512gb": _check_memory_512,
    "cbt-enabled": _check_cbt,
    "rfc1123-name": _check_rfc1123,
    "hostname-valid": _check_hostname,
    "cpu-hotplug": _check_cpu_hotplug,
    "mem-hotplug": _check_mem_hotplug,
    "os-compatible": _check_roks_os,
    "vsi-os": _check_vsi_os,
}


def evaluate_vm(
    vm: VirtualMachine,
    mode: MigrationMode,
    *,
    tools: ToolsStatus | None = None,
    snapshots: list[Snapshot] | None = None,
    disks: list[Disk] | None = None,
    networks: list[NetworkAdapter] | None = None,
    cdroms: list[CdromDevice] | None = None,
    thresholds: PreflightThresholds | None = None,
) -> VMCheckResults:
    """Run the full check catalogue for a single VM."""
    th = thresholds or PreflightThresholds()
    ctx = _CheckContext(tools, snapshots or [], disks or [], networks or [], cdroms or [])

    result = VMCheckResults(
        vm_name=vm.name,
        power_state=vm.power_state.value,
        cluster=vm.cluster or "N/A",
        host=vm.host or "N/A",
        guest_os=vm.guest_os,
    )
    for defn in CHECK_DEFINITIONS:
        if mode not in defn.modes:
            result.checks[defn.id] = _na(f"Not applicable to {mode.value.upper()}")
            continue
        check = _EVALUATORS[defn.id](defn, vm, ctx, th)
        result.checks[defn.id] = check
        if check.status == CheckStatus.BLOCK:
            result.blocker_count += 1
        elif check.status == CheckStatus.WARN:
            result.warning_count += 1
    return result


def run_preflight_checks(
    inventory: Inventory,
    mode: MigrationMode,
    thresholds: PreflightThresholds | None = None,
) -> list[VMCheckResults]:
    """Evaluate every non-template VM in the inventory for the given target."""
    tools = inventory.tools_by_vm()
    snapshots = inventory.snapshots_by_vm()
    disks = inventory.disks_by_vm()
    networks = inventory.nics_by_vm()
    cdroms = inventory.cdroms_by_vm()

    results = [
        evaluate_vm(
            vm,
            mode,
            tools=tools.get(vm.name) or tools.get(vm.name.lower()),
            snapshots=snapshots.get(vm.name),
            disks=disks.get(vm.name),
            networks=networks.get(vm.name),
            cdroms=cdroms.get(vm.name),
            thresholds=thresholds,
        )
        for vm in inventory.analyzable_vms()
    ]
    logger.info(
        "Pre-flight (%s): %d VM(s), %d with blockers",
        mode.value, len(results), sum(1 for r in results if r.has_blockers),
    )
    return results


def summarize_check_counts(results: list[VMCheckResults]) -> dict[str, list[str]]:
    """Map each check id to the VMs it flagged (warn or block)."""
    affected: dict[str, list[str]] = {}
    for vm_result in results:
        for check_id, check in vm_result.checks.items():
            if check.status in (CheckStatus.WARN, CheckStatus.BLOCK):
                affected.setdefault(check_id, []).append(vm_result.vm_name)
    return affected
