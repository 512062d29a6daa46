"""Guest OS compatibility matrices for OpenShift Virtualization (ROKS) and IBM Cloud VPC."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .models import MigrationMode


@dataclass(frozen=True)
class ROKSOSEntry:
    id: str
    display_name: str
    patterns: tuple[str, ...]
    status: str                  # fully-supported | supported-with-caveats | unsupported
    score: int                   # 0–100
    notes: str = ""
    recommended_upgrade: str = ""


@dataclass(frozen=True)
class VSIOSEntry:
    status: str                  # supported | community | unsupported
    notes: str


# ---------------------------------------------------------------------------
# Red Hat OpenShift Virtualization guest OS matrix (first match wins)
# ---------------------------------------------------------------------------

ROKS_OS_MATRIX: list[ROKSOSEntry] = [
    ROKSOSEntry("rhel9", "Red Hat Enterprise Linux 9", ("rhel 9", "red hat enterprise linux 9"),
                "fully-supported", 100, "Certified guest"),
    ROKSOSEntry("rhel8", "Red Hat Enterprise Linux 8", ("rhel 8", "red hat enterprise linux 8"),
                "fully-supported", 100, "Certified guest"),
    ROKSOSEntry("rhel7", "Red Hat Enterprise Linux 7", ("rhel 7", "red hat enterprise linux 7"),
                "supported-with-caveats", 70, "Extended life cycle support only", "RHEL 9"),
    ROKSOSEntry("rhel6", "Red Hat Enterprise Linux 6", ("rhel 6", "red hat enterprise linux 6"),
                "unsupported", 10, "End of life", "RHEL 9"),
    ROKSOSEntry("win2022", "Windows Server 2022", ("windows server 2022", "windows 2022"),
                "fully-supported", 95, "Requires VirtIO drivers"),
    ROKSOSEntry("win2019", "Windows Server 2019", ("windows server 2019", "windows 2019"),
                "fully-supported", 95, "Requires VirtIO drivers"),
    ROKSOSEntry("win2016", "Windows Server 2016", ("windows server 2016", "windows 2016"),
                "fully-supported", 90, "Requires VirtIO drivers"),
    ROKSOSEntry("win2012", "Windows Server 2012", ("windows server 2012", "windows 2012"),
                "supported-with-caveats", 50, "Out of Microsoft support", "Windows Server 2022"),
    ROKSOSEntry("win2008", "Windows Server 2008", ("windows server 2008", "windows 2008"),
                "unsupported", 0, "End of life", "Windows Server 2022"),
    ROKSOSEntry("win10", "Windows 10/11", ("windows 10", "windows 11"),
                "fully-supported", 90, "Desktop guest"),
    ROKSOSEntry("centos-stream", "CentOS Stream", ("centos stream",),
                "supported-with-caveats", 70, "Community distribution"),
    ROKSOSEntry("centos", "CentOS", ("centos",),
                "supported-with-caveats", 60, "Community distribution", "RHEL 9"),
    ROKSOSEntry("rocky", "Rocky Linux", ("rocky",),
                "supported-with-caveats", 75, "Community distribution"),
    ROKSOSEntry("alma", "AlmaLinux", ("alma",),
                "supported-with-caveats", 75, "Community distribution"),
    ROKSOSEntry("sles", "SUSE Linux Enterprise", ("sles", "suse"),
                "supported-with-caveats", 70, "Vendor support required"),
    ROKSOSEntry("ubuntu", "Ubuntu", ("ubuntu",),
                "supported-with-caveats", 75, "Community validated"),
    ROKSOSEntry("debian", "Debian", ("debian",),
                "supported-with-caveats", 65, "Community validated"),
    ROKSOSEntry("oracle-linux", "Oracle Linux", ("oracle linux",),
                "supported-with-caveats", 60, "Vendor support required"),
    ROKSOSEntry("other-linux", "Other Linux", ("other linux", "other 2.6.x linux", "other 3.x linux"),
                "supported-with-caveats", 40, "Unverified distribution"),
]

ROKS_DEFAULT_ENTRY = ROKSOSEntry(
    "unknown", "Unsupported / unknown OS", (), "unsupported", 0,
    "Not validated for OpenShift Virtualization",
)


# ---------------------------------------------------------------------------
# IBM Cloud VPC supported guest OS mapping (first match wins)
# ---------------------------------------------------------------------------

VSI_OS_MATRIX: dict[str, VSIOSEntry] = {
    "rhel": VSIOSEntry("supported", "RHEL 7.x, 8.x, 9.x supported"),
    "red hat": VSIOSEntry("supported", "RHEL 7.x, 8.x, 9.x supported"),
    "centos": VSIOSEntry("community", "CentOS 7.x, 8.x - community supported"),
    "ubuntu": VSIOSEntry("supported", "Ubuntu 18.04, 20.04, 22.04 supported"),
    "debian": VSIOSEntry("community", "Debian 10, 11 - community supported"),
    "windows server 2016": VSIOSEntry("supported", "Windows Server 2016 supported"),
    "windows server 2019": VSIOSEntry("supported", "Windows Server 2019 supported"),
    "windows server 2022": VSIOSEntry("supported", "Windows Server 2022 supported"),
    "windows 2016": VSIOSEntry("supported", "Windows Server 2016 supported"),
    "windows 2019": VSIOSEntry("supported", "Windows Server 2019 supported"),
    "windows 2022": VSIOSEntry("supported", "Windows Server 2022 supported"),
    "sles": VSIOSEntry("supported", "SUSE Linux Enterprise Server supported"),
    "suse": VSIOSEntry("supported", "SUSE Linux Enterprise Server supported"),
    "rocky": VSIOSEntry("community", "Rocky Linux - community supported"),
    "alma": VSIOSEntry("community", "AlmaLinux - community supported"),
}

VSI_DEFAULT_ENTRY = VSIOSEntry("unsupported", "Not validated for IBM Cloud VPC")


def get_roks_os_compatibility(guest_os: str) -> ROKSOSEntry:
    os_lower = (guest_os or "").lower()
    for entry in ROKS_OS_MATRIX:
        if any(p in os_lower for p in entry.patterns):
            return entry
    return ROKS_DEFAULT_ENTRY


def get_vsi_os_compatibility(guest_os: str) -> VSIOSEntry:
    os_lower = (guest_os or "").lower()
    for pattern, entry in VSI_OS_MATRIX.items():
        if pattern in os_lower:
            return entry
    return VSI_DEFAULT_ENTRY


def normalized_os_status(guest_os: str, mode: MigrationMode) -> str:
    """Collapse both matrices to supported | partial | unsupported."""
    if mode == MigrationMode.VSI:
        status = get_vsi_os_compatibility(guest_os).status
        return {"supported": "supported", "community": "partial"}.get(status, "unsupported")
    status = get_roks_os_compatibility(guest_os).status
    return {"fully-supported": "supported", "supported-with-caveats": "partial"}.get(status, "unsupported")


def is_fully_supported(guest_os: str, mode: MigrationMode) -> bool:
    return normalized_os_status(guest_os, mode) == "supported"


def is_os_blocker(guest_os: str, mode: MigrationMode) -> bool:
    return normalized_os_status(guest_os, mode) == "unsupported"


@dataclass
class OSCompatibilityResult:
    vm_name: str
    guest_os: str
    status: str
    normalized_status: str
    notes: str = ""
    extra: dict[str, str] = field(default_factory=dict)


def get_os_compatibility_results(vms, mode: MigrationMode) -> list[OSCompatibilityResult]:
    results: list[OSCompatibilityResult] = []
    for vm in vms:
        if mode == MigrationMode.VSI:
            entry = get_vsi_os_compatibility(vm.guest_os)
            status, notes, extra = entry.status, entry.notes, {}
        else:
            roks = get_roks_os_compatibility(vm.guest_os)
            status, notes = roks.status, roks.notes
            extra = {"recommended_upgrade": roks.recommended_upgrade} if roks.recommended_upgrade else {}
        results.append(OSCompatibilityResult(
            vm_name=vm.name,
            guest_os=vm.guest_os,
            status=status,
            normalized_status=normalized_os_status(vm.guest_os, mode),
            notes=notes,
            extra=extra,
        ))
    return results


def count_by_os_status(vms, mode: MigrationMode) -> dict[str, int]:
    return dict(Counter(r.status for r in get_os_compatibility_results(vms, mode)))
