"""Best-fit IBM Cloud VPC profile for each VM."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

from .catalog import FAMILY_ORDER, VSI_PROFILES, VSIProfile, find_vsi_profile
from .models import Inventory

logger = logging.getLogger(__name__)


@dataclass
class ProfileMatch:
    profile: VSIProfile
    oversized: bool = False      # nothing fits; largest profile chosen


def determine_profile_family(vcpus: int, memory_gib: float) -> str:
    """Family by memory:vCPU ratio: ≤2.5 compute, ≥6 memory, else balanced."""
    if vcpus <= 0:
        return "balanced"
    ratio = memory_gib / vcpus
    if ratio <= 2.5:
        return "compute"
    if ratio >= 6:
        return "memory"
    return "balanced"


def _family_rank(family: str) -> int:
    return FAMILY_ORDER.index(family) if family in FAMILY_ORDER else len(FAMILY_ORDER)


def _fit_key(p: VSIProfile) -> tuple:
    # Smallest first; ties by monthly rate, then family order, then name
    return (p.vcpus, p.memory_gib, p.monthly_rate, _family_rank(p.family), p.name)


def _size_key(p: VSIProfile) -> tuple:
    return (p.vcpus, p.memory_gib, -p.monthly_rate, -_family_rank(p.family), p.name)


def map_to_profile(
    vcpus: int,
    memory_gib: float,
    catalog: list[VSIProfile] | None = None,
    family: str | None = None,
) -> ProfileMatch:
    """Smallest profile meeting both the vCPU and memory requirement."""
    profiles = catalog if catalog is not None else VSI_PROFILES
    if family:
        profiles = [p for p in profiles if p.family == family] or profiles
    if not profiles:
        raise ValueError("VSI profile catalog is empty")

    candidates = [p for p in profiles if p.vcpus >= vcpus and p.memory_gib >= memory_gib]
    if candidates:
        return ProfileMatch(min(candidates, key=_fit_key))
    return ProfileMatch(max(profiles, key=_size_key), oversized=True)


def get_profile_family_label(profile_name: str) -> str:
    prefix = profile_name.split("-")[0]
    return {
        "bx2": "Balanced", "bx2d": "Balanced",
        "cx2": "Compute", "cx2d": "Compute",
        "mx2": "Memory", "mx2d": "Memory",
    }.get(prefix, "Other")


# ---------------------------------------------------------------------------
# Per-VM mappings
# ---------------------------------------------------------------------------

@dataclass
class VMProfileMapping:
    vm_name: str
    vcpus: int
    memory_gib: float
    auto_profile: VSIProfile
    profile: VSIProfile          # effective profile (override applied)
    recommended_family: str      # by memory:vCPU ratio; shown only, the match spans every family
    oversized: bool = False
    is_overridden: bool = False


def create_vm_profile_mappings(
    inventory: Inventory,
    catalog: list[VSIProfile] | None = None,
    overrides: dict[str, str] | None = None,
) -> list[VMProfileMapping]:
    """Map every non-template VM; *overrides* maps VM name to a profile name."""
    overrides = overrides or {}
    profiles = catalog if catalog is not None else VSI_PROFILES
    mappings: list[VMProfileMapping] = []

    for vm in inventory.analyzable_vms():
        memory_gib = vm.memory_gib
        match = map_to_profile(vm.cpus, memory_gib, profiles)
        effective = match.profile
        overridden = False

        wanted = overrides.get(vm.name)
        if wanted and wanted != match.profile.name:
            chosen = find_vsi_profile(wanted, profiles)
            if chosen is None:
                logger.warning("Ignoring override for %s: unknown profile %s", vm.name, wanted)
            else:
                effective = chosen
                overridden = True

        mappings.append(VMProfileMapping(
            vm_name=vm.name,
            vcpus=vm.cpus,
            memory_gib=round(memory_gib, 2),
            auto_profile=match.profile,
            profile=effective,
            recommended_family=determine_profile_family(vm.cpus, memory_gib),
            oversized=match.oversized and not overridden,
            is_overridden=overridden,
        ))

    logger.info("Mapped %d VM(s) to VSI profiles", len(mappings))
    return mappings


def count_by_profile(mappings: list[VMProfileMapping]) -> dict[str, int]:
    return dict(Counter(m.profile.name for m in mappings))


def count_by_family(mappings: list[VMProfileMapping]) -> dict[str, int]:
    return dict(Counter(get_profile_family_label(m.profile.name) for m in mappings))


@dataclass
class ProfileTotals:
    vm_count: int = 0
    total_vcpus: int = 0
    total_memory_gib: float = 0.0
    monthly_cost: float = 0.0


def calculate_profile_totals(mappings: list[VMProfileMapping]) -> ProfileTotals:
    return ProfileTotals(
        vm_count=len(mappings),
        total_vcpus=sum(m.profile.vcpus for m in mappings),
        total_memory_gib=sum(m.profile.memory_gib for m in mappings),
        monthly_cost=round(sum(m.profile.monthly_rate for m in mappings), 2),
    )
