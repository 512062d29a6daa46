"""Complexity scoring engine — weighted 0–100 migration-effort score per VM."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from .models import Disk, Inventory, MigrationMode, NetworkAdapter, VirtualMachine
from .os_compatibility import get_roks_os_compatibility, get_vsi_os_compatibility

logger = logging.getLogger(__name__)


class ComplexityCategory(str, Enum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"
    BLOCKER = "Blocker"


# Upper bound (inclusive) of each band, and its chart color
CATEGORY_BANDS: list[tuple[int, ComplexityCategory]] = [
    (25, ComplexityCategory.SIMPLE),
    (50, ComplexityCategory.MODERATE),
    (75, ComplexityCategory.COMPLEX),
    (100, ComplexityCategory.BLOCKER),
]

CATEGORY_COLORS = {
    ComplexityCategory.SIMPLE: "green",
    ComplexityCategory.MODERATE: "blue",
    ComplexityCategory.COMPLEX: "dark_orange",
    ComplexityCategory.BLOCKER: "red",
}

LARGE_DISK_GIB = 2000
VSI_HIGH_MEMORY_GIB = 512
VSI_MAX_MEMORY_GIB = 1024


@dataclass
class ComplexityScore:
    vm_name: str
    score: int
    category: ComplexityCategory
    factors: list[str] = field(default_factory=list)
    guest_os: str = ""
    cpus: int = 0
    memory_gib: int = 0
    disk_count: int = 0
    nic_count: int = 0
    hardware_version: int | None = None
    hard_blocker: bool = False      # cannot migrate regardless of score

    @property
    def factors_text(self) -> str:
        return ", ".join(self.factors) if self.factors else "No complexity factors"


def get_complexity_category(score: float) -> ComplexityCategory:
    for upper, category in CATEGORY_BANDS:
        if score <= upper:
            return category
    return ComplexityCategory.BLOCKER


def _clamp(score: float) -> int:
    return int(max(0, min(100, round(score))))


def score_vm(
    vm: VirtualMachine,
    disks: list[Disk],
    nics: list[NetworkAdapter],
    mode: MigrationMode,
    *,
    hw_minimum: int = 10,
    hw_recommended: int = 14,
) -> ComplexityScore:
    """Accumulate weighted penalties for one VM."""
    score = 0
    factors: list[str] = []
    hard_blocker = False
    memory_gib = vm.memory_gib
    nic_count = len(nics)
    disk_count = len(disks)

    # Guest OS
    if not vm.guest_os:
        factors.append("Guest OS unknown")
    elif mode == MigrationMode.VSI:
        status = get_vsi_os_compatibility(vm.guest_os).status
        if status == "unsupported":
            score += 40
            factors.append("Unsupported OS (+40)")
        elif status == "community":
            score += 15
            factors.append("Community OS (+15)")
    else:
        os_penalty = round((100 - get_roks_os_compatibility(vm.guest_os).score) * 0.3)
        if os_penalty > 0:
            score += os_penalty
            factors.append(f"OS compatibility (+{os_penalty})")

    # Network
    if nic_count > 3:
        score += 30
        factors.append(f"{nic_count} NICs (+30)")
    elif nic_count > 1:
        score += 15
        factors.append(f"{nic_count} NICs (+15)")

    # Disks
    if disk_count > 5:
        score += 30
        factors.append(f"{disk_count} disks (+30)")
    elif disk_count > 2:
        score += 15
        factors.append(f"{disk_count} disks (+15)")

    # Virtual hardware
    hw = vm.hardware_version
    if hw:
        if hw < hw_minimum:
            score += 25
            factors.append(f"HW v{hw} < min (+25)")
        elif hw < hw_recommended:
            score += 10
            factors.append(f"HW v{hw} < recommended (+10)")

    # Size
    if mode == MigrationMode.VSI:
        large = sum(1 for d in disks if d.capacity_gib > LARGE_DISK_GIB)
        if large:
            score += 30
            factors.append(f"{large} large disk{'s' if large > 1 else ''} >2TB (+30)")
        if memory_gib > VSI_MAX_MEMORY_GIB:
            score += 40
            hard_blocker = True
            factors.append(f"{round(memory_gib)} GiB memory exceeds VPC maximum (+40)")
        elif memory_gib > VSI_HIGH_MEMORY_GIB:
            score += 20
            factors.append(f"{round(memory_gib)} GiB memory, high-memory profile (+20)")
        if vm.cpus > 64:
            score += 30
            factors.append(f"{vm.cpus} vCPUs (+30)")
        elif vm.cpus > 32:
            score += 15
            factors.append(f"{vm.cpus} vCPUs (+15)")
    elif vm.cpus > 16 or memory_gib > 128:
        score += 20
        if vm.cpus > 16 and memory_gib > 128:
            factors.append(f"{vm.cpus} vCPUs & {round(memory_gib)} GiB (+20)")
        elif vm.cpus > 16:
            factors.append(f"{vm.cpus} vCPUs (+20)")
        else:
            factors.append(f"{round(memory_gib)} GiB memory (+20)")

    final = _clamp(score)
    return ComplexityScore(
        vm_name=vm.name,
        score=final,
        category=get_complexity_category(final),
        factors=factors,
        guest_os=vm.guest_os,
        cpus=vm.cpus,
        memory_gib=round(memory_gib),
        disk_count=disk_count,
        nic_count=nic_count,
        hardware_version=hw,
        hard_blocker=hard_blocker,
    )


def calculate_complexity_scores(
    inventory: Inventory,
    mode: MigrationMode,
    *,
    hw_minimum: int = 10,
    hw_recommended: int = 14,
) -> list[ComplexityScore]:
    disks = inventory.disks_by_vm()
    nics: dict[str, list[NetworkAdapter]] = {}
    for nic in inventory.networks:
        nics.setdefault(nic.vm_name.lower(), []).append(nic)

    scores = [
        score_vm(
            vm,
            disks.get(vm.name, []),
            nics.get(vm.name.lower(), []),
            mode,
            hw_minimum=hw_minimum,
            hw_recommended=hw_recommended,
        )
        for vm in inventory.analyzable_vms()
    ]
    logger.info("Scored complexity for %d VM(s) (%s)", len(scores), mode.value)
    return scores


# ---------------------------------------------------------------------------
# Roll-ups
# ---------------------------------------------------------------------------

@dataclass
class AssessmentSummary:
    total_vms: int = 0
    simple_count: int = 0
    moderate_count: int = 0
    complex_count: int = 0
    blocker_count: int = 0
    hard_blocker_count: int = 0
    average_score: int = 0


def get_complexity_distribution(scores: list[ComplexityScore]) -> dict[str, int]:
    return dict(Counter(s.category.value for s in scores))


def get_assessment_summary(scores: list[ComplexityScore]) -> AssessmentSummary:
    dist = get_complexity_distribution(scores)
    return AssessmentSummary(
        total_vms=len(scores),
        simple_count=dist.get(ComplexityCategory.SIMPLE.value, 0),
        moderate_count=dist.get(ComplexityCategory.MODERATE.value, 0),
        complex_count=dist.get(ComplexityCategory.COMPLEX.value, 0),
        blocker_count=dist.get(ComplexityCategory.BLOCKER.value, 0),
        hard_blocker_count=sum(1 for s in scores if s.hard_blocker),
        average_score=round(sum(s.score for s in scores) / len(scores)) if scores else 0,
    )


def get_top_complex_vms(scores: list[ComplexityScore], count: int = 10) -> list[ComplexityScore]:
    return sorted(scores, key=lambda s: (-s.score, s.vm_name))[:count]
