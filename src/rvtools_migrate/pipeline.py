"""End-to-end analysis. Recomputes every derived view from one inventory.

Nothing is cached between runs: changing the mode, a sizing parameter or a
profile override means calling :func:`analyze` again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .catalog import BARE_METAL_PROFILES, VSI_PROFILES, HardwareProfile, VSIProfile
from .complexity import AssessmentSummary, ComplexityScore, calculate_complexity_scores, get_assessment_summary
from .cost_estimation import (
    DEFAULT_DISCOUNT,
    DEFAULT_PRICING,
    DEFAULT_REGION,
    CostEstimate,
    NetworkingOptions,
    PricingTable,
    calculate_roks_cost,
    calculate_vsi_cost,
    mappings_to_vsi_input,
    sizing_to_roks_input,
)
from .exclusion import DEFAULT_EXCLUSION_RULES, ExclusionRules, MigrationScope, VMOverrides, apply_scope
from .models import Inventory, MigrationMode
from .preflight import PreflightThresholds, VMCheckResults, run_preflight_checks
from .readiness import ReadinessSummary, summarize_readiness
from .sizing import SizingParameters, SizingResult, select_default_profile, size_cluster
from .validation import ValidationError, ValidationResult
from .vsi_mapping import ProfileTotals, VMProfileMapping, calculate_profile_totals, create_vm_profile_mappings
from .waves import VMWaveData, WaveGroup, WaveStrategy, build_vm_wave_data, plan_waves

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    source_name: str
    mode: MigrationMode
    scope: MigrationScope = field(default_factory=MigrationScope)
    check_results: list[VMCheckResults] = field(default_factory=list)
    complexity_scores: list[ComplexityScore] = field(default_factory=list)
    assessment: AssessmentSummary = field(default_factory=AssessmentSummary)
    readiness: ReadinessSummary | None = None
    sizing: SizingResult | None = None
    vsi_mappings: list[VMProfileMapping] = field(default_factory=list)
    profile_totals: ProfileTotals | None = None
    wave_strategy: WaveStrategy = WaveStrategy.COMPLEXITY
    wave_data: list[VMWaveData] = field(default_factory=list)
    waves: list[WaveGroup] = field(default_factory=list)
    cost: CostEstimate | None = None
    validation: ValidationResult = field(default_factory=ValidationResult)

    @property
    def ok(self) -> bool:
        return self.validation.valid


def analyze(
    inventory: Inventory,
    mode: MigrationMode | str = MigrationMode.ROKS,
    *,
    params: SizingParameters | None = None,
    profile: HardwareProfile | None = None,
    profiles: list[HardwareProfile] | None = None,
    vsi_catalog: list[VSIProfile] | None = None,
    pricing: PricingTable | None = None,
    region: str = DEFAULT_REGION,
    discount: str = DEFAULT_DISCOUNT,
    wave_strategy: WaveStrategy | str = WaveStrategy.COMPLEXITY,
    thresholds: PreflightThresholds | None = None,
    overrides: dict[str, str] | None = None,
    networking: NetworkingOptions | None = None,
    include_powered_off: bool = False,
    vm_overrides: VMOverrides | None = None,
    exclusion_rules: ExclusionRules = DEFAULT_EXCLUSION_RULES,
    generated_at: datetime | None = None,
) -> AnalysisReport:
    """Run pre-flight, complexity, readiness, sizing or mapping, waves and cost.

    Every engine sees the same in-scope VMs: auto-exclusion *exclusion_rules*
    first, then the manual excludes and force-includes in *vm_overrides*.
    """
    mode = MigrationMode(mode)
    strategy = WaveStrategy(wave_strategy)
    thresholds = thresholds or PreflightThresholds()
    pricing = pricing or DEFAULT_PRICING
    report = AnalysisReport(source_name=inventory.source_name, mode=mode, wave_strategy=strategy)

    inventory, report.scope = apply_scope(inventory, vm_overrides, exclusion_rules)

    report.check_results = run_preflight_checks(inventory, mode, thresholds)
    report.complexity_scores = calculate_complexity_scores(
        inventory, mode,
        hw_minimum=thresholds.hw_version_minimum,
        hw_recommended=thresholds.hw_version_recommended,
    )
    report.assessment = get_assessment_summary(report.complexity_scores)
    report.readiness = summarize_readiness(report.check_results, report.complexity_scores, mode)

    if mode == MigrationMode.ROKS:
        _roks_sizing_and_cost(report, inventory, params, profile, profiles, pricing, region, discount,
                              include_powered_off, generated_at)
    else:
        _vsi_mapping_and_cost(report, inventory, vsi_catalog, overrides, pricing, region, discount, networking,
                              generated_at)

    report.wave_data = build_vm_wave_data(inventory, report.complexity_scores, report.check_results, mode)
    report.waves = plan_waves(strategy, report.wave_data, mode)

    logger.info(
        "Analysis of %s (%s): readiness %d%%, %d wave(s)",
        report.source_name or "inventory", mode.value, report.readiness.readiness_pct, len(report.waves),
    )
    return report


def _roks_sizing_and_cost(
    report: AnalysisReport,
    inventory: Inventory,
    params: SizingParameters | None,
    profile: HardwareProfile | None,
    profiles: list[HardwareProfile] | None,
    pricing: PricingTable,
    region: str,
    discount: str,
    include_powered_off: bool,
    generated_at: datetime | None,
) -> None:
    if profile is None:
        profile = select_default_profile(profiles or BARE_METAL_PROFILES, pricing)
    if profile is None:
        report.validation = report.validation.merge(ValidationResult.from_errors(
            [ValidationError("profile", "No ROKS-supported NVMe bare metal profile available")]
        ))
        return

    sizing = size_cluster(inventory, profile, params, include_powered_off=include_powered_off)
    if not sizing.ok:
        report.validation = report.validation.merge(sizing.validation)
        return
    report.sizing = sizing.value

    cost = calculate_roks_cost(sizing_to_roks_input(sizing.value), region, discount, pricing, generated_at)
    if cost.ok:
        report.cost = cost.value
    else:
        report.validation = report.validation.merge(cost.validation)


def _vsi_mapping_and_cost(
    report: AnalysisReport,
    inventory: Inventory,
    vsi_catalog: list[VSIProfile] | None,
    overrides: dict[str, str] | None,
    pricing: PricingTable,
    region: str,
    discount: str,
    networking: NetworkingOptions | None,
    generated_at: datetime | None,
) -> None:
    catalog = vsi_catalog or VSI_PROFILES
    report.vsi_mappings = create_vm_profile_mappings(inventory, catalog, overrides)
    report.profile_totals = calculate_profile_totals(report.vsi_mappings)

    mapped = {m.vm_name for m in report.vsi_mappings}
    storage_gib = sum(vm.provisioned_mib for vm in inventory.analyzable_vms() if vm.name in mapped) / 1024

    cost = calculate_vsi_cost(mappings_to_vsi_input(report.vsi_mappings, storage_gib, networking),
                              region, discount, pricing, generated_at)
    if cost.ok:
        report.cost = cost.value
    else:
        report.validation = report.validation.merge(cost.validation)
