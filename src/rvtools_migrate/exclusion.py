"""Migration scope: which VMs take part in the analysis.

Three tiers decide, in this order:

1. a force-included VM is always in scope;
2. a manually excluded VM is out;
3. a VM matched by an auto-exclusion rule is out;

everything else is in.  Auto-exclusion rules are data: field rules compare a
VM attribute with a value, name rules match the VM name (case-insensitive)
with ``contains``, ``startsWith``, ``endsWith``, ``exact`` or ``regex``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import Inventory, PowerState, VirtualMachine

logger = logging.getLogger(__name__)

VMWARE_INFRASTRUCTURE = "VMware Infrastructure"


class NameMatch(str, Enum):
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    EXACT = "exact"
    REGEX = "regex"


@dataclass(frozen=True)
class FieldRule:
    id: str
    label: str
    field: str                   # VirtualMachine attribute name
    value: Any
    operator: str = "equals"     # equals | notEquals

    def matches(self, vm: VirtualMachine) -> bool:
        actual = getattr(vm, self.field, None)
        if isinstance(actual, Enum):
            actual = actual.value
        if self.operator == "notEquals":
            return actual != self.value
        return actual == self.value


@dataclass(frozen=True)
class NamePatternRule:
    id: str
    label: str
    match: NameMatch
    patterns: tuple[str, ...]
    exclude_patterns: tuple[str, ...] = ()

    def matches(self, vm_name: str) -> bool:
        name = vm_name.lower()
        if any(p.lower() in name for p in self.exclude_patterns):
            return False
        if self.match == NameMatch.REGEX:
            return any(re.search(p, name, re.IGNORECASE) for p in self.patterns)
        for pattern in (p.lower() for p in self.patterns):
            if self.match == NameMatch.STARTS_WITH and name.startswith(pattern):
                return True
            if self.match == NameMatch.ENDS_WITH and name.endswith(pattern):
                return True
            if self.match == NameMatch.EXACT and name == pattern:
                return True
            if self.match == NameMatch.CONTAINS and pattern in name:
                return True
        return False


@dataclass(frozen=True)
class ExclusionRules:
    field_rules: tuple[FieldRule, ...] = ()
    name_rules: tuple[NamePatternRule, ...] = ()


DEFAULT_EXCLUSION_RULES = ExclusionRules(
    field_rules=(
        FieldRule("template", "Template", "template", True),
        FieldRule("powered-off", "Powered Off", "power_state", PowerState.POWERED_ON.value, "notEquals"),
    ),
    name_rules=(
        NamePatternRule("vmware-vcls", VMWARE_INFRASTRUCTURE, NameMatch.STARTS_WITH, ("vcls-", "vcls (")),
        NamePatternRule("vmware-nsx", VMWARE_INFRASTRUCTURE, NameMatch.CONTAINS,
                        ("nsx-manager", "nsx-edge", "nsx-controller", "nsxt-", "nsx_")),
        NamePatternRule("vmware-appliances", VMWARE_INFRASTRUCTURE, NameMatch.STARTS_WITH,
                        ("vcenter", "vcsa", "vrops", "vrli", "vrealize", "sddc-manager", "hcx-")),
        NamePatternRule("vmware-edge", VMWARE_INFRASTRUCTURE, NameMatch.REGEX,
                        (r"(^|[-_])edge([-_]?\d+)?$", r"^edge[-_]"),
                        exclude_patterns=("cust-edge", "service-edge")),
        NamePatternRule("network-edge-appliance", "Network Edge Appliance", NameMatch.STARTS_WITH,
                        ("cust-edge", "service-edge")),
        NamePatternRule("windows-adns", "Windows AD/DNS", NameMatch.STARTS_WITH, ("adnsvcs",)),
    ),
)


def exclusion_rules_from_dict(data: dict) -> ExclusionRules:
    """Rules from a ``{"fieldRules": [...], "namePatterns": [...]}`` document."""
    field_rules = tuple(
        FieldRule(r["id"], r.get("label", r["id"]), r["field"], r.get("value"), r.get("operator", "equals"))
        for r in data.get("fieldRules") or []
        if isinstance(r, dict) and "id" in r and "field" in r
    )
    name_rules = []
    for r in data.get("namePatterns") or []:
        if not isinstance(r, dict) or "id" not in r:
            continue
        try:
            match = NameMatch(r.get("match", NameMatch.CONTAINS.value))
        except ValueError:
            logger.warning("Skipping exclusion rule %s: unknown match type %r", r["id"], r.get("match"))
            continue
        name_rules.append(NamePatternRule(
            r["id"], r.get("label", r["id"]), match,
            tuple(r.get("patterns") or ()), tuple(r.get("excludePatterns") or ()),
        ))
    return ExclusionRules(field_rules, tuple(name_rules))


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

@dataclass
class AutoExclusion:
    reasons: list[str] = field(default_factory=list)   # rule ids
    labels: list[str] = field(default_factory=list)    # distinct rule labels

    @property
    def is_excluded(self) -> bool:
        return bool(self.reasons)


def get_auto_exclusion(vm: VirtualMachine, rules: ExclusionRules = DEFAULT_EXCLUSION_RULES) -> AutoExclusion:
    result = AutoExclusion()
    for rule in rules.field_rules:
        if rule.matches(vm):
            result.reasons.append(rule.id)
            result.labels.append(rule.label)
    for rule in rules.name_rules:
        if rule.matches(vm.name):
            result.reasons.append(rule.id)
            if rule.label not in result.labels:
                result.labels.append(rule.label)
    return result


def is_vmware_infrastructure_vm(vm_name: str, rules: ExclusionRules = DEFAULT_EXCLUSION_RULES) -> bool:
    return any(r.label == VMWARE_INFRASTRUCTURE and r.matches(vm_name) for r in rules.name_rules)


@dataclass
class VMOverrides:
    """User decisions keyed by VM name."""
    excluded: set[str] = field(default_factory=set)
    force_included: set[str] = field(default_factory=set)


@dataclass
class ScopeDecision:
    vm_name: str
    included: bool
    auto: AutoExclusion
    manually_excluded: bool = False
    force_included: bool = False


@dataclass
class MigrationScope:
    decisions: list[ScopeDecision] = field(default_factory=list)

    @property
    def included_names(self) -> set[str]:
        return {d.vm_name for d in self.decisions if d.included}

    @property
    def excluded(self) -> list[ScopeDecision]:
        return [d for d in self.decisions if not d.included]

    @property
    def auto_excluded_count(self) -> int:
        return sum(1 for d in self.excluded if d.auto.is_excluded and not d.manually_excluded)

    @property
    def manually_excluded_count(self) -> int:
        return sum(1 for d in self.excluded if d.manually_excluded)


def is_effectively_excluded(vm_name: str, auto_excluded: bool, overrides: VMOverrides | None) -> bool:
    if overrides is not None:
        if vm_name in overrides.force_included:
            return False
        if vm_name in overrides.excluded:
            return True
    return auto_excluded


def resolve_scope(
    inventory: Inventory,
    overrides: VMOverrides | None = None,
    rules: ExclusionRules = DEFAULT_EXCLUSION_RULES,
) -> MigrationScope:
    """Decide scope for every VM in the inventory (templates included)."""
    scope = MigrationScope()
    for vm in inventory.vms:
        auto = get_auto_exclusion(vm, rules)
        scope.decisions.append(ScopeDecision(
            vm_name=vm.name,
            included=not is_effectively_excluded(vm.name, auto.is_excluded, overrides),
            auto=auto,
            manually_excluded=bool(overrides and vm.name in overrides.excluded),
            force_included=bool(overrides and vm.name in overrides.force_included),
        ))

    if overrides is not None:
        known = {vm.name for vm in inventory.vms}
        for name in sorted((overrides.excluded | overrides.force_included) - known):
            logger.warning("Scope override for unknown VM %s ignored", name)

    logger.debug("Scope: %d of %d VM(s) included", len(scope.included_names), len(inventory.vms))
    return scope


def apply_scope(
    inventory: Inventory,
    overrides: VMOverrides | None = None,
    rules: ExclusionRules = DEFAULT_EXCLUSION_RULES,
) -> tuple[Inventory, MigrationScope]:
    """The inventory restricted to in-scope VMs, plus the per-VM decisions."""
    scope = resolve_scope(inventory, overrides, rules)
    return inventory.with_scope(scope.included_names), scope
