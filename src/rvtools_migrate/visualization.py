"""Rich console reporting for an analysis run, plus JSON export."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .complexity import CATEGORY_COLORS, ComplexityScore, get_top_complex_vms
from .cost_estimation import CostEstimate
from .exclusion import MigrationScope
from .models import Inventory, MigrationMode
from .pipeline import AnalysisReport
from .preflight import VMCheckResults, get_check_definition, summarize_check_counts
from .sizing import RedundancyValidation, SizingResult
from .vsi_mapping import VMProfileMapping, count_by_profile
from .waves import WaveGroup

logger = logging.getLogger(__name__)
console = Console()


# ---------------------------------------------------------------------------
# Inventory summary banner
# ---------------------------------------------------------------------------

def print_inventory_summary(inventory: Inventory) -> None:
    """Print a high-level summary of the loaded export."""
    vms = inventory.analyzable_vms()
    powered_on = sum(1 for vm in vms if vm.is_powered_on)
    templates = len(inventory.vms) - len(vms)
    total_vcpus = sum(vm.cpus for vm in vms)
    total_memory_gib = sum(vm.memory_gib for vm in vms)
    total_storage_tib = sum(vm.provisioned_mib for vm in vms) / 1024 / 1024

    summary = (
        f"[bold cyan]Source:[/] {inventory.source_name or '—'}\n"
        f"[bold]Clusters:[/] {len(inventory.clusters)}    "
        f"[bold]Hosts:[/] {len(inventory.hosts)}    "
        f"[bold]Datastores:[/] {len(inventory.datastores)}\n"
        f"[bold]VMs:[/] {len(vms)} ({powered_on} powered on, {templates} template(s) excluded)\n"
        f"\n"
        f"[bold]Total vCPUs:[/] {total_vcpus}    "
        f"[bold]Total Memory:[/] {total_memory_gib:,.0f} GiB    "
        f"[bold]Provisioned Storage:[/] {total_storage_tib:,.1f} TiB"
    )
    console.print(Panel(summary, title="[bold green]Inventory Summary", border_style="green"))


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

def _pct_style(value: float) -> str:
    if value >= 80:
        return f"[green]{value:.0f}%[/]"
    if value >= 50:
        return f"[yellow]{value:.0f}%[/]"
    return f"[red]{value:.0f}%[/]"


def print_readiness_panel(report: AnalysisReport) -> None:
    r = report.readiness
    if r is None:
        return
    target = "ROKS (OpenShift Virtualization)" if r.mode == MigrationMode.ROKS else "VPC Virtual Servers"
    a = report.assessment
    body = (
        f"[bold]Target:[/] {target}\n"
        f"[bold]Readiness:[/] {_pct_style(r.readiness_pct)}\n\n"
        f"[green]Ready:[/] {r.ready_vms}    "
        f"[yellow]Warnings only:[/] {r.vms_with_warnings}    "
        f"[red]Blocked:[/] {r.vms_with_blockers}    "
        f"[red]Unsupported OS:[/] {r.unsupported_os_count}\n"
        f"[bold]Complexity:[/] {a.simple_count} simple, {a.moderate_count} moderate, "
        f"{a.complex_count} complex, {a.blocker_count} blocker (avg {a.average_score})"
    )
    console.print(Panel(body, title="Migration Readiness", border_style="blue"))


def print_scope_table(scope: MigrationScope, limit: int = 20) -> None:
    """Print the VMs left out of the migration scope and why."""
    excluded = scope.excluded
    if not excluded:
        return

    table = Table(title=f"Out of Scope ({len(excluded)} VMs)", show_lines=False)
    table.add_column("VM", style="bold")
    table.add_column("Reason")
    for d in excluded[:limit]:
        reason = "Manually excluded" if d.manually_excluded else ", ".join(d.auto.labels)
        table.add_row(d.vm_name, reason)
    if len(excluded) > limit:
        table.caption = f"… {len(excluded) - limit} more"
    console.print(table)


def print_preflight_table(results: list[VMCheckResults]) -> None:
    """Print the checks that flagged at least one VM."""
    affected = summarize_check_counts(results)
    if not affected:
        console.print("[bold green]✓ No pre-flight issues detected.[/]\n")
        return

    table = Table(title="Pre-Flight Findings", show_lines=True)
    table.add_column("Check", style="bold")
    table.add_column("Severity", justify="center")
    table.add_column("VMs", justify="right")
    table.add_column("Examples", max_width=50)

    for check_id, vm_names in sorted(affected.items(), key=lambda kv: -len(kv[1])):
        defn = get_check_definition(check_id)
        severity_style = "[red]blocker[/]" if defn and defn.severity == "blocker" else "[yellow]warning[/]"
        examples = ", ".join(vm_names[:3]) + (f" +{len(vm_names) - 3} more" if len(vm_names) > 3 else "")
        table.add_row(defn.name if defn else check_id, severity_style, str(len(vm_names)), examples)

    console.print(table)


# ---------------------------------------------------------------------------
# Complexity
# ---------------------------------------------------------------------------

def print_complexity_table(scores: list[ComplexityScore], limit: int = 10) -> None:
    if not scores:
        return
    table = Table(title=f"Most Complex VMs (top {min(limit, len(scores))})", show_lines=True)
    table.add_column("VM Name", style="bold", max_width=25)
    table.add_column("Score", justify="right")
    table.add_column("Category", justify="center")
    table.add_column("vCPUs", justify="right")
    table.add_column("RAM (GiB)", justify="right")
    table.add_column("OS", max_width=30)
    table.add_column("Factors", max_width=45)

    for s in get_top_complex_vms(scores, limit):
        color = CATEGORY_COLORS[s.category]
        table.add_row(
            s.vm_name, str(s.score), f"[{color}]{s.category.value}[/]",
            str(s.cpus), str(s.memory_gib), (s.guest_os or "—")[:30], s.factors_text,
        )
    console.print(table)


# ---------------------------------------------------------------------------
# ROKS sizing
# ---------------------------------------------------------------------------

def print_sizing_report(sizing: SizingResult) -> None:
    cap, req, demand = sizing.capacity, sizing.requirements, sizing.demand
    body = (
        f"[bold]Profile:[/] {sizing.profile.name}  [dim]{sizing.profile.description}[/]\n"
        f"[bold]Per node:[/] {cap.vcpu_capacity} vCPU, {cap.memory_capacity} GiB, "
        f"{cap.usable_storage_gib:,} GiB usable storage "
        f"(ODF reserves {cap.odf_reserved_cpu} cores / {cap.odf_reserved_memory_gib:g} GiB)\n"
        f"[bold]Workload:[/] {demand.vm_count} VM(s), {demand.total_vcpus} vCPU, "
        f"{demand.total_memory_gib:,.0f} GiB, {req.total_storage_gib:,.0f} GiB projected storage\n\n"
        f"[bold]Nodes for CPU / memory / storage:[/] "
        f"{req.nodes_for_cpu} / {req.nodes_for_memory} / {req.nodes_for_storage}\n"
        f"[bold green]Total nodes:[/] {req.total_nodes} "
        f"({req.min_surviving_nodes} + {req.node_redundancy_count} redundancy)    "
        f"[bold]Limiting factor:[/] {req.limiting_factor.value}"
    )
    if sizing.notes:
        body += "\n" + "\n".join(f"[yellow]• {n}[/]" for n in sizing.notes)
    console.print(Panel(body, title="ROKS Cluster Sizing", border_style="cyan"))
    print_redundancy_table(sizing.validation)


def _util(value: float | None) -> str:
    return "N/A" if value is None else f"{value:.1f}%"


def _verdict(passes: bool | None) -> str:
    if passes is None:
        return "[dim]N/A[/]"
    return "[green]PASS[/]" if passes else "[red]FAIL[/]"


def print_redundancy_table(v: RedundancyValidation) -> None:
    table = Table(title=f"N+{v.failed_nodes} Validation ({v.surviving_nodes}/{v.total_nodes} nodes surviving)")
    table.add_column("Dimension", style="bold")
    table.add_column("Healthy", justify="right")
    table.add_column("After failure", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Result", justify="center")

    table.add_row("CPU", _util(v.cpu_util_healthy), _util(v.cpu_util_after_failure),
                  f"{v.eviction_threshold_pct:g}%", _verdict(v.cpu_passes))
    table.add_row("Memory", _util(v.memory_util_healthy), _util(v.memory_util_after_failure),
                  f"{v.eviction_threshold_pct:g}%", _verdict(v.memory_passes))
    table.add_row("Storage", _util(v.storage_util_healthy), _util(v.storage_util_after_failure),
                  f"{v.storage_threshold_pct:g}%", _verdict(v.storage_passes))
    table.add_row("Quorum", "", str(v.surviving_nodes), "3 nodes", _verdict(v.quorum_passes))
    console.print(table)


# ---------------------------------------------------------------------------
# VSI mapping
# ---------------------------------------------------------------------------

def print_vsi_mappings(mappings: list[VMProfileMapping], limit: int = 25) -> None:
    if not mappings:
        return
    table = Table(title="VSI Profile Mapping", show_lines=False)
    table.add_column("VM Name", style="bold", max_width=25)
    table.add_column("vCPUs", justify="right")
    table.add_column("RAM (GiB)", justify="right")
    table.add_column("Workload")
    table.add_column("Profile", style="cyan")
    table.add_column("Monthly $", justify="right", style="green")
    table.add_column("Note")

    for m in sorted(mappings, key=lambda m: m.vm_name)[:limit]:
        note = "override" if m.is_overridden else ("[red]exceeds catalog[/]" if m.oversized else "")
        table.add_row(m.vm_name, str(m.vcpus), f"{m.memory_gib:g}", m.recommended_family.capitalize(),
                      m.profile.name, f"${m.profile.monthly_rate:,.2f}", note)
    console.print(table)
    if len(mappings) > limit:
        console.print(f"[dim]… {len(mappings) - limit} more VM(s)[/]")

    counts = count_by_profile(mappings)
    console.print("[bold]Profiles:[/] " + ", ".join(f"{name} × {n}" for name, n in sorted(counts.items())))


# ---------------------------------------------------------------------------
# Waves
# ---------------------------------------------------------------------------

def print_waves_table(waves: list[WaveGroup]) -> None:
    table = Table(title="Migration Waves", show_lines=True)
    table.add_column("Wave", style="bold")
    table.add_column("VMs", justify="right")
    table.add_column("vCPUs", justify="right")
    table.add_column("RAM (GiB)", justify="right")
    table.add_column("Storage (GiB)", justify="right")
    table.add_column("Avg complexity", justify="right")
    table.add_column("Description", max_width=45)

    for w in waves:
        name = f"[red]{w.name}[/]" if w.has_blockers else w.name
        table.add_row(name, str(w.vm_count), str(w.vcpus), f"{w.memory_gib:,}",
                      f"{w.storage_gib:,}", f"{w.avg_complexity:.0f}", w.description)
    console.print(table)


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------

def print_cost_report(estimate: CostEstimate) -> None:
    table = Table(title=f"Cost Estimate - {estimate.architecture}", show_lines=True)
    table.add_column("Category", style="bold")
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Unit $", justify="right")
    table.add_column("Monthly $", justify="right", style="green")
    table.add_column("Notes", max_width=40)

    for item in estimate.line_items:
        table.add_row(item.category, item.description, f"{item.quantity:g} {item.unit}",
                      f"${item.unit_cost:,.2f}", f"${item.monthly_cost:,.2f}", item.notes or "—")
    console.print(table)

    discount = (
        f"[dim]Discount ({estimate.discount_pct:g}%): -${estimate.discount_amount_monthly:,.2f}/month[/]\n"
        if estimate.discount_pct else ""
    )
    console.print(Panel(
        f"[dim]Region: {estimate.region_name} ({estimate.region})    "
        f"Pricing: {estimate.pricing_source} {estimate.pricing_version}[/]\n"
        f"[dim]Subtotal: ${estimate.subtotal_monthly:,.2f}/month[/]\n"
        f"{discount}"
        f"[bold green]Estimated total monthly cost: ${estimate.total_monthly:,.2f}[/]\n"
        f"[dim]Estimated annual cost: ${estimate.total_annual:,.2f}[/]",
        title="Cost Summary",
        border_style="green",
    ))


def print_validation_errors(report: AnalysisReport) -> None:
    if report.ok:
        return
    console.print(Panel(
        "\n".join(f"[red]• {m}[/]" for m in report.validation.messages()),
        title="[bold red]Validation errors",
        border_style="red",
    ))


# ---------------------------------------------------------------------------
# Export to JSON
# ---------------------------------------------------------------------------

def export_report_json(report: AnalysisReport, output_path: Path) -> None:
    """Export the full analysis to a JSON file of plain records."""
    data = {
        "source": report.source_name,
        "mode": report.mode.value,
        "excluded_vms": [
            {"name": d.vm_name, "manual": d.manually_excluded, "reasons": d.auto.reasons}
            for d in report.scope.excluded
        ],
        "readiness": asdict(report.readiness) if report.readiness else None,
        "assessment": asdict(report.assessment),
        "preflight": [asdict(r) for r in report.check_results],
        "complexity": [asdict(s) for s in report.complexity_scores],
        "sizing": asdict(report.sizing) if report.sizing else None,
        "vsi_mappings": [asdict(m) for m in report.vsi_mappings],
        "wave_strategy": report.wave_strategy.value,
        "waves": [
            {**asdict(w), "vm_count": w.vm_count, "vcpus": w.vcpus,
             "memory_gib": w.memory_gib, "storage_gib": w.storage_gib}
            for w in report.waves
        ],
        "cost": asdict(report.cost) if report.cost else None,
        "validation_errors": report.validation.messages(),
    }

    output_path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    logger.info("Report exported to %s", output_path)
    console.print(f"\n[bold]Report exported to:[/] {output_path}")
