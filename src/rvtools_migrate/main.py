"""Main orchestrator — loads an inventory, runs the analysis and prints the report."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from rich.logging import RichHandler
from rich.panel import Panel

from .catalog import find_hardware_profile
from .config import load_config
from .exclusion import DEFAULT_EXCLUSION_RULES, ExclusionRules, VMOverrides
from .inventory_io import InventoryLoadError, load_inventory
from .models import MigrationMode
from .pipeline import analyze
from .pricing_provider import PricingProvider, ProfileProvider, get_active_pricing
from .visualization import (
    console,
    export_report_json,
    print_complexity_table,
    print_cost_report,
    print_inventory_summary,
    print_preflight_table,
    print_readiness_panel,
    print_scope_table,
    print_sizing_report,
    print_validation_errors,
    print_vsi_mappings,
    print_waves_table,
)
from .waves import WaveStrategy

logger = logging.getLogger("rvtools_migrate")


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rvtools-migrate",
        description="Assess an RVTools inventory for migration to IBM Cloud (ROKS or VPC VSI).",
    )
    parser.add_argument("inventory", type=str, help="Path to the JSON inventory snapshot.")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in MigrationMode],
        default=MigrationMode.ROKS.value,
        help="Migration target (default: roks).",
    )
    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Bare metal worker profile for ROKS sizing (default: cheapest NVMe profile).",
    )
    parser.add_argument("--region", type=str, default=None, help="IBM Cloud region for pricing.")
    parser.add_argument(
        "--discount",
        type=str,
        default=None,
        help="Pricing discount: onDemand, oneYear or threeYear.",
    )
    parser.add_argument(
        "--wave-strategy",
        choices=[s.value for s in WaveStrategy],
        default=WaveStrategy.COMPLEXITY.value,
        help="How to group VMs into migration waves (default: complexity).",
    )
    parser.add_argument(
        "--include-powered-off",
        action="store_true",
        help="Count in-scope powered-off VMs (see --force-include) in ROKS capacity sizing.",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="VM",
        help="Exclude a VM from the migration scope (repeatable).",
    )
    parser.add_argument(
        "--force-include",
        action="append",
        default=[],
        metavar="VM",
        help="Keep a VM in scope even if an auto-exclusion rule matches (repeatable).",
    )
    parser.add_argument(
        "--no-auto-exclude",
        action="store_true",
        help="Disable auto-exclusion rules (templates, powered-off VMs, VMware infrastructure).",
    )
    parser.add_argument(
        "--export",
        type=str,
        default="migration_report.json",
        help="Path to export the JSON report (default: migration_report.json).",
    )
    parser.add_argument(
        "--refresh-pricing",
        action="store_true",
        help="Bypass the pricing/profile cache and fetch from the proxies.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    console.print(Panel(
        "[bold blue]RVTools Migration Assessment[/]\n"
        "Pre-flight checks, complexity, sizing, waves and cost for IBM Cloud",
        border_style="blue",
    ))

    # ── Load configuration ──────────────────────────────────────────────
    cfg = load_config()
    mode = MigrationMode(args.mode)
    region = args.region or cfg.cost.region
    discount = args.discount or cfg.cost.discount

    # ── Step 1: Load inventory ──────────────────────────────────────────
    console.print("\n[bold]Step 1:[/] Loading inventory …\n")
    try:
        inventory = load_inventory(args.inventory)
    except InventoryLoadError as e:
        console.print(f"[bold red]Inventory load failed:[/] {e}")
        sys.exit(1)

    print_inventory_summary(inventory)
    if not inventory.analyzable_vms():
        console.print("[yellow]No VMs in inventory. Nothing to do.[/]")
        sys.exit(0)

    # ── Resolve catalogs and pricing ────────────────────────────────────
    catalog_kwargs = dict(
        cache_dir=cfg.catalog.cache_dir,
        ttl=int(cfg.catalog.cache_ttl_hours * 3600),
        timeout=cfg.catalog.http_timeout_seconds,
    )
    profile_provider = ProfileProvider(cfg.catalog.profiles_proxy_url, **catalog_kwargs)
    profiles = profile_provider.refresh() if args.refresh_pricing else profile_provider.get()
    pricing = get_active_pricing(
        PricingProvider(cfg.catalog.pricing_proxy_url, **catalog_kwargs),
        force_refresh=args.refresh_pricing,
    )
    if pricing.error:
        console.print(f"[yellow]Pricing proxy unavailable ({pricing.error}); using {pricing.source} prices.[/]")

    profile = None
    if args.profile:
        profile = find_hardware_profile(args.profile, profiles.bare_metal)
        if profile is None:
            console.print(f"[bold red]Error:[/] unknown bare metal profile {args.profile}")
            sys.exit(1)

    # ── Step 2: Analyze ─────────────────────────────────────────────────
    console.print(f"\n[bold]Step 2:[/] Analyzing for {mode.value.upper()} …\n")
    report = analyze(
        inventory,
        mode,
        profile=profile,
        profiles=profiles.bare_metal,
        vsi_catalog=profiles.vsi,
        pricing=pricing.pricing,
        region=region,
        discount=discount,
        wave_strategy=args.wave_strategy,
        thresholds=cfg.assessment.thresholds(),
        include_powered_off=args.include_powered_off,
        vm_overrides=VMOverrides(excluded=set(args.exclude), force_included=set(args.force_include)),
        exclusion_rules=ExclusionRules() if args.no_auto_exclude else DEFAULT_EXCLUSION_RULES,
        generated_at=datetime.now(timezone.utc),
    )

    print_scope_table(report.scope)
    print_readiness_panel(report)
    print_preflight_table(report.check_results)
    print_complexity_table(report.complexity_scores)
    if report.sizing:
        print_sizing_report(report.sizing)
    print_vsi_mappings(report.vsi_mappings)
    print_waves_table(report.waves)
    if report.cost:
        print_cost_report(report.cost)

    # ── Export report ───────────────────────────────────────────────────
    export_report_json(report, Path(args.export))

    if not report.ok:
        print_validation_errors(report)
        sys.exit(1)

    console.print("\n[bold green]Done![/]")


if __name__ == "__main__":
    main()
