"""Cost estimation — itemized monthly/annual IBM Cloud estimates for ROKS and VSI targets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .catalog import BARE_METAL_PROFILES, VSI_PROFILES
from .validation import Outcome, ValidationError, ValidationResult

if TYPE_CHECKING:
    from .sizing import SizingResult
    from .vsi_mapping import VMProfileMapping

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-south"
DEFAULT_DISCOUNT = "onDemand"
DEFAULT_STORAGE_TIER = "10iops"
STORAGE_TIERS = ("5iops", "10iops")

# Fallback rates used when a pricing table omits them (USD / month)
FALLBACK_BLOCK_STORAGE_PER_GB = 0.10
FALLBACK_LOAD_BALANCER = 21.60
FALLBACK_VPN_GATEWAY = 99.0
FALLBACK_TRANSIT_LOCAL = 50.0
FALLBACK_TRANSIT_GLOBAL = 100.0
FALLBACK_PUBLIC_GATEWAY = 5.0

ROKS_LOAD_BALANCERS = 2


# ---------------------------------------------------------------------------
# Pricing table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RegionPricing:
    name: str
    multiplier: float = 1.0


@dataclass(frozen=True)
class DiscountOption:
    name: str
    discount_pct: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class BareMetalPrice:
    monthly_rate: float
    description: str = ""
    has_nvme: bool = False
    nvme_disks: int = 0
    nvme_size_gib: float = 0.0
    total_nvme_gib: float = 0.0


@dataclass(frozen=True)
class VSIPrice:
    monthly_rate: float
    description: str = ""


@dataclass(frozen=True)
class BlockStorageTier:
    cost_per_gb_month: float
    iops_per_gb: int = 0
    tier_name: str = ""
    description: str = ""


@dataclass(frozen=True)
class NetworkPricing:
    load_balancer_monthly: float = FALLBACK_LOAD_BALANCER
    vpn_gateway_monthly: float = FALLBACK_VPN_GATEWAY
    transit_local_connection_monthly: float = FALLBACK_TRANSIT_LOCAL
    transit_global_connection_monthly: float = FALLBACK_TRANSIT_GLOBAL
    public_gateway_monthly: float = FALLBACK_PUBLIC_GATEWAY


@dataclass(frozen=True)
class PricingTable:
    version: str = ""
    source: str = "static"
    regions: dict[str, RegionPricing] = field(default_factory=dict)
    discounts: dict[str, DiscountOption] = field(default_factory=dict)
    bare_metal: dict[str, BareMetalPrice] = field(default_factory=dict)
    vsi: dict[str, VSIPrice] = field(default_factory=dict)
    block_storage: dict[str, BlockStorageTier] = field(default_factory=dict)
    networking: NetworkPricing = field(default_factory=NetworkPricing)


_BARE_METAL_RATES = {
    "bx2d-metal-96x384": 2850.0,
    "cx2d-metal-96x192": 2450.0,
    "mx2d-metal-96x768": 3420.0,
    "bx2d-metal-192x768": 5700.0,
    "bx2-metal-96x384": 2500.0,
    "cx2-metal-96x192": 2150.0,
    "mx2-metal-96x768": 3050.0,
}

DEFAULT_PRICING = PricingTable(
    version="2025-01-15",
    source="static",
    regions={
        "us-south": RegionPricing("Dallas", 1.0),
        "us-east": RegionPricing("Washington DC", 1.0),
        "eu-gb": RegionPricing("London", 1.05),
        "eu-de": RegionPricing("Frankfurt", 1.05),
        "eu-es": RegionPricing("Madrid", 1.05),
        "jp-tok": RegionPricing("Tokyo", 1.08),
        "jp-osa": RegionPricing("Osaka", 1.08),
        "au-syd": RegionPricing("Sydney", 1.08),
        "ca-tor": RegionPricing("Toronto", 1.02),
        "br-sao": RegionPricing("São Paulo", 1.1),
    },
    discounts={
        "onDemand": DiscountOption("On-Demand", 0, "Pay-as-you-go"),
        "oneYear": DiscountOption("1-Year Reserved", 20, "1-year commitment"),
        "threeYear": DiscountOption("3-Year Reserved", 40, "3-year commitment"),
    },
    bare_metal={
        p.name: BareMetalPrice(
            _BARE_METAL_RATES[p.name], p.description, p.has_nvme,
            p.nvme_disks, p.nvme_size_gib, p.total_nvme_gib,
        )
        for p in BARE_METAL_PROFILES
    },
    vsi={p.name: VSIPrice(p.monthly_rate, f"{p.vcpus} vCPU, {p.memory_gib:g} GiB") for p in VSI_PROFILES},
    block_storage={
        "3iops": BlockStorageTier(0.08, 3, "General Purpose", "3 IOPS/GB"),
        "5iops": BlockStorageTier(0.13, 5, "5 IOPS/GB", "5 IOPS/GB tier"),
        "10iops": BlockStorageTier(0.25, 10, "10 IOPS/GB", "10 IOPS/GB tier"),
    },
    networking=NetworkPricing(),
)


def _first(data: dict, *keys, default=None):
    for k in keys:
        if data.get(k) is not None:
            return data[k]
    return default


def _mapping(raw: Any, section: str) -> dict:
    """A pricing section as a dict; anything else keeps the defaults."""
    if raw is None or isinstance(raw, dict):
        return raw or {}
    logger.warning("Ignoring pricing section %s: expected an object, got %s", section, type(raw).__name__)
    return {}


def _parse_section(raw: Any, build, section: str = "") -> dict:
    parsed = {}
    for key, value in _mapping(raw, section).items():
        if not isinstance(value, dict):
            continue
        try:
            parsed[key] = build(value)
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Skipping malformed pricing entry %s: %s", key, exc)
    return parsed


def merge_with_defaults(partial: dict | None, defaults: PricingTable = DEFAULT_PRICING) -> PricingTable:
    """Overlay a (possibly incomplete) pricing document on the static defaults.

    Every section of the result is fully populated; keys missing from
    *partial* keep their default value.
    """
    partial = _mapping(partial, "document")

    regions = _parse_section(partial.get("regions"), lambda v: RegionPricing(
        str(v.get("name", "")), float(_first(v, "multiplier", default=1.0))), "regions")
    discounts = _parse_section(_first(partial, "discounts", "discountOptions"), lambda v: DiscountOption(
        str(v.get("name", "")), float(_first(v, "discount_pct", "discountPct", default=0)),
        str(v.get("description", ""))), "discounts")
    bare_metal = {}
    for name, v in _mapping(_first(partial, "bare_metal", "bareMetal"), "bareMetal").items():
        if not isinstance(v, dict):
            continue
        base = defaults.bare_metal.get(name) or BareMetalPrice(0.0)
        try:
            bare_metal[name] = BareMetalPrice(
                float(_first(v, "monthly_rate", "monthlyRate")),
                str(v.get("description") or base.description),
                bool(_first(v, "has_nvme", "hasNvme", default=base.has_nvme)),
                int(_first(v, "nvme_disks", "nvmeDisks", default=base.nvme_disks)),
                float(_first(v, "nvme_size_gib", "nvmeSizeGiB", "nvmeSizeGB", default=base.nvme_size_gib)),
                float(_first(v, "total_nvme_gib", "totalNvmeGiB", "totalNvmeGB", default=base.total_nvme_gib)),
            )
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Skipping malformed pricing entry %s: %s", name, exc)

    def vsi_price(v: dict) -> VSIPrice:
        monthly = _first(v, "monthly_rate", "monthlyRate")
        if monthly is None:
            monthly = float(_first(v, "hourly_rate", "hourlyRate")) * 730
        return VSIPrice(round(float(monthly), 2), str(v.get("description", "")))

    vsi = _parse_section(_first(partial, "vsi", "vsiProfiles"), vsi_price, "vsi")

    storage_raw = _first(partial, "block_storage", "blockStorage", default={})
    if isinstance(storage_raw, dict) and isinstance(storage_raw.get("tiers"), dict):
        storage_raw = storage_raw["tiers"]
    block_storage = _parse_section(storage_raw, lambda v: BlockStorageTier(
        float(_first(v, "cost_per_gb_month", "costPerGBMonth")),
        int(_first(v, "iops_per_gb", "iopsPerGB", default=0)),
        str(_first(v, "tier_name", "tierName", default="")),
        str(v.get("description", ""))), "blockStorage")

    net_raw = _mapping(partial.get("networking"), "networking")
    net_defaults = defaults.networking

    def net_rate(section: str, keys: tuple[str, ...], default: float) -> float:
        value = net_raw.get(section)
        if isinstance(value, dict):
            found = _first(value, *keys)
            try:
                return float(found) if found is not None else default
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed networking rate %s: %r", section, found)
        return default

    networking = NetworkPricing(
        load_balancer_monthly=net_rate("loadBalancer", ("perLBMonthly", "monthlyRate"),
                                       net_defaults.load_balancer_monthly),
        vpn_gateway_monthly=net_rate("vpnGateway", ("perGatewayMonthly", "monthlyRate"),
                                     net_defaults.vpn_gateway_monthly),
        transit_local_connection_monthly=net_rate("transitGateway", ("localConnectionMonthly",),
                                                  net_defaults.transit_local_connection_monthly),
        transit_global_connection_monthly=net_rate("transitGateway", ("globalConnectionMonthly",),
                                                   net_defaults.transit_global_connection_monthly),
        public_gateway_monthly=net_rate("publicGateway", ("perGatewayMonthly", "monthlyRate"),
                                        net_defaults.public_gateway_monthly),
    )

    return PricingTable(
        version=str(_first(partial, "version", "pricingVersion", default=defaults.version)),
        source=str(partial.get("source") or defaults.source),
        regions={**defaults.regions, **regions},
        discounts={**defaults.discounts, **discounts},
        bare_metal={**defaults.bare_metal, **bare_metal},
        vsi={**defaults.vsi, **vsi},
        block_storage={**defaults.block_storage, **block_storage},
        networking=networking,
    )


# ---------------------------------------------------------------------------
# Sizing inputs
# ---------------------------------------------------------------------------

@dataclass
class ROKSSizingInput:
    compute_nodes: int
    compute_profile: str
    storage_nodes: int | None = None
    storage_profile: str | None = None
    storage_tib: float | None = None
    storage_tier: str | None = None
    use_nvme: bool = True


@dataclass
class NetworkingOptions:
    include_vpn: bool = False
    vpn_gateway_count: int | None = None
    include_transit_gateway: bool = False
    transit_gateway_local_connections: int | None = None
    transit_gateway_global_connections: int | None = None
    include_public_gateway: bool = False
    public_gateway_count: int | None = None
    load_balancer_count: int | None = None


@dataclass
class ProfileCount:
    profile: str
    count: int


@dataclass
class VSISizingInput:
    vm_profiles: list[ProfileCount]
    storage_tib: float
    storage_tier: str | None = None
    networking: NetworkingOptions | None = None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def validate_roks_sizing_input(data: ROKSSizingInput) -> ValidationResult:
    errors: list[ValidationError] = []

    if data.compute_nodes is None:
        errors.append(ValidationError("compute_nodes", "Compute nodes count is required"))
    elif not _is_int(data.compute_nodes) or data.compute_nodes < 0:
        errors.append(ValidationError("compute_nodes", "Compute nodes must be a non-negative integer"))
    elif data.compute_nodes > 1000:
        errors.append(ValidationError("compute_nodes", "Compute nodes cannot exceed 1000"))

    if not isinstance(data.compute_profile, str) or not data.compute_profile.strip():
        errors.append(ValidationError("compute_profile", "Compute profile is required"))

    if data.storage_nodes is not None:
        if not _is_int(data.storage_nodes) or data.storage_nodes < 0:
            errors.append(ValidationError("storage_nodes", "Storage nodes must be a non-negative integer"))
        elif data.storage_nodes > 500:
            errors.append(ValidationError("storage_nodes", "Storage nodes cannot exceed 500"))

    if data.storage_tib is not None:
        if not _is_number(data.storage_tib) or data.storage_tib < 0:
            errors.append(ValidationError("storage_tib", "Storage TiB must be a non-negative number"))
        elif data.storage_tib > 10000:
            errors.append(ValidationError("storage_tib", "Storage TiB cannot exceed 10,000"))

    if data.storage_tier is not None and data.storage_tier not in STORAGE_TIERS:
        errors.append(ValidationError("storage_tier", 'Storage tier must be "5iops" or "10iops"'))

    return ValidationResult.from_errors(errors)


def validate_vsi_sizing_input(data: VSISizingInput) -> ValidationResult:
    errors: list[ValidationError] = []

    if data.vm_profiles is None:
        errors.append(ValidationError("vm_profiles", "VM profiles list is required"))
    else:
        for i, entry in enumerate(data.vm_profiles):
            if not isinstance(entry.profile, str) or not entry.profile.strip():
                errors.append(ValidationError(f"vm_profiles[{i}].profile", "Profile name is required"))
            if entry.count is None:
                errors.append(ValidationError(f"vm_profiles[{i}].count", "VM count is required"))
            elif not _is_int(entry.count) or entry.count < 0:
                errors.append(ValidationError(f"vm_profiles[{i}].count", "VM count must be a non-negative integer"))
            elif entry.count > 10000:
                errors.append(ValidationError(f"vm_profiles[{i}].count", "VM count cannot exceed 10,000"))

    if data.storage_tib is None:
        errors.append(ValidationError("storage_tib", "Storage TiB is required"))
    elif not _is_number(data.storage_tib) or data.storage_tib < 0:
        errors.append(ValidationError("storage_tib", "Storage TiB must be a non-negative number"))
    elif data.storage_tib > 100000:
        errors.append(ValidationError("storage_tib", "Storage TiB cannot exceed 100,000"))

    if data.storage_tier is not None and data.storage_tier not in STORAGE_TIERS:
        errors.append(ValidationError("storage_tier", 'Storage tier must be "5iops" or "10iops"'))

    net = data.networking
    if net is not None:
        for name in ("vpn_gateway_count", "public_gateway_count", "load_balancer_count",
                     "transit_gateway_local_connections", "transit_gateway_global_connections"):
            value = getattr(net, name)
            if value is not None and (not _is_int(value) or value < 0):
                errors.append(ValidationError(f"networking.{name}", "must be a non-negative integer"))

    return ValidationResult.from_errors(errors)


def validate_region(region: str, pricing: PricingTable = DEFAULT_PRICING) -> ValidationResult:
    if not region or not isinstance(region, str):
        return ValidationResult.from_errors([ValidationError("region", "Region is required")])
    if region not in pricing.regions:
        valid = ", ".join(pricing.regions)
        return ValidationResult.from_errors(
            [ValidationError("region", f'Invalid region "{region}". Valid regions: {valid}')])
    return ValidationResult()


def validate_discount_type(discount_type: str, pricing: PricingTable = DEFAULT_PRICING) -> ValidationResult:
    if not discount_type or not isinstance(discount_type, str):
        return ValidationResult.from_errors([ValidationError("discount_type", "Discount type is required")])
    if discount_type not in pricing.discounts:
        valid = ", ".join(pricing.discounts)
        return ValidationResult.from_errors(
            [ValidationError("discount_type", f'Invalid discount type "{discount_type}". Valid types: {valid}')])
    return ValidationResult()


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------

@dataclass
class CostLineItem:
    category: str
    description: str
    quantity: float
    unit: str
    unit_cost: float
    monthly_cost: float
    annual_cost: float
    notes: str = ""


@dataclass
class CostEstimate:
    architecture: str
    region: str
    region_name: str
    discount_type: str
    discount_pct: float
    line_items: list[CostLineItem]
    subtotal_monthly: float
    subtotal_annual: float
    discount_amount_monthly: float
    discount_amount_annual: float
    total_monthly: float
    total_annual: float
    pricing_version: str = ""
    pricing_source: str = ""
    generated_at: str = ""
    notes: list[str] = field(default_factory=list)


def _line(category: str, description: str, quantity: float, unit: str, unit_cost: float, notes: str = "") -> CostLineItem:
    monthly = quantity * unit_cost
    return CostLineItem(category, description, quantity, unit, unit_cost, monthly, monthly * 12, notes)


def _block_storage_line(storage_tib: float, tier: str | None, pricing: PricingTable, multiplier: float) -> CostLineItem:
    tier = tier or DEFAULT_STORAGE_TIER
    tier_data = pricing.block_storage.get(tier)
    rate = tier_data.cost_per_gb_month if tier_data and tier_data.cost_per_gb_month else FALLBACK_BLOCK_STORAGE_PER_GB
    return _line(
        "Storage - Block",
        f"Block Storage - {(tier_data.tier_name if tier_data else '') or tier}",
        storage_tib * 1024, "GB", rate * multiplier,
        (tier_data.description if tier_data else "") or f"{tier} IOPS tier",
    )


def _finish(
    architecture: str,
    region: str,
    discount_type: str,
    items: list[CostLineItem],
    pricing: PricingTable,
    notes: list[str],
    generated_at: datetime | None = None,
) -> CostEstimate:
    region_data = pricing.regions[region]
    discount = pricing.discounts[discount_type]
    subtotal = sum(i.monthly_cost for i in items)
    discount_amount = subtotal * (discount.discount_pct / 100)
    total = subtotal - discount_amount
    notes = notes + [
        "Estimated pricing - actual costs may vary",
        f"{discount.name} discount applied" if discount.discount_pct > 0 else "On-demand pricing",
    ]
    return CostEstimate(
        architecture=architecture,
        region=region,
        region_name=region_data.name,
        discount_type=discount_type,
        discount_pct=discount.discount_pct,
        line_items=items,
        subtotal_monthly=subtotal,
        subtotal_annual=subtotal * 12,
        discount_amount_monthly=discount_amount,
        discount_amount_annual=discount_amount * 12,
        total_monthly=total,
        total_annual=total * 12,
        pricing_version=pricing.version,
        pricing_source=pricing.source,
        generated_at=generated_at.isoformat() if generated_at else "",
        notes=notes,
    )


def calculate_roks_cost(
    data: ROKSSizingInput,
    region: str = DEFAULT_REGION,
    discount_type: str = DEFAULT_DISCOUNT,
    pricing: PricingTable | None = None,
    generated_at: datetime | None = None,
) -> Outcome[CostEstimate]:
    """Bare metal workers (+ NVMe or hybrid storage) and ingress load balancers."""
    pricing = pricing or DEFAULT_PRICING
    check = (validate_roks_sizing_input(data)
             .merge(validate_region(region, pricing))
             .merge(validate_discount_type(discount_type, pricing)))
    if not check.valid:
        return Outcome(validation=check)

    multiplier = pricing.regions[region].multiplier
    items: list[CostLineItem] = []
    notes: list[str] = []

    compute = pricing.bare_metal.get(data.compute_profile)
    if compute is None:
        notes.append(f"No price available for {data.compute_profile}")
    elif data.compute_nodes > 0:
        items.append(_line("Compute", f"Bare Metal - {data.compute_profile}", data.compute_nodes,
                           "nodes", compute.monthly_rate * multiplier, compute.description))

    converged = data.use_nvme and compute is not None and compute.has_nvme
    if converged:
        raw_tib = round(data.compute_nodes * compute.total_nvme_gib / 1024)
        items.append(_line("Storage", "NVMe Local Storage (included)", raw_tib, "TiB raw", 0.0,
                           f"{compute.nvme_disks}x {compute.nvme_size_gib / 1000:g}TB NVMe per node"))
    else:
        if data.storage_nodes and data.storage_profile:
            storage_vsi = pricing.vsi.get(data.storage_profile)
            if storage_vsi is None:
                notes.append(f"No price available for {data.storage_profile}")
            else:
                items.append(_line("Storage - VSI", f"VSI - {data.storage_profile}", data.storage_nodes,
                                   "nodes", storage_vsi.monthly_rate * multiplier,
                                   f"ODF storage workers - {storage_vsi.description}"))
        if data.storage_tib and data.storage_tib > 0:
            items.append(_block_storage_line(data.storage_tib, data.storage_tier, pricing, multiplier))

    items.append(_line("Networking", f"Load Balancers ({ROKS_LOAD_BALANCERS}x)", ROKS_LOAD_BALANCERS, "LBs",
                       pricing.networking.load_balancer_monthly * multiplier,
                       "Application Load Balancers for ingress"))

    architecture = "All-NVMe Converged" if converged else "Hybrid (Bare Metal + VSI Storage)"
    return Outcome(value=_finish(architecture, region, discount_type, items, pricing, notes, generated_at))


def calculate_vsi_cost(
    data: VSISizingInput,
    region: str = DEFAULT_REGION,
    discount_type: str = DEFAULT_DISCOUNT,
    pricing: PricingTable | None = None,
    generated_at: datetime | None = None,
) -> Outcome[CostEstimate]:
    """VPC instances, block storage and optional networking add-ons."""
    pricing = pricing or DEFAULT_PRICING
    check = (validate_vsi_sizing_input(data)
             .merge(validate_region(region, pricing))
             .merge(validate_discount_type(discount_type, pricing)))
    if not check.valid:
        return Outcome(validation=check)

    multiplier = pricing.regions[region].multiplier
    net_rates = pricing.networking
    items: list[CostLineItem] = []
    notes: list[str] = []

    counts: dict[str, int] = {}
    for entry in data.vm_profiles:
        if entry.profile not in pricing.vsi:
            notes.append(f"No price available for {entry.profile}")
            continue
        counts[entry.profile] = counts.get(entry.profile, 0) + entry.count
    for name, count in counts.items():
        price = pricing.vsi[name]
        items.append(_line("Compute - VSI", f"VSI - {name}", count, "instances",
                           price.monthly_rate * multiplier, price.description))

    if data.storage_tib > 0:
        items.append(_block_storage_line(data.storage_tib, data.storage_tier, pricing, multiplier))

    net = data.networking or NetworkingOptions()
    lb_count = 1 if net.load_balancer_count is None else net.load_balancer_count
    if lb_count > 0:
        items.append(_line("Networking", "Application Load Balancer", lb_count, "LB",
                           net_rates.load_balancer_monthly * multiplier,
                           "For application traffic distribution"))
    if net.include_vpn:
        items.append(_line("Networking", "VPN Gateway", net.vpn_gateway_count or 1, "gateway",
                           net_rates.vpn_gateway_monthly * multiplier,
                           "Site-to-site VPN connectivity to on-premises"))
    if net.include_transit_gateway:
        local = 1 if net.transit_gateway_local_connections is None else net.transit_gateway_local_connections
        remote = net.transit_gateway_global_connections or 0
        if local > 0:
            items.append(_line("Networking", "Transit Gateway - Local Connection", local, "connection",
                               net_rates.transit_local_connection_monthly * multiplier,
                               "Same-region VPC/Classic connectivity"))
        if remote > 0:
            items.append(_line("Networking", "Transit Gateway - Global Connection", remote, "connection",
                               net_rates.transit_global_connection_monthly * multiplier,
                               "Cross-region connectivity"))
    if net.include_public_gateway:
        items.append(_line("Networking", "Public Gateway", net.public_gateway_count or 1, "gateway",
                           net_rates.public_gateway_monthly * multiplier,
                           "Outbound internet access for VPC subnets"))

    return Outcome(value=_finish("VPC Virtual Server Instances", region, discount_type, items, pricing, notes,
                                 generated_at))


# ---------------------------------------------------------------------------
# Bridges from sizing / mapping
# ---------------------------------------------------------------------------

def sizing_to_roks_input(result: SizingResult) -> ROKSSizingInput:
    return ROKSSizingInput(
        compute_nodes=result.compute_nodes,
        compute_profile=result.profile.name,
        storage_tib=result.storage_tib,
        use_nvme=result.profile.has_nvme,
    )


def mappings_to_vsi_input(
    mappings: list[VMProfileMapping],
    storage_gib: float,
    networking: NetworkingOptions | None = None,
) -> VSISizingInput:
    counts: dict[str, int] = {}
    for m in mappings:
        counts[m.profile.name] = counts.get(m.profile.name, 0) + 1
    return VSISizingInput(
        vm_profiles=[ProfileCount(name, count) for name, count in counts.items()],
        storage_tib=math.ceil(storage_gib / 1024) if storage_gib > 0 else 0,
        networking=networking,
    )


def with_source(pricing: PricingTable, source: str) -> PricingTable:
    return replace(pricing, source=source)
