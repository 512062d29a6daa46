"""IBM Cloud target catalogs: bare metal worker profiles and VPC VSI profiles."""

from __future__ import annotations

from dataclasses import dataclass

HOURS_PER_MONTH = 730


# ---------------------------------------------------------------------------
# Bare metal profiles (ROKS worker nodes)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HardwareProfile:
    name: str
    physical_cores: int
    vcpus: int                   # hardware threads
    memory_gib: float
    has_nvme: bool = False
    nvme_disks: int = 0
    nvme_size_gib: float = 0.0
    total_nvme_gib: float = 0.0
    roks_supported: bool = True
    family: str = "balanced"
    description: str = ""


# Representative catalog; refreshed at runtime through ProfileProvider
BARE_METAL_PROFILES: list[HardwareProfile] = [
    # NVMe ("d") profiles, converged compute + ODF storage
    HardwareProfile("bx2d-metal-96x384",  48, 96, 384, True, 8, 3200, 25600, True, "balanced",
                    "48 cores, 384 GiB, 8x 3.2 TB NVMe"),
    HardwareProfile("cx2d-metal-96x192",  48, 96, 192, True, 8, 3200, 25600, True, "compute",
                    "48 cores, 192 GiB, 8x 3.2 TB NVMe"),
    HardwareProfile("mx2d-metal-96x768",  48, 96, 768, True, 8, 3200, 25600, True, "memory",
                    "48 cores, 768 GiB, 8x 3.2 TB NVMe"),
    HardwareProfile("bx2d-metal-192x768", 96, 192, 768, True, 16, 3200, 51200, True, "balanced",
                    "96 cores, 768 GiB, 16x 3.2 TB NVMe"),
    # Diskless profiles, storage provided externally
    HardwareProfile("bx2-metal-96x384",   48, 96, 384, False, 0, 0, 0, True, "balanced",
                    "48 cores, 384 GiB, no local NVMe"),
    HardwareProfile("cx2-metal-96x192",   48, 96, 192, False, 0, 0, 0, True, "compute",
                    "48 cores, 192 GiB, no local NVMe"),
    HardwareProfile("mx2-metal-96x768",   48, 96, 768, False, 0, 0, 0, True, "memory",
                    "48 cores, 768 GiB, no local NVMe"),
]


# ---------------------------------------------------------------------------
# VPC virtual server profiles
# ---------------------------------------------------------------------------

FAMILY_ORDER = ("balanced", "compute", "memory")


@dataclass(frozen=True)
class VSIProfile:
    name: str
    family: str                  # balanced | compute | memory
    vcpus: int
    memory_gib: float
    hourly_rate: float           # USD, us-south list price

    @property
    def monthly_rate(self) -> float:
        return round(self.hourly_rate * HOURS_PER_MONTH, 2)


VSI_PROFILES: list[VSIProfile] = [
    # Balanced (bx2) 1:4
    VSIProfile("bx2-2x8",      "balanced",   2,    8, 0.099),
    VSIProfile("bx2-4x16",     "balanced",   4,   16, 0.198),
    VSIProfile("bx2-8x32",     "balanced",   8,   32, 0.396),
    VSIProfile("bx2-16x64",    "balanced",  16,   64, 0.792),
    VSIProfile("bx2-32x128",   "balanced",  32,  128, 1.584),
    VSIProfile("bx2-48x192",   "balanced",  48,  192, 2.376),
    VSIProfile("bx2-64x256",   "balanced",  64,  256, 3.168),
    VSIProfile("bx2-96x384",   "balanced",  96,  384, 4.752),
    VSIProfile("bx2-128x512",  "balanced", 128,  512, 6.336),
    # Compute (cx2) 1:2
    VSIProfile("cx2-2x4",      "compute",    2,    4, 0.083),
    VSIProfile("cx2-4x8",      "compute",    4,    8, 0.166),
    VSIProfile("cx2-8x16",     "compute",    8,   16, 0.332),
    VSIProfile("cx2-16x32",    "compute",   16,   32, 0.664),
    VSIProfile("cx2-32x64",    "compute",   32,   64, 1.328),
    VSIProfile("cx2-48x96",    "compute",   48,   96, 1.992),
    VSIProfile("cx2-64x128",   "compute",   64,  128, 2.656),
    VSIProfile("cx2-96x192",   "compute",   96,  192, 3.984),
    VSIProfile("cx2-128x256",  "compute",  128,  256, 5.312),
    # Memory (mx2) 1:8
    VSIProfile("mx2-2x16",     "memory",     2,   16, 0.125),
    VSIProfile("mx2-4x32",     "memory",     4,   32, 0.25),
    VSIProfile("mx2-8x64",     "memory",     8,   64, 0.5),
    VSIProfile("mx2-16x128",   "memory",    16,  128, 1.0),
    VSIProfile("mx2-32x256",   "memory",    32,  256, 2.0),
    VSIProfile("mx2-48x384",   "memory",    48,  384, 3.0),
    VSIProfile("mx2-64x512",   "memory",    64,  512, 4.0),
    VSIProfile("mx2-96x768",   "memory",    96,  768, 6.0),
    VSIProfile("mx2-128x1024", "memory",   128, 1024, 8.0),
]


def find_hardware_profile(name: str, profiles: list[HardwareProfile] | None = None) -> HardwareProfile | None:
    for p in profiles if profiles is not None else BARE_METAL_PROFILES:
        if p.name == name:
            return p
    return None


def find_vsi_profile(name: str, profiles: list[VSIProfile] | None = None) -> VSIProfile | None:
    for p in profiles if profiles is not None else VSI_PROFILES:
        if p.name == name:
            return p
    return None


def hardware_profile_from_dict(data: dict) -> HardwareProfile:
    """Build a profile from a proxy/JSON record (camelCase or snake_case)."""
    def pick(*keys, default=None):
        for k in keys:
            if data.get(k) is not None:
                return data[k]
        return default

    nvme_disks = int(pick("nvme_disks", "nvmeDisks", default=0))
    nvme_size = float(pick("nvme_size_gib", "nvmeSizeGiB", "nvmeSizeGB", default=0))
    total_nvme = float(pick("total_nvme_gib", "totalNvmeGiB", "totalNvmeGB", default=nvme_disks * nvme_size))
    return HardwareProfile(
        name=str(pick("name", "id", default="")),
        physical_cores=int(pick("physical_cores", "physicalCores", default=0)),
        vcpus=int(pick("vcpus", default=0)),
        memory_gib=float(pick("memory_gib", "memoryGiB", default=0)),
        has_nvme=bool(pick("has_nvme", "hasNvme", default=total_nvme > 0)),
        nvme_disks=nvme_disks,
        nvme_size_gib=nvme_size,
        total_nvme_gib=total_nvme,
        roks_supported=bool(pick("roks_supported", "roksSupported", default=True)),
        family=str(pick("family", default="balanced")),
        description=str(pick("description", default="")),
    )


def vsi_profile_from_dict(data: dict) -> VSIProfile:
    name = str(data.get("name") or data.get("id") or "")
    family = data.get("family")
    if not family:
        family = {"bx": "balanced", "cx": "compute", "mx": "memory"}.get(name[:2], "balanced")
    hourly = data.get("hourly_rate", data.get("hourlyRate"))
    if hourly is None and data.get("monthlyRate") is not None:
        hourly = float(data["monthlyRate"]) / HOURS_PER_MONTH
    return VSIProfile(
        name=name,
        family=family,
        vcpus=int(data.get("vcpus", 0)),
        memory_gib=float(data.get("memory_gib", data.get("memoryGiB", 0))),
        hourly_rate=float(hourly or 0),
    )
