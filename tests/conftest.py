import pytest

from rvtools_migrate.catalog import HardwareProfile
from rvtools_migrate.models import (
    CdromDevice,
    Disk,
    Inventory,
    NetworkAdapter,
    PowerState,
    Snapshot,
    ToolsStatus,
    VirtualMachine,
)


def make_vm(name="web-01", cpus=2, memory_gib=4, **kwargs):
    """A powered-on VM with sensible defaults; memory given in GiB."""
    kwargs.setdefault("power_state", PowerState.POWERED_ON)
    return VirtualMachine(name=name, cpus=cpus, memory_mib=int(memory_gib * 1024), **kwargs)


def make_disk(vm_name, capacity_gib=100, key=2000, **kwargs):
    return Disk(vm_name=vm_name, label=f"Hard disk {key - 1999}", disk_key=key,
                capacity_mib=capacity_gib * 1024, **kwargs)


@pytest.fixture
def nvme_profile():
    """48 cores / 384 GiB / 8 x 3.2 TB NVMe worker."""
    return HardwareProfile(
        name="bx2d-metal-96x384",
        physical_cores=48,
        vcpus=96,
        memory_gib=384,
        has_nvme=True,
        nvme_disks=8,
        nvme_size_gib=3200,
        total_nvme_gib=25600,
    )


@pytest.fixture
def diskless_profile():
    return HardwareProfile(name="bx2-metal-96x384", physical_cores=48, vcpus=96, memory_gib=384)


@pytest.fixture
def small_inventory():
    """Three VMs, one template, with a mix of findings."""
    vms = [
        make_vm("web-01", 2, 8, guest_os="Red Hat Enterprise Linux 8 (64-bit)", hardware_version=19,
                cluster="prod", in_use_mib=40 * 1024, provisioned_mib=60 * 1024, cbt_enabled=True),
        make_vm("DB_Server", 8, 64, guest_os="Microsoft Windows Server 2019 (64-bit)", hardware_version=13,
                cluster="prod", in_use_mib=400 * 1024, provisioned_mib=500 * 1024, cbt_enabled=False),
        make_vm("legacy-app", 4, 16, guest_os="Microsoft Windows Server 2008 R2 (64-bit)", hardware_version=8,
                cluster="dev", in_use_mib=80 * 1024, provisioned_mib=100 * 1024,
                power_state=PowerState.POWERED_OFF),
        make_vm("golden-image", 2, 4, guest_os="Red Hat Enterprise Linux 9 (64-bit)", template=True,
                in_use_mib=20 * 1024, provisioned_mib=20 * 1024),
    ]
    return Inventory(
        source_name="rvtools-test.xlsx",
        vms=vms,
        disks=[
            make_disk("web-01", 60),
            make_disk("DB_Server", 100),
            make_disk("DB_Server", 200, key=2001),
            make_disk("DB_Server", 200, key=2002, sharing_mode="sharingMultiWriter"),
            make_disk("legacy-app", 100),
        ],
        networks=[
            NetworkAdapter("web-01", "VMXNET3", "VM Network", ipv4_address="10.0.1.10"),
            NetworkAdapter("DB_Server", "VMXNET3", "DB Network", ipv4_address="10.0.2.20"),
            NetworkAdapter("DB_Server", "E1000", "Backup Network"),
            NetworkAdapter("legacy-app", "E1000", "VM Network", ipv4_address="10.0.1.30"),
        ],
        cdroms=[CdromDevice("legacy-app", connected=True)],
        snapshots=[Snapshot("DB_Server", "before-patch", age_in_days=45)],
        tools=[
            ToolsStatus("web-01", "toolsOk"),
            ToolsStatus("DB_Server", "toolsOld"),
            ToolsStatus("legacy-app", "toolsNotInstalled"),
        ],
    )


CONFIG_ENV_VARS = (
    "PRICING_PROXY_URL", "PROFILES_PROXY_URL", "CATALOG_CACHE_DIR", "CATALOG_CACHE_TTL_HOURS",
    "HTTP_TIMEOUT_SECONDS", "SNAPSHOT_WARNING_DAYS", "SNAPSHOT_BLOCKER_DAYS",
    "HW_VERSION_MINIMUM", "HW_VERSION_RECOMMENDED", "DEFAULT_REGION", "DEFAULT_DISCOUNT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No config variables set and an empty working directory; restored afterwards."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path
