"""Load and save normalized inventory snapshots (JSON).

The RVTools workbook parser lives outside this package; it hands over the
sheets as plain records.  This module rebuilds the dataclasses from such a
snapshot, accepting snake_case or camelCase keys and tolerating missing
keys, ``null`` values and empty strings.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import MISSING, asdict, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .models import (
    CdromDevice,
    Cluster,
    Datastore,
    Disk,
    Host,
    Inventory,
    NetworkAdapter,
    PowerState,
    Snapshot,
    ToolsStatus,
    VirtualMachine,
    parse_hardware_version,
    snapshot_age_days,
)

logger = logging.getLogger(__name__)


class InventoryLoadError(Exception):
    """The snapshot file is missing, unreadable or not an inventory document."""


# Extra source keys per dataclass field (beyond snake_case and camelCase)
_ALIASES: dict[type, dict[str, tuple[str, ...]]] = {
    VirtualMachine: {
        "name": ("vmName", "VM"),
        "memory_mib": ("memory", "memoryMiB"),
        "provisioned_mib": ("provisionedMiB",),
        "in_use_mib": ("inUseMiB",),
        "guest_os": ("guestOS", "os"),
        "cbt_enabled": ("cbtEnabled", "changeTrackingEnabled"),
        "cpu_hot_add": ("cpuHotAddEnabled",),
        "memory_hot_add": ("memoryHotAddEnabled", "memHotAddEnabled"),
    },
    Disk: {
        "vm_name": ("vmName",),
        "label": ("diskLabel",),
        "capacity_mib": ("capacityMiB",),
    },
    NetworkAdapter: {"vm_name": ("vmName",), "network_name": ("portGroup",)},
    CdromDevice: {"vm_name": ("vmName",)},
    Host: {"memory_mib": ("memoryMiB", "memory"), "memory_usage_mib": ("memoryUsageMiB",),
           "cpu_mhz": ("cpuMHz",), "cpu_usage_mhz": ("cpuUsageMHz",)},
    Cluster: {"total_memory_mib": ("totalMemoryMiB",)},
    Datastore: {"capacity_mib": ("capacityMiB",), "in_use_mib": ("inUseMiB",), "free_mib": ("freeMiB",)},
    Snapshot: {"vm_name": ("vmName",), "name": ("snapshotName",), "size_total_mib": ("sizeTotalMiB",)},
    ToolsStatus: {"vm_name": ("vmName",), "status": ("toolsStatus",)},
}

_NUMERIC_VM_FIELDS = {"cpus", "memory_mib", "provisioned_mib", "in_use_mib"}

_TRUE = {"true", "yes", "1", "on", "enabled", "connected"}
_FALSE = {"false", "no", "0", "off", "disabled", "disconnected"}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _lookup(record: dict, field_name: str, cls: type) -> Any:
    keys = (field_name, _camel(field_name), *_ALIASES.get(cls, {}).get(field_name, ()))
    for key in keys:
        if key in record:
            value = record[key]
            if isinstance(value, str) and not value.strip():
                return None
            return value
    return None


def _to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


def _to_number(value: Any, kind: type) -> int | float | None:
    try:
        number = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    # counts and sizes only; NaN, infinities and negatives fall back to the default
    if not math.isfinite(number) or number < 0:
        return None
    return int(number) if kind is int else number


def _coerce(value: Any, type_name: str) -> Any:
    base = type_name.replace(" | None", "").strip()
    if base == "bool":
        return _to_bool(value)
    if base == "int":
        return _to_number(value, int)
    if base == "float":
        return _to_number(value, float)
    if base == "str":
        return str(value).strip()
    if base == "PowerState":
        try:
            return PowerState(str(value).strip())
        except ValueError:
            lowered = str(value).strip().lower()
            return {"poweredon": PowerState.POWERED_ON, "on": PowerState.POWERED_ON,
                    "suspended": PowerState.SUSPENDED}.get(lowered, PowerState.POWERED_OFF)
    return value


def _build(cls: type, record: dict) -> Any:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        raw = _lookup(record, f.name, cls)
        if raw is None:
            continue
        if cls is VirtualMachine and f.name == "hardware_version":
            value = parse_hardware_version(raw)
        else:
            value = _coerce(raw, str(f.type))
        if value is None and f.default is not MISSING and f.default is not None:
            if cls is VirtualMachine and f.name in _NUMERIC_VM_FIELDS:
                logger.warning("Ignoring invalid %s value %r for VM %s",
                               f.name, raw, _lookup(record, "name", cls))
            continue
        kwargs[f.name] = value
    return cls(**kwargs)


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _records(data: dict, *keys: str) -> list[dict]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, list):
            return [r for r in value if isinstance(r, dict)]
    return []


def inventory_from_dict(data: dict) -> Inventory:
    """Rebuild an Inventory from a snapshot document."""
    if not isinstance(data, dict):
        raise InventoryLoadError("inventory document must be a JSON object")

    vms: list[VirtualMachine] = []
    seen: set[str] = set()
    for record in _records(data, "vms", "vInfo"):
        vm = _build(VirtualMachine, record)
        if not vm.name:
            logger.warning("Skipping VM record without a name")
            continue
        if vm.name in seen:
            logger.warning("Duplicate VM name %s; keeping the first record", vm.name)
            continue
        seen.add(vm.name)
        vms.append(vm)

    export_date = _parse_datetime(_first_key(data, "export_date", "exportDate", "collectedAt"))
    snapshots: list[Snapshot] = []
    for record in _records(data, "snapshots", "vSnapshot"):
        snap = _build(Snapshot, record)
        if snap.age_in_days is None and export_date is not None:
            created = _parse_datetime(_first_key(record, "date_time", "dateTime", "created"))
            snap.age_in_days = snapshot_age_days(created, export_date)
        snapshots.append(snap)

    inventory = Inventory(
        source_name=str(_first_key(data, "source_name", "sourceName", "fileName") or ""),
        vms=vms,
        disks=[_build(Disk, r) for r in _records(data, "disks", "vDisk")],
        networks=[_build(NetworkAdapter, r) for r in _records(data, "networks", "vNetwork")],
        cdroms=[_build(CdromDevice, r) for r in _records(data, "cdroms", "vCD")],
        hosts=[_build(Host, r) for r in _records(data, "hosts", "vHost")],
        clusters=[_build(Cluster, r) for r in _records(data, "clusters", "vCluster")],
        datastores=[_build(Datastore, r) for r in _records(data, "datastores", "vDatastore")],
        snapshots=snapshots,
        tools=[_build(ToolsStatus, r) for r in _records(data, "tools", "vTools")],
    )
    logger.debug(
        "Loaded inventory %s: %d VM(s), %d disk(s), %d NIC(s)",
        inventory.source_name, len(inventory.vms), len(inventory.disks), len(inventory.networks),
    )
    return inventory


def _first_key(data: dict, *keys: str) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return None


def load_inventory(path: str | Path) -> Inventory:
    """Read a JSON inventory snapshot from disk."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InventoryLoadError(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InventoryLoadError(f"{path} is not valid JSON: {exc}") from exc
    inventory = inventory_from_dict(data)
    if not inventory.source_name:
        inventory.source_name = path.name
    return inventory


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def inventory_to_dict(inventory: Inventory) -> dict:
    data = _plain(asdict(inventory))
    data.pop("scope", None)
    return data


def save_inventory(inventory: Inventory, path: str | Path) -> Path:
    path = Path(path)
    path.write_text(json.dumps(inventory_to_dict(inventory), indent=2), encoding="utf-8")
    return path
