"""State manager — JSON-backed store for domains, subdomains, inventory and settings."""

import json
import os
import threading
from pathlib import Path
from typing import Any

from subdns.config import (
    DEFAULT_MAX_PER_WORKLOAD,
    DOMAINS_FILE,
    INVENTORY_FILE,
    LOGS_DIR,
    SETTINGS_FILE,
    STATE_DIR,
    SUBDOMAINS_FILE,
)
from subdns.core.errors import LabelConflict, QuotaExceeded
from subdns.core.models import Allocation, Domain, Node, Subdomain, Workload

# Guards every read-modify-write so uniqueness checks and inserts are atomic
# within the process.
_LOCK = threading.RLock()


# ------------------------------------------------------------------
# Initialisation
# ------------------------------------------------------------------

def init_state_dir() -> Path:
    """Create the ``~/.subdns/`` directory tree.  Idempotent.

    Returns the state directory path.
    """
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)

    if not DOMAINS_FILE.exists():
        _write_json(DOMAINS_FILE, [])
    if not SUBDOMAINS_FILE.exists():
        _write_json(SUBDOMAINS_FILE, [])
    if not INVENTORY_FILE.exists():
        _write_json(INVENTORY_FILE, {"nodes": {}, "allocations": {}, "workloads": {}})
    if not SETTINGS_FILE.exists():
        _write_json(SETTINGS_FILE, {"max_subdomains_per_workload": DEFAULT_MAX_PER_WORKLOAD})

    return STATE_DIR


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, data: Any) -> None:
    """Write via a temp file + rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    os.replace(tmp, path)


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------

def get_settings() -> dict[str, Any]:
    return _read_json(SETTINGS_FILE, {})


def set_setting(key: str, value: Any) -> None:
    with _LOCK:
        settings = get_settings()
        settings[key] = value
        _write_json(SETTINGS_FILE, settings)


def get_max_per_workload() -> int:
    """Configured per-workload subdomain quota, never less than 1."""
    raw = get_settings().get("max_subdomains_per_workload", DEFAULT_MAX_PER_WORKLOAD)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = DEFAULT_MAX_PER_WORKLOAD
    return max(value, 1)


# ------------------------------------------------------------------
# Domains
# ------------------------------------------------------------------

def _load_domains() -> list[Domain]:
    return [Domain.from_dict(d) for d in _read_json(DOMAINS_FILE, [])]


def _save_domains(domains: list[Domain]) -> None:
    _write_json(DOMAINS_FILE, [d.to_dict() for d in domains])


def list_domains(active_only: bool = False) -> list[Domain]:
    domains = _load_domains()
    if active_only:
        domains = [d for d in domains if d.is_active]
    return domains


def get_domain(domain_id: str) -> Domain | None:
    return next((d for d in _load_domains() if d.id == domain_id), None)


def get_domain_by_hostname(hostname: str) -> Domain | None:
    hostname = hostname.lower()
    return next((d for d in _load_domains() if d.hostname.lower() == hostname), None)


def save_domain(domain: Domain) -> Domain:
    """Insert or replace *domain* by id."""
    with _LOCK:
        domains = [d for d in _load_domains() if d.id != domain.id]
        domains.append(domain)
        _save_domains(domains)
    return domain


def update_zone_id(domain_id: str, zone_id: str | None) -> bool:
    """Set (or clear, with ``None``) the cached provider zone id."""
    with _LOCK:
        domains = _load_domains()
        for d in domains:
            if d.id == domain_id:
                d.zone_id = zone_id
                _save_domains(domains)
                return True
    return False


def delete_domain(domain_id: str) -> bool:
    with _LOCK:
        domains = _load_domains()
        remaining = [d for d in domains if d.id != domain_id]
        if len(remaining) == len(domains):
            return False
        _save_domains(remaining)
    return True


# ------------------------------------------------------------------
# Subdomains
# ------------------------------------------------------------------

def _load_subdomains() -> list[Subdomain]:
    return [Subdomain.from_dict(s) for s in _read_json(SUBDOMAINS_FILE, [])]


def _save_subdomains(entries: list[Subdomain]) -> None:
    _write_json(SUBDOMAINS_FILE, [s.to_dict() for s in entries])


def list_subdomains(workload_id: str | None = None, domain_id: str | None = None) -> list[Subdomain]:
    entries = _load_subdomains()
    if workload_id is not None:
        entries = [s for s in entries if s.workload_id == workload_id]
    if domain_id is not None:
        entries = [s for s in entries if s.domain_id == domain_id]
    return entries


def get_subdomain(subdomain_id: str) -> Subdomain | None:
    return next((s for s in _load_subdomains() if s.id == subdomain_id), None)


def get_subdomain_by_label(domain_id: str, label: str) -> Subdomain | None:
    return next(
        (s for s in _load_subdomains() if s.domain_id == domain_id and s.label == label),
        None,
    )


def count_by_workload(workload_id: str) -> int:
    return len(list_subdomains(workload_id=workload_id))


def count_by_domain(domain_id: str) -> int:
    return len(list_subdomains(domain_id=domain_id))


def create_subdomain(entry: Subdomain, max_per_workload: int | None = None) -> Subdomain:
    """Insert *entry*, enforcing (domain, label) uniqueness.

    Raises ``LabelConflict`` if another entry already holds the label, and
    ``QuotaExceeded`` if *max_per_workload* is given and the owning workload
    already holds that many entries.
    """
    with _LOCK:
        entries = _load_subdomains()
        if any(s.domain_id == entry.domain_id and s.label == entry.label for s in entries):
            raise LabelConflict(f"Subdomain '{entry.label}' is already in use for this domain")
        if max_per_workload is not None:
            held = sum(1 for s in entries if s.workload_id == entry.workload_id)
            if held >= max_per_workload:
                raise QuotaExceeded(
                    f"You have reached the maximum number of subdomains ({max_per_workload}) for this workload"
                )
        entries.append(entry)
        _save_subdomains(entries)
    return entry


def delete_subdomain(subdomain_id: str) -> bool:
    with _LOCK:
        entries = _load_subdomains()
        remaining = [s for s in entries if s.id != subdomain_id]
        if len(remaining) == len(entries):
            return False
        _save_subdomains(remaining)
    return True


def delete_subdomains_by_workload(workload_id: str) -> bool:
    """Remove every entry owned by *workload_id* in a single write."""
    with _LOCK:
        entries = _load_subdomains()
        _save_subdomains([s for s in entries if s.workload_id != workload_id])
    return True


# ------------------------------------------------------------------
# Inventory (nodes, allocations, workloads)
# ------------------------------------------------------------------

def _load_inventory() -> dict[str, dict]:
    data = _read_json(INVENTORY_FILE, {})
    for section in ("nodes", "allocations", "workloads"):
        data.setdefault(section, {})
    return data


def _put_inventory(section: str, item_id: str, item: dict) -> None:
    with _LOCK:
        data = _load_inventory()
        data[section][item_id] = item
        _write_json(INVENTORY_FILE, data)


def get_node(node_id: str) -> Node | None:
    raw = _load_inventory()["nodes"].get(node_id)
    return Node(**raw) if raw else None


def get_allocation(allocation_id: str) -> Allocation | None:
    raw = _load_inventory()["allocations"].get(allocation_id)
    return Allocation(**raw) if raw else None


def get_workload(workload_id: str) -> Workload | None:
    raw = _load_inventory()["workloads"].get(workload_id)
    return Workload(**raw) if raw else None


def save_node(node: Node) -> None:
    _put_inventory("nodes", node.id, vars(node).copy())


def save_allocation(allocation: Allocation) -> None:
    _put_inventory("allocations", allocation.id, vars(allocation).copy())


def save_workload(workload: Workload) -> None:
    _put_inventory("workloads", workload.id, vars(workload).copy())
