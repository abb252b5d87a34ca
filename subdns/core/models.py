"""Data structures for domains, protocol mappings, subdomains and inventory."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from subdns.config import (
    DEFAULT_PRIORITY,
    DEFAULT_TRANSPORT,
    DEFAULT_TTL,
    DEFAULT_WEIGHT,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ------------------------------------------------------------------
# Administrator-owned
# ------------------------------------------------------------------

@dataclass
class ProtocolMapping:
    """Binds a workload recipe to the DNS shape used for its subdomains.

    A mapping with a ``service`` produces SRV records, one without produces
    a CNAME.
    """

    recipe_id: str
    service: str | None = None
    transport: str = DEFAULT_TRANSPORT
    priority: int = DEFAULT_PRIORITY
    weight: int = DEFAULT_WEIGHT
    ttl: int = DEFAULT_TTL

    @classmethod
    def from_dict(cls, raw: dict) -> "ProtocolMapping":
        service = raw.get("service")
        if service is not None:
            service = str(service).strip() or None
        return cls(
            recipe_id=str(raw["recipe_id"]),
            service=service,
            transport=str(raw.get("transport") or DEFAULT_TRANSPORT).lower(),
            priority=int(raw.get("priority", DEFAULT_PRIORITY)),
            weight=int(raw.get("weight", DEFAULT_WEIGHT)),
            ttl=int(raw.get("ttl", DEFAULT_TTL)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Domain:
    id: str
    hostname: str
    is_active: bool = True
    zone_id: str | None = None
    mappings: list[ProtocolMapping] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, raw: dict) -> "Domain":
        return cls(
            id=raw["id"],
            hostname=raw["hostname"],
            is_active=bool(raw.get("is_active", True)),
            zone_id=raw.get("zone_id"),
            mappings=[ProtocolMapping.from_dict(m) for m in raw.get("mappings", [])],
            created_at=raw.get("created_at") or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mappings"] = [m.to_dict() for m in self.mappings]
        return data


# ------------------------------------------------------------------
# Tenant-owned
# ------------------------------------------------------------------

@dataclass
class Subdomain:
    """A provisioned entry.  Never mutated after creation."""

    id: str
    domain_id: str
    workload_id: str
    recipe_id: str
    label: str
    record_type: str  # "CNAME" | "SRV"
    port: int | None = None  # set iff record_type == "SRV"
    record_id: str | None = None  # None for legacy / externally created entries
    created_at: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, raw: dict) -> "Subdomain":
        port = raw.get("port")
        return cls(
            id=raw["id"],
            domain_id=raw["domain_id"],
            workload_id=raw["workload_id"],
            recipe_id=str(raw["recipe_id"]),
            label=raw["label"],
            record_type=raw["record_type"],
            port=int(port) if port is not None else None,
            record_id=raw.get("record_id"),
            created_at=raw.get("created_at") or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ------------------------------------------------------------------
# Collaborator inventory (read-only to the engines)
# ------------------------------------------------------------------

@dataclass
class Node:
    id: str
    public_ipv4: str | None = None


@dataclass
class Allocation:
    id: str
    ip: str
    port: int = 0
    ip_alias: str | None = None
    node_id: str | None = None


@dataclass
class Workload:
    id: str
    recipe_id: str
    allocation_id: str


@dataclass(frozen=True)
class Target:
    """Where a subdomain should point.  Derived, never stored."""

    address: str
    port: int = 0
