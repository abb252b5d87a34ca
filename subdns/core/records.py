"""Record shapes — naming, validation and the CNAME/SRV decision.

Provisioning builds one shape per request and teardown reuses the same
naming rules to reconstruct record names for entries without a stored id.
"""

import ipaddress
import re
from dataclasses import dataclass

from subdns.config import (
    DEFAULT_TRANSPORT,
    LABEL_PATTERN,
    SERVICE_PATTERN,
    SUPPORTED_TRANSPORTS,
)
from subdns.core.models import ProtocolMapping, Target

_HOSTNAME_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def normalize_label(raw: str) -> str:
    return (raw or "").strip().lower()


def validate_label(label: str) -> str | None:
    """Return an error message, or None if *label* is a valid subdomain label."""
    if not label:
        return "Subdomain is required."
    if not LABEL_PATTERN.match(label):
        return "Subdomain may only contain letters, numbers, and hyphen (2-63 characters)."
    return None


def validate_hostname(hostname: str) -> str | None:
    hostname = (hostname or "").strip().rstrip(".")
    if not hostname:
        return "Domain must be a valid hostname."
    if len(hostname) > 253:
        return "Domain must be a valid hostname."
    if not all(_HOSTNAME_LABEL_RE.match(part) for part in hostname.split(".")):
        return "Domain must be a valid hostname."
    return None


def validate_mapping(mapping: ProtocolMapping) -> str | None:
    if not mapping.recipe_id:
        return "Each mapping must include a recipe id."
    if mapping.service is not None and not SERVICE_PATTERN.match(mapping.service):
        return "Protocol service may only contain letters, numbers, hyphen and underscore."
    if mapping.transport not in SUPPORTED_TRANSPORTS:
        return f"Protocol type must be one of {', '.join(SUPPORTED_TRANSPORTS)}."
    for name in ("priority", "weight", "ttl"):
        if getattr(mapping, name) < 0:
            return f"Mapping {name} must not be negative."
    return None


# ------------------------------------------------------------------
# Naming
# ------------------------------------------------------------------

def fqdn(label: str, hostname: str) -> str:
    return f"{label}.{hostname}"


def srv_record_name(service: str, transport: str, host: str) -> str:
    return f"{service}._{transport}.{host}"


def record_name(
    record_type: str,
    label: str,
    hostname: str,
    service: str | None = None,
    transport: str | None = None,
) -> str:
    """Name of the primary record for a subdomain of *record_type*."""
    host = fqdn(label, hostname)
    if record_type == "SRV":
        return srv_record_name(service or "", transport or DEFAULT_TRANSPORT, host)
    return host


def address_record_type(address: str) -> str | None:
    """``"A"``/``"AAAA"`` when *address* is a literal IP, else ``None``."""
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return None
    return "AAAA" if ip.version == 6 else "A"


def is_ip_literal(address: str | None) -> bool:
    return bool(address) and address_record_type(address) is not None


# ------------------------------------------------------------------
# Shapes
# ------------------------------------------------------------------

@dataclass(frozen=True)
class AliasShape:
    """A single CNAME at ``<label>.<domain>``."""

    label: str
    hostname: str
    target: str
    ttl: int

    record_type = "CNAME"

    @property
    def host(self) -> str:
        return fqdn(self.label, self.hostname)

    @property
    def record_name(self) -> str:
        return self.host


@dataclass(frozen=True)
class ServiceShape:
    """An SRV record, plus an address record when the target is a literal IP."""

    label: str
    hostname: str
    service: str
    transport: str
    address: str
    port: int
    priority: int
    weight: int
    ttl: int

    record_type = "SRV"

    @property
    def host(self) -> str:
        return fqdn(self.label, self.hostname)

    @property
    def record_name(self) -> str:
        return srv_record_name(self.service, self.transport, self.host)

    @property
    def address_record_type(self) -> str | None:
        return address_record_type(self.address)

    @property
    def srv_target(self) -> str:
        # An IP cannot be an SRV target; point at our own address record.
        return self.host if self.address_record_type else self.address


RecordShape = AliasShape | ServiceShape


def build_shape(hostname: str, label: str, mapping: ProtocolMapping, target: Target) -> RecordShape:
    """SRV when the mapping names a service, CNAME otherwise."""
    if mapping.service:
        return ServiceShape(
            label=label,
            hostname=hostname,
            service=mapping.service,
            transport=mapping.transport,
            address=target.address,
            port=target.port,
            priority=mapping.priority,
            weight=mapping.weight,
            ttl=mapping.ttl,
        )
    return AliasShape(label=label, hostname=hostname, target=target.address, ttl=mapping.ttl)
