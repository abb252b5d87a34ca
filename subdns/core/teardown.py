"""Teardown engine — remove a subdomain's provider records and its local entry."""

import logging
from dataclasses import dataclass, field

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyClient
from subdns.core.errors import PersistenceError, ZoneResolutionFailed
from subdns.core.models import Allocation, Domain, ProtocolMapping, Subdomain
from subdns.core.records import fqdn, is_ip_literal, record_name
from subdns.core.zones import ensure_zone

logger = logging.getLogger(__name__)

_ADDRESS_TYPES = ("A", "AAAA")


@dataclass
class TeardownResult:
    """Outcome of tearing down one subdomain.

    ``deleted`` and ``missed`` hold ``"<TYPE> <name-or-id>"`` descriptions of
    provider deletions that succeeded or found/removed nothing.
    """

    subdomain_id: str
    deleted: list[str] = field(default_factory=list)
    missed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped_provider: bool = False
    local_removed: bool = False


class Teardown:
    """Deletes provider records first, then the local entry, always."""

    def __init__(self, client: BunnyClient) -> None:
        self._client = client

    def teardown(
        self,
        subdomain: Subdomain,
        domain: Domain,
        mapping: ProtocolMapping | None = None,
        allocation: Allocation | None = None,
    ) -> TeardownResult:
        result = TeardownResult(subdomain_id=subdomain.id)
        try:
            self.remove_records(subdomain, domain, mapping, allocation, result)
        except Exception as exc:
            logger.error("Provider cleanup for %s.%s failed: %s", subdomain.label, domain.hostname, exc)
            result.errors.append(str(exc))

        try:
            result.local_removed = state_manager.delete_subdomain(subdomain.id)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to delete subdomain entry {subdomain.id}") from exc
        if not result.local_removed:
            logger.warning("Local entry %s was already gone", subdomain.id)
        logger.info("Removed %s.%s (%s)", subdomain.label, domain.hostname, subdomain.record_type)
        return result

    def remove_records(
        self,
        subdomain: Subdomain,
        domain: Domain,
        mapping: ProtocolMapping | None = None,
        allocation: Allocation | None = None,
        result: TeardownResult | None = None,
    ) -> TeardownResult:
        """Delete the provider records for *subdomain* without touching local state.

        Deletion failures are logged and recorded in the result; nothing here
        raises for a provider-side miss.
        """
        result = result or TeardownResult(subdomain_id=subdomain.id)

        if not self._client.is_available:
            logger.warning("Skipping provider cleanup for %s.%s: provider not configured",
                           subdomain.label, domain.hostname)
            result.skipped_provider = True
            return result

        try:
            zone_id = ensure_zone(self._client, domain)
        except ZoneResolutionFailed as exc:
            logger.warning("Skipping provider cleanup for %s.%s: %s",
                           subdomain.label, domain.hostname, exc)
            result.skipped_provider = True
            return result

        if subdomain.record_id:
            desc = f"{subdomain.record_type} {subdomain.record_id}"
            ok = self._client.delete_record(zone_id, subdomain.record_id)
        else:
            name = record_name(
                subdomain.record_type,
                subdomain.label,
                domain.hostname,
                mapping.service if mapping else None,
                mapping.transport if mapping else None,
            )
            desc = f"{subdomain.record_type} {name}"
            ok = self._client.delete_record_by_name(zone_id, subdomain.record_type, name)
        (result.deleted if ok else result.missed).append(desc)

        if subdomain.record_type == "SRV" and _address_record_expected(allocation):
            host = fqdn(subdomain.label, domain.hostname)
            for rtype in _ADDRESS_TYPES:
                desc = f"{rtype} {host}"
                if self._client.delete_record_by_name(zone_id, rtype, host):
                    result.deleted.append(desc)
                else:
                    result.missed.append(desc)

        return result


def _address_record_expected(allocation: Allocation | None) -> bool:
    """An address record was plausibly created unless the alias is a hostname."""
    alias = allocation.ip_alias if allocation else None
    return not alias or is_ip_literal(alias)
