"""Zone lookup — lazily resolve and cache a domain's provider zone id."""

import logging

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyAPIError, BunnyClient
from subdns.core.errors import ZoneResolutionFailed
from subdns.core.locks import zone_locks
from subdns.core.models import Domain

logger = logging.getLogger(__name__)


def ensure_zone(client: BunnyClient, domain: Domain) -> str:
    """Return the domain's zone id, resolving and caching it on first use.

    Raises ``ZoneResolutionFailed`` when the provider has no matching zone or
    the lookup fails.
    """
    if domain.zone_id:
        return domain.zone_id

    with zone_locks.hold(domain.id):
        stored = state_manager.get_domain(domain.id)
        if stored is not None and stored.zone_id:
            domain.zone_id = stored.zone_id
            return domain.zone_id

        try:
            zone_id = client.resolve_zone(domain.hostname)
        except BunnyAPIError as exc:
            logger.error("Zone lookup for %s failed: %s", domain.hostname, exc)
            raise ZoneResolutionFailed("Failed to resolve DNS zone for domain") from exc
        if not zone_id:
            raise ZoneResolutionFailed(f"No DNS zone found for {domain.hostname}")

        state_manager.update_zone_id(domain.id, zone_id)
        domain.zone_id = zone_id
        logger.info("Resolved zone %s for %s", zone_id, domain.hostname)
        return zone_id
