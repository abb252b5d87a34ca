"""Bulk cleanup — reclaim every subdomain of a decommissioned workload."""

import logging

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyClient
from subdns.core.mapping_resolver import mapping_for
from subdns.core.teardown import Teardown

logger = logging.getLogger(__name__)


class WorkloadCleanup:
    """Best-effort batch driver over ``Teardown.remove_records``.

    Used while a workload is being destroyed, so it must never raise: provider
    outages are logged and local entries are dropped regardless.
    """

    def __init__(self, client: BunnyClient) -> None:
        self._teardown = Teardown(client)

    def cleanup_workload(self, workload_id: str) -> None:
        if not workload_id:
            return

        try:
            entries = state_manager.list_subdomains(workload_id=workload_id)
            if not entries:
                return
            workload = state_manager.get_workload(workload_id)
            allocation = (
                state_manager.get_allocation(workload.allocation_id) if workload else None
            )
        except (OSError, ValueError) as exc:
            logger.warning("Could not load subdomains for workload %s: %s", workload_id, exc)
            return

        for entry in entries:
            domain = state_manager.get_domain(entry.domain_id)
            if domain is None:
                logger.warning("Domain %s for subdomain %s is gone; skipping provider cleanup",
                               entry.domain_id, entry.id)
                continue
            mapping = mapping_for(domain, entry.recipe_id)
            try:
                result = self._teardown.remove_records(entry, domain, mapping, allocation)
            except Exception as exc:
                logger.error("Cleanup of %s.%s failed: %s", entry.label, domain.hostname, exc)
                continue
            if result.missed:
                logger.warning("Cleanup of %s.%s left: %s", entry.label, domain.hostname,
                               ", ".join(result.missed))

        try:
            if not state_manager.delete_subdomains_by_workload(workload_id):
                logger.warning("Failed to delete subdomain records for workload %s", workload_id)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to delete subdomain records for workload %s: %s", workload_id, exc)
