"""Subdomain service — public create/delete/cleanup surface over the engines."""

import logging

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyClient
from subdns.core.cleanup import WorkloadCleanup
from subdns.core.domains import get_domain_or_raise
from subdns.core.errors import (
    DomainNotFound,
    NotAvailable,
    SubdomainNotFound,
    ValidationError,
    WorkloadNotFound,
)
from subdns.core.mapping_resolver import mapping_for
from subdns.core.models import Domain, ProtocolMapping, Subdomain, Workload
from subdns.core.provisioner import Provisioner
from subdns.core.records import normalize_label, validate_label, validate_mapping
from subdns.core.target_resolver import target_for_allocation
from subdns.core.teardown import Teardown, TeardownResult

logger = logging.getLogger(__name__)


class SubdomainService:
    """Looks up domains, mappings and inventory, then drives the engines.

    The provider client is injected; when omitted it is built from the stored
    access key for this service instance.
    """

    def __init__(self, client: BunnyClient | None = None) -> None:
        self._client = client if client is not None else BunnyClient.from_config()
        self._provisioner = Provisioner(self._client)
        self._teardown = Teardown(self._client)
        self._cleanup = WorkloadCleanup(self._client)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def available_domains(self, workload_id: str) -> list[tuple[Domain, ProtocolMapping]]:
        """Active domains offered to the workload's recipe, with their mapping."""
        workload = self._workload(workload_id)
        offered = []
        for domain in state_manager.list_domains(active_only=True):
            mapping = mapping_for(domain, workload.recipe_id)
            if mapping is not None:
                offered.append((domain, mapping))
        return offered

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, workload_id: str, domain_ref: str, label: str) -> Subdomain:
        """Provision ``<label>.<domain>`` for a workload.

        *domain_ref* may be a domain id or hostname.
        """
        label = normalize_label(label)
        error = validate_label(label)
        if error:
            raise ValidationError(error, code="INVALID_SUBDOMAIN")

        try:
            domain = get_domain_or_raise(domain_ref)
        except DomainNotFound:
            raise NotAvailable("Domain not found or inactive") from None
        if not domain.is_active:
            raise NotAvailable("Domain not found or inactive")

        workload = self._workload(workload_id)
        mapping = mapping_for(domain, workload.recipe_id)
        if mapping is None:
            raise NotAvailable("Domain is not available for this workload recipe",
                               code="DOMAIN_NOT_ALLOWED")
        error = validate_mapping(mapping)
        if error:
            raise ValidationError(error)

        target = target_for_allocation(workload.allocation_id)
        return self._provisioner.provision(domain, workload, label, mapping, target)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, subdomain_id: str, workload_id: str | None = None) -> TeardownResult:
        """Tear down one subdomain.  Local removal happens even if the provider fails."""
        entry = state_manager.get_subdomain(subdomain_id)
        if entry is None or (workload_id is not None and entry.workload_id != workload_id):
            raise SubdomainNotFound("Subdomain not found")

        domain = state_manager.get_domain(entry.domain_id)
        if domain is None:
            raise DomainNotFound("Domain not found")

        mapping = mapping_for(domain, entry.recipe_id)
        workload = state_manager.get_workload(entry.workload_id)
        allocation = state_manager.get_allocation(workload.allocation_id) if workload else None
        return self._teardown.teardown(entry, domain, mapping, allocation)

    def cleanup_workload(self, workload_id: str) -> None:
        """Drop every subdomain of a workload being destroyed.  Never raises."""
        try:
            self._cleanup.cleanup_workload(workload_id)
        except Exception as exc:
            logger.warning("Subdomain cleanup for workload %s failed: %s", workload_id, exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _workload(self, workload_id: str) -> Workload:
        workload = state_manager.get_workload(workload_id)
        if workload is None:
            raise WorkloadNotFound(f"Workload '{workload_id}' not found")
        return workload
