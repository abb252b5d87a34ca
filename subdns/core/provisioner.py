"""Provisioning engine — create the DNS records for a subdomain, then persist it."""

import logging
import uuid

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyAPIError, BunnyClient
from subdns.core.errors import (
    AddressRecordCreateFailed,
    AddressRecordExists,
    LabelConflict,
    PersistenceError,
    PortMissing,
    ProviderError,
    ProviderNotConfigured,
    QuotaExceeded,
    RecordExists,
)
from subdns.core.locks import label_locks, workload_locks
from subdns.core.models import Domain, ProtocolMapping, Subdomain, Target, Workload
from subdns.core.records import AliasShape, RecordShape, ServiceShape, build_shape
from subdns.core.zones import ensure_zone

logger = logging.getLogger(__name__)


class Provisioner:
    """Creates provider records for one subdomain per call.

    Calls run sequentially on the caller's thread.  A provider failure aborts
    the remaining steps; records created earlier in the same call are left in
    place and logged as orphans.
    """

    def __init__(self, client: BunnyClient) -> None:
        self._client = client

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def provision(
        self,
        domain: Domain,
        workload: Workload,
        label: str,
        mapping: ProtocolMapping,
        target: Target,
    ) -> Subdomain:
        """Provision ``<label>.<domain>`` for *workload* and return the stored entry."""
        # Workload before label, always in this order.
        with workload_locks.hold(workload.id), label_locks.hold((domain.id, label)):
            self._check_quota(workload.id)
            if state_manager.get_subdomain_by_label(domain.id, label) is not None:
                raise LabelConflict("This subdomain is already in use for the selected domain")
            if not self._client.is_available:
                raise ProviderNotConfigured("Bunny DNS integration is not configured")

            zone_id = ensure_zone(self._client, domain)
            shape = build_shape(domain.hostname, label, mapping, target)

            self._preflight(zone_id, shape.record_type, shape.record_name, RecordExists,
                            "A DNS record already exists for this subdomain")

            created: list[str] = []
            if isinstance(shape, AliasShape):
                record_id = self._create_alias(zone_id, shape)
            else:
                record_id = self._create_service(zone_id, shape, created)
            created.append(record_id)

            return self._persist(domain, workload, shape, record_id, created)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _check_quota(self, workload_id: str) -> None:
        max_allowed = state_manager.get_max_per_workload()
        if state_manager.count_by_workload(workload_id) >= max_allowed:
            raise QuotaExceeded(
                f"You have reached the maximum number of subdomains ({max_allowed}) for this workload"
            )

    def _preflight(
        self,
        zone_id: str,
        record_type: str,
        name: str,
        error_cls: type[RecordExists],
        message: str,
    ) -> None:
        try:
            absent = self._client.record_absent(zone_id, record_type, name)
        except BunnyAPIError as exc:
            raise ProviderError(f"Could not check for existing {record_type} record {name}: {exc}") from exc
        if not absent:
            raise error_cls(message)

    def _create_alias(self, zone_id: str, shape: AliasShape) -> str:
        try:
            return self._client.create_cname_record(zone_id, shape.host, shape.target, shape.ttl)
        except BunnyAPIError as exc:
            logger.error("CNAME creation for %s failed: %s", shape.host, exc)
            raise ProviderError("Failed to create DNS record") from exc

    def _create_service(self, zone_id: str, shape: ServiceShape, created: list[str]) -> str:
        if shape.port <= 0:
            raise PortMissing(
                "Workload primary allocation is missing port information required for SRV records"
            )

        address_type = shape.address_record_type
        if address_type:
            self._preflight(zone_id, address_type, shape.host, AddressRecordExists,
                            "An address record already exists for this subdomain")
            try:
                address_id = self._client.create_address_record(
                    zone_id, shape.host, shape.address, address_type, shape.ttl,
                )
            except BunnyAPIError as exc:
                logger.error("%s record creation for %s failed: %s", address_type, shape.host, exc)
                raise AddressRecordCreateFailed("Failed to create address record for SRV target") from exc
            created.append(address_id)

        try:
            return self._client.create_srv_record(
                zone_id,
                shape.service,
                shape.transport,
                shape.label,
                shape.hostname,
                shape.srv_target,
                shape.port,
                shape.priority,
                shape.weight,
                shape.ttl,
            )
        except BunnyAPIError as exc:
            logger.error("SRV creation for %s failed: %s", shape.record_name, exc)
            if created:
                logger.error(
                    "Orphaned address record(s) %s left at %s", ", ".join(created), shape.host,
                )
            raise ProviderError("Failed to create DNS record") from exc

    def _persist(
        self,
        domain: Domain,
        workload: Workload,
        shape: RecordShape,
        record_id: str,
        created: list[str],
    ) -> Subdomain:
        entry = Subdomain(
            id=uuid.uuid4().hex,
            domain_id=domain.id,
            workload_id=workload.id,
            recipe_id=workload.recipe_id,
            label=shape.label,
            record_type=shape.record_type,
            port=shape.port if isinstance(shape, ServiceShape) else None,
            record_id=record_id,
        )
        try:
            state_manager.create_subdomain(
                entry, max_per_workload=state_manager.get_max_per_workload(),
            )
        except (LabelConflict, QuotaExceeded) as exc:
            logger.error(
                "Could not store %s.%s (%s); orphaned record(s) %s",
                shape.label, domain.hostname, exc.code, ", ".join(created),
            )
            raise
        except (OSError, ValueError) as exc:
            logger.error(
                "Failed to persist %s.%s; orphaned record(s) %s: %s",
                shape.label, domain.hostname, ", ".join(created), exc,
            )
            raise PersistenceError("Failed to persist subdomain entry", orphaned_records=created) from exc

        logger.info("Provisioned %s %s (record %s)", shape.record_type, shape.record_name, record_id)
        return entry
