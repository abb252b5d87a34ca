"""Error taxonomy for subdomain provisioning and teardown.

Every error carries a stable ``code`` so callers (the CLI, or any HTTP layer
sitting on top) can map conditions to user-facing responses without parsing
messages.
"""


class SubdomainError(Exception):
    """Base class for all engine errors."""

    code = "SUBDOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


# ------------------------------------------------------------------
# Caller errors (no external call made)
# ------------------------------------------------------------------

class ValidationError(SubdomainError):
    code = "VALIDATION_FAILED"


class NotAvailable(SubdomainError):
    code = "DOMAIN_NOT_AVAILABLE"


class DomainNotFound(NotAvailable):
    code = "DOMAIN_NOT_FOUND"


class SubdomainNotFound(NotAvailable):
    code = "SUBDOMAIN_NOT_FOUND"


class DomainInUse(SubdomainError):
    code = "DOMAIN_HAS_SUBDOMAINS"


class QuotaExceeded(SubdomainError):
    code = "SUBDOMAIN_LIMIT_REACHED"


# ------------------------------------------------------------------
# Collisions
# ------------------------------------------------------------------

class LabelConflict(SubdomainError):
    code = "SUBDOMAIN_EXISTS"


class RecordExists(SubdomainError):
    code = "RECORD_EXISTS"


class AddressRecordExists(RecordExists):
    code = "ADDRESS_RECORD_EXISTS"


# ------------------------------------------------------------------
# Missing collaborator data
# ------------------------------------------------------------------

class DependencyMissing(SubdomainError):
    code = "DEPENDENCY_MISSING"


class WorkloadNotFound(DependencyMissing):
    code = "WORKLOAD_NOT_FOUND"


class AllocationNotFound(DependencyMissing):
    code = "PRIMARY_ALLOCATION_NOT_FOUND"


class PortMissing(DependencyMissing):
    code = "ALLOCATION_PORT_MISSING"


# ------------------------------------------------------------------
# Provider and persistence
# ------------------------------------------------------------------

class ProviderError(SubdomainError):
    code = "DNS_CREATE_FAILED"


class ProviderNotConfigured(ProviderError):
    code = "PROVIDER_NOT_CONFIGURED"


class ZoneResolutionFailed(ProviderError):
    code = "DNS_ZONE_ERROR"


class AddressRecordCreateFailed(ProviderError):
    code = "DNS_ADDRESS_CREATE_FAILED"


class PersistenceError(SubdomainError):
    """Local store write failed after the provider accepted the records.

    ``orphaned_records`` lists the provider record ids left behind.
    """

    code = "SUBDOMAIN_CREATE_FAILED"

    def __init__(self, message: str, orphaned_records: list[str] | None = None):
        super().__init__(message)
        self.orphaned_records = list(orphaned_records or [])
