"""Domain administration — register parent domains and their recipe mappings."""

import logging
import uuid

from subdns.core import state_manager
from subdns.core.errors import DomainInUse, DomainNotFound, ValidationError
from subdns.core.mapping_resolver import duplicate_recipes
from subdns.core.models import Domain, ProtocolMapping
from subdns.core.records import validate_hostname, validate_mapping

logger = logging.getLogger(__name__)


def _validate(hostname: str | None, mappings: list[ProtocolMapping] | None, *, creating: bool) -> None:
    if creating or hostname is not None:
        error = validate_hostname(hostname or "")
        if error:
            raise ValidationError(error)

    if mappings is None:
        if creating:
            raise ValidationError("At least one recipe mapping is required.")
        return
    if creating and not mappings:
        raise ValidationError("At least one recipe mapping is required.")
    for mapping in mappings:
        error = validate_mapping(mapping)
        if error:
            raise ValidationError(error)
    duplicate_recipes(mappings)


def add_domain(hostname: str, mappings: list[ProtocolMapping], is_active: bool = True) -> Domain:
    hostname = (hostname or "").strip().rstrip(".").lower()
    _validate(hostname, mappings, creating=True)
    if state_manager.get_domain_by_hostname(hostname) is not None:
        raise ValidationError(f"Domain '{hostname}' is already registered.")

    domain = Domain(
        id=uuid.uuid4().hex,
        hostname=hostname,
        is_active=is_active,
        mappings=list(mappings),
    )
    state_manager.save_domain(domain)
    logger.info("Registered domain %s (%d mapping(s))", hostname, len(mappings))
    return domain


def update_domain(
    domain_id: str,
    *,
    hostname: str | None = None,
    is_active: bool | None = None,
    mappings: list[ProtocolMapping] | None = None,
) -> Domain:
    """Update a domain in place.  Omitted fields (``None``) are kept."""
    domain = get_domain_or_raise(domain_id)
    if hostname is not None:
        hostname = hostname.strip().rstrip(".").lower()
    _validate(hostname, mappings, creating=False)

    if hostname is not None and hostname != domain.hostname:
        other = state_manager.get_domain_by_hostname(hostname)
        if other is not None and other.id != domain.id:
            raise ValidationError(f"Domain '{hostname}' is already registered.")
        domain.hostname = hostname
        # A different hostname lives in a different zone.
        domain.zone_id = None
    if is_active is not None:
        domain.is_active = is_active
    if mappings is not None:
        domain.mappings = list(mappings)

    state_manager.save_domain(domain)
    return domain


def remove_domain(domain_id: str) -> None:
    domain = get_domain_or_raise(domain_id)
    if state_manager.count_by_domain(domain.id) > 0:
        raise DomainInUse("Domain still has active subdomains")
    state_manager.delete_domain(domain.id)
    logger.info("Removed domain %s", domain.hostname)


def invalidate_zone(domain_id: str) -> Domain:
    """Forget the cached zone id so the next provisioning call resolves it again."""
    domain = get_domain_or_raise(domain_id)
    state_manager.update_zone_id(domain.id, None)
    domain.zone_id = None
    return domain


def get_domain_or_raise(domain_id_or_hostname: str) -> Domain:
    """Look a domain up by id, falling back to hostname."""
    domain = state_manager.get_domain(domain_id_or_hostname)
    if domain is None:
        domain = state_manager.get_domain_by_hostname(domain_id_or_hostname)
    if domain is None:
        raise DomainNotFound("Domain not found")
    return domain
