"""Mapping resolver — pick the protocol mapping a domain uses for a recipe."""

import logging
from collections.abc import Iterable

from subdns.core.models import Domain, ProtocolMapping

logger = logging.getLogger(__name__)


def find_mapping(mappings: Iterable[ProtocolMapping], recipe_id: str) -> ProtocolMapping | None:
    """Return the first mapping for *recipe_id*, or ``None``.

    ``None`` means the domain is not offered for this recipe; it is not an
    error.  Duplicates are a configuration mistake and only the first counts.
    """
    recipe_id = str(recipe_id)
    for mapping in mappings:
        if mapping.recipe_id == recipe_id:
            return mapping
    return None


def mapping_for(domain: Domain, recipe_id: str) -> ProtocolMapping | None:
    return find_mapping(domain.mappings, recipe_id)


def duplicate_recipes(mappings: Iterable[ProtocolMapping]) -> list[str]:
    """Recipe ids that appear more than once, in first-seen order."""
    seen: set[str] = set()
    dupes: list[str] = []
    for mapping in mappings:
        if mapping.recipe_id in seen and mapping.recipe_id not in dupes:
            dupes.append(mapping.recipe_id)
        seen.add(mapping.recipe_id)
    if dupes:
        logger.warning("Duplicate protocol mappings for recipe(s) %s; first match wins", ", ".join(dupes))
    return dupes
