"""Control query engine.

Selects the subset of a TaxonomyIndex that satisfies a profile. One engine
serves every standard: a query names values on tag axes (role, platform,
discipline, technology) and the engine applies only the axes the loaded
standard declares. The pipeline standard declares none, so it is filtered by
level, category, subcategory and free text only.

Rules:
- Every active predicate is ANDed; an omitted predicate passes everything
- max_level is inclusive and monotonic: an L3 query also returns L1 and L2 controls
- Output is always sorted by the (category, section, item) ordinal triple
- Nothing here mutates the index
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional, Type

from ..standards.models import (
    AXIS_APPLICATION_TYPES,
    AXIS_DISCIPLINES,
    AXIS_ROLES,
    AXIS_TECHNOLOGIES,
    Control,
    TaxonomyIndex,
)
from ..util.text import normalize_code, normalize_whitespace
from ..util.types import (
    ApplicationType,
    DeveloperDiscipline,
    Level,
    TechnologyTag,
    UserRole,
    parse_level,
    tag_value,
    try_parse_level,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[Control], bool]


@dataclass(frozen=True)
class ControlQuery:
    """A composable set of filters over a TaxonomyIndex.

    max_level: include controls whose minimum level is <= max_level
    levels: include controls applicable at any of these levels
    categories / subcategories: upper-case codes
    search: case-insensitive substring over id, text and mappings
    tags: axis name -> required tag value
    """
    max_level: Optional[Level] = None
    levels: Optional[FrozenSet[Level]] = None
    categories: Optional[FrozenSet[str]] = None
    subcategories: Optional[FrozenSet[str]] = None
    search: Optional[str] = None
    tags: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}), compare=False)


def _codes(values: Optional[Iterable[str]]) -> Optional[FrozenSet[str]]:
    """Upper-case a code list; None or empty means no filter."""
    if not values:
        return None
    if isinstance(values, str):
        values = values.split(",")
    codes = frozenset(code for code in (normalize_code(value) for value in values) if code)
    return codes or None


def _levels(values: Optional[Iterable]) -> Optional[FrozenSet[Level]]:
    """Parse level labels, dropping anything invalid; None or empty means no filter."""
    if not values:
        return None
    if isinstance(values, Level):
        return frozenset([values])
    if isinstance(values, (str, int)):
        values = str(values).split(",")
    levels = frozenset(level for level in (try_parse_level(value) for value in values) if level is not None)
    return levels or None


def _vocabulary_value(value, vocabulary: Type[Enum], axis: str) -> Optional[str]:
    """Return the tag value if it belongs to the vocabulary, else None (no filter)."""
    text = tag_value(value)
    if text is None:
        return None
    allowed = {member.value for member in vocabulary}
    if text.lower() not in allowed:
        logger.debug(f"Ignoring unrecognized {axis} filter {value!r}")
        return None
    return text.lower()


def build_predicates(index: TaxonomyIndex, query: ControlQuery) -> List[Predicate]:
    """Translate a query into the list of active predicates for this index."""
    predicates: List[Predicate] = []

    if query.max_level is not None:
        max_level = query.max_level
        predicates.append(lambda control: control.level <= max_level)

    if query.levels:
        levels = query.levels
        predicates.append(lambda control: not control.levels.isdisjoint(levels))

    if query.categories:
        categories = query.categories
        predicates.append(lambda control: control.category_id.upper() in categories)

    if query.subcategories:
        subcategories = query.subcategories
        # Controls filed directly under a category have no subcategory to exclude them by
        predicates.append(
            lambda control: not control.section_id or control.section_id.upper() in subcategories
        )

    for axis, value in query.tags.items():
        if value is None:
            continue
        if not index.supports(axis):
            logger.debug(f"{index.metadata.short_name} has no '{axis}' axis; ignoring filter {value!r}")
            continue
        predicates.append(lambda control, axis=axis, value=value: value in control.tags.get(axis, ()))

    search = normalize_whitespace(query.search).lower() if query.search else ""
    if search:
        predicates.append(lambda control: search in control.search_text())

    return predicates


def select(index: TaxonomyIndex, query: ControlQuery) -> List[Control]:
    """Return the controls matching every predicate, in canonical document order."""
    predicates = build_predicates(index, query)
    matches = [control for control in index.controls if all(p(control) for p in predicates)]
    return sorted(matches, key=lambda control: control.ordinal)


def query_controls(index: TaxonomyIndex,
                   level,
                   role,
                   application_type,
                   discipline=None,
                   technology=None,
                   categories: Optional[Iterable[str]] = None) -> List[Control]:
    """Build the checklist for one profile.

    Args:
        index: Loaded standard
        level: "L1" | "L2" | "L3" (or Level); controls up to this level are included
        role: UserRole or its value; must be in the control's recommended roles
        application_type: ApplicationType or its value; must be in the control's platforms
        discipline: Optional DeveloperDiscipline; unrecognized values mean no filter
        technology: Optional TechnologyTag; unrecognized values mean no filter
        categories: Optional category codes, case-insensitive

    Returns:
        Matching controls sorted by (category, section, item) ordinal
    """
    tags = {
        AXIS_ROLES: tag_value(role),
        AXIS_APPLICATION_TYPES: tag_value(application_type),
        AXIS_DISCIPLINES: _vocabulary_value(discipline, DeveloperDiscipline, AXIS_DISCIPLINES),
        AXIS_TECHNOLOGIES: _vocabulary_value(technology, TechnologyTag, AXIS_TECHNOLOGIES),
    }
    query = ControlQuery(
        max_level=parse_level(level),
        categories=_codes(categories),
        tags=MappingProxyType(tags),
    )
    return select(index, query)


def search_requirements(index: TaxonomyIndex,
                        search: Optional[str] = None,
                        levels: Optional[Iterable] = None,
                        categories: Optional[Iterable[str]] = None,
                        subcategories: Optional[Iterable[str]] = None) -> List[Control]:
    """Free-text search composed with level/category/subcategory filters.

    Blank search matches everything. A control matches the level filter when
    any of its applicable levels is selected.
    """
    query = ControlQuery(
        levels=_levels(levels),
        categories=_codes(categories),
        subcategories=_codes(subcategories),
        search=search,
    )
    return select(index, query)


# Vocabularies accepted at the boundary, used by the service and CLI for validation
VOCABULARIES = MappingProxyType({
    AXIS_ROLES: UserRole,
    AXIS_APPLICATION_TYPES: ApplicationType,
    AXIS_DISCIPLINES: DeveloperDiscipline,
    AXIS_TECHNOLOGIES: TechnologyTag,
})
