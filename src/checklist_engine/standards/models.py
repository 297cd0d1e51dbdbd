"""Data model of a flattened security standard.

A standard is loaded once into a TaxonomyIndex and never mutated afterwards.
Every container here is immutable (tuples, frozensets, mapping proxies).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ..util.types import Level

# Tag axes a control can be filtered on
AXIS_ROLES = "roles"
AXIS_APPLICATION_TYPES = "application_types"
AXIS_DISCIPLINES = "disciplines"
AXIS_TECHNOLOGIES = "technologies"
ALL_AXES = (AXIS_ROLES, AXIS_APPLICATION_TYPES, AXIS_DISCIPLINES, AXIS_TECHNOLOGIES)

Ordinal = Tuple[int, int, int]


@dataclass(frozen=True)
class Control:
    """One verifiable requirement of a standard.
    
    `level` is the minimum level the control is in scope for; `levels` is the
    full set of levels it applies to. For nested standards that is every
    level from `level` up to L3, for the pipeline standard it is whatever
    L1/L2/L3 columns were flagged.
    """
    id: str
    description: str
    level: Level
    levels: FrozenSet[Level]
    category_id: str
    category_name: str
    section_id: str
    section_name: str
    ordinal: Ordinal
    tags: Mapping[str, FrozenSet[str]] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )
    # External mappings, searched but never filtered on
    nist: str = ""
    owasp_risk: str = ""
    cwe: str = ""
    cwe_description: str = ""

    @property
    def roles(self) -> FrozenSet[str]:
        return self.tags.get(AXIS_ROLES, frozenset())

    @property
    def application_types(self) -> FrozenSet[str]:
        return self.tags.get(AXIS_APPLICATION_TYPES, frozenset())

    @property
    def disciplines(self) -> FrozenSet[str]:
        return self.tags.get(AXIS_DISCIPLINES, frozenset())

    @property
    def technologies(self) -> FrozenSet[str]:
        return self.tags.get(AXIS_TECHNOLOGIES, frozenset())

    def search_text(self) -> str:
        """Lower-cased haystack for free-text search."""
        return " ".join([
            self.id,
            self.description,
            self.category_name,
            self.section_name,
            self.nist,
            self.owasp_risk,
            self.cwe,
            self.cwe_description,
        ]).lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON/CSV output."""
        data = {
            'id': self.id,
            'shortcode': self.id,
            'description': self.description,
            'level': self.level.label,
            'levels': [level.label for level in sorted(self.levels)],
            'category': self.category_name,
            'categoryId': self.category_id,
            'section': self.section_name,
            'sectionId': self.section_id,
        }
        for axis, key in ((AXIS_ROLES, 'recommendedRoles'),
                          (AXIS_APPLICATION_TYPES, 'applicationTypes'),
                          (AXIS_DISCIPLINES, 'disciplines'),
                          (AXIS_TECHNOLOGIES, 'technologies')):
            if axis in self.tags:
                data[key] = sorted(self.tags[axis])
        data.update({
            'nistMapping': self.nist,
            'owaspRisk': self.owasp_risk,
            'cweMapping': self.cwe,
            'cweDescription': self.cwe_description,
        })
        return data


@dataclass(frozen=True)
class Category:
    """Top-level grouping (e.g. V2 Authentication)."""
    id: str
    name: str
    ordinal: int

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'ordinal': self.ordinal}


@dataclass(frozen=True)
class Subcategory:
    """Section one level below a category (e.g. V2.1 Password Security)."""
    id: str
    name: str
    category_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'categoryId': self.category_id}


@dataclass(frozen=True)
class StandardMetadata:
    """Descriptive information about a loaded standard."""
    name: str
    short_name: str
    version: str
    description: str = ""

    def to_dict(self, total: Optional[int] = None) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'shortName': self.short_name,
            'version': self.version,
            'description': self.description,
        }
        if total is not None:
            data['totalRequirements'] = total
        return data


@dataclass(frozen=True)
class TaxonomyIndex:
    """Immutable, queryable view of a flattened standard.
    
    `axes` lists the tag axes this standard classifies controls on. The query
    engine only filters on axes a standard declares.
    """
    metadata: StandardMetadata
    controls: Tuple[Control, ...]
    categories: Tuple[Category, ...]
    subcategories: Tuple[Subcategory, ...]
    by_id: Mapping[str, Control] = field(compare=False)
    axes: FrozenSet[str] = frozenset()

    def __len__(self) -> int:
        return len(self.controls)

    def get(self, control_id: str) -> Optional[Control]:
        """Look up a control by id. Returns None when absent."""
        return self.by_id.get(control_id)

    @property
    def category_ids(self) -> FrozenSet[str]:
        return frozenset(category.id for category in self.categories)

    @property
    def subcategory_ids(self) -> FrozenSet[str]:
        return frozenset(subcategory.id for subcategory in self.subcategories)

    def supports(self, axis: str) -> bool:
        return axis in self.axes
