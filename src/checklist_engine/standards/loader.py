"""Taxonomy loader - flattens a nested security standard into a TaxonomyIndex.

A standard document is an ordered list of categories, each holding an ordered
list of sections, each holding an ordered list of requirement items:

    {"Requirements": [                               # categories
        {"Shortcode": "V2", "Ordinal": 2, "Name": "Authentication",
         "Items": [                                  # sections
            {"Shortcode": "V2.1", "Ordinal": 1, "Name": "Password Security",
             "Items": [                              # requirements
                {"Shortcode": "V2.1.1", "Ordinal": 1, "Description": "...",
                 "L1": {"Required": true}, "L2": {"Required": true}, ...}
             ]}
         ]}
    ]}

Lower-case spellings (categories/sections/items, id/name/ordinal, level) are
accepted too, so hand-written fixtures stay readable.

LOADING RULES:
- Depth-first traversal category -> section -> item, in source order
- Controls are ordered by their (category, section, item) ordinal triple
- Tags come from the category's entry in the classification table
- Unparseable levels degrade to L3 (most restrictive), never to an error
- Anything that is not the expected nested shape is fatal (TaxonomyLoadError)

The pipeline standard (SPVS) ships as a flat CSV; load_pipeline_taxonomy
groups its rows into the same nested shape and reuses the flattener.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..util.config import Config
from ..util.text import natural_key, normalize_code, normalize_whitespace
from ..util.types import Level, try_parse_level
from .classification import CLASSIFICATION_TABLE, Classification, classify
from .models import (
    ALL_AXES,
    Category,
    Control,
    StandardMetadata,
    Subcategory,
    TaxonomyIndex,
)

logger = logging.getLogger(__name__)

ASVS_METADATA = StandardMetadata(
    name="OWASP Application Security Verification Standard",
    short_name="ASVS",
    version="4.0.3",
    description="Security requirements for designing, developing and testing web applications and services.",
)

SPVS_METADATA = StandardMetadata(
    name="Secure Pipeline Verification Standard",
    short_name="SPVS",
    version="1.0.0",
    description="Security requirements for CI/CD pipelines across plan, develop, integrate, release and operate.",
)

# Column order of the SPVS CSV export
SPVS_COLUMNS = (
    'category_id', 'category_name', 'subcategory_id', 'subcategory_name',
    'requirement_id', 'description', 'l1', 'l2', 'l3',
    'nist', 'owasp_risk', 'cwe', 'cwe_description',
)

_CATEGORY_KEYS = ('Requirements', 'categories')
_CHILD_KEYS = ('Items', 'items', 'sections', 'requirements')
_CODE_KEYS = ('Shortcode', 'id', 'code')
_NAME_KEYS = ('Name', 'name', 'ShortName')
_ORDINAL_KEYS = ('Ordinal', 'ordinal')
_DESCRIPTION_KEYS = ('Description', 'description')
_LEVEL_KEYS = ('level', 'Level')
_LEVELS_KEYS = ('levels', 'Levels')


class TaxonomyLoadError(ValueError):
    """The standard document could not be flattened.

    Always fatal: the process must not start with a partial index.
    """


def _field(node: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    """Return the first present key of node."""
    for key in keys:
        if key in node:
            return node[key]
    return default


def _children(node: Mapping[str, Any], path: str) -> List[Any]:
    children = _field(node, _CHILD_KEYS)
    if children is None:
        raise TaxonomyLoadError(f"{path}: missing child list (expected one of {', '.join(_CHILD_KEYS)})")
    if not isinstance(children, list):
        raise TaxonomyLoadError(f"{path}: child list must be a list, got {type(children).__name__}")
    return children


def _ordinal(node: Mapping[str, Any], position: int, path: str) -> int:
    """Explicit ordinal when it is an integer, otherwise the 1-based source position."""
    raw = _field(node, _ORDINAL_KEYS)
    if raw is None or isinstance(raw, bool):
        return position
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning(f"{path}: unparseable ordinal {raw!r}, using source position {position}")
        return position


def _mapping_text(value: Any) -> str:
    """Render CWE/NIST style mappings (scalar or list) as text."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(normalize_whitespace(v) for v in value if normalize_whitespace(v))
    return normalize_whitespace(value)


def _is_required(marker: Any) -> bool:
    if isinstance(marker, Mapping):
        marker = marker.get('Required', marker.get('required'))
    if isinstance(marker, str):
        return marker.strip().upper() in ('X', 'TRUE', 'YES', '1')
    return bool(marker)


def _item_levels(item: Mapping[str, Any], path: str) -> Tuple[Level, frozenset]:
    """Resolve (minimum level, applicable levels) for a requirement item.

    Precedence: explicit `levels` list, then a small-integer `level` field,
    then ASVS style L1/L2/L3 Required markers. Anything unparseable falls
    back to L3.
    """
    explicit = _field(item, _LEVELS_KEYS)
    if explicit is not None:
        parsed = [try_parse_level(value) for value in (explicit if isinstance(explicit, list) else [explicit])]
        levels = frozenset(level for level in parsed if level is not None)
        if levels:
            return min(levels), levels
        logger.warning(f"{path}: unparseable levels {explicit!r}, defaulting to L3")
        return Level.highest(), frozenset([Level.highest()])

    raw = _field(item, _LEVEL_KEYS)
    if raw is None:
        flagged = [level for level in Level if _is_required(item.get(level.label))]
        if flagged:
            minimum = min(flagged)
            return minimum, frozenset(Level(n) for n in range(minimum, Level.highest() + 1))
        logger.warning(f"{path}: no level marker, defaulting to L3")
        return Level.highest(), frozenset([Level.highest()])

    level = try_parse_level(raw)
    if level is None:
        logger.warning(f"{path}: unparseable level {raw!r}, defaulting to L3")
        level = Level.highest()
    return level, frozenset(Level(n) for n in range(level, Level.highest() + 1))


class _NameRegistry:
    """First-seen-wins naming for category and section codes.

    A code that reappears with a different name keeps its first name; the
    conflict is logged, or raised in strict mode.
    """

    def __init__(self, kind: str, strict: bool):
        self.kind = kind
        self.strict = strict
        self.names: Dict[str, str] = {}
        self.conflicts: List[Tuple[str, str, str]] = []

    def resolve(self, code: str, name: str) -> str:
        if not code:
            return name
        existing = self.names.get(code)
        if existing is None:
            if name:
                self.names[code] = name
            return name
        if name and name != existing:
            self.conflicts.append((code, existing, name))
            message = f"{self.kind} {code} is named both {existing!r} and {name!r}"
            if self.strict:
                raise TaxonomyLoadError(message)
            logger.warning(f"{message}; keeping {existing!r}")
        return existing


def load_taxonomy(document: Any,
                  metadata: Optional[StandardMetadata] = None,
                  classification: Optional[Mapping[str, Classification]] = CLASSIFICATION_TABLE,
                  strict_names: bool = False) -> TaxonomyIndex:
    """Flatten a nested standard document into an immutable TaxonomyIndex.

    Args:
        document: Parsed JSON (dict with a Requirements/categories list, or the list itself)
        metadata: Standard metadata; read from the document's Name/ShortName/Version if omitted
        classification: Category tag table, or None for standards without tag axes
        strict_names: Reject (instead of log-and-keep-first) conflicting category/section names

    Raises:
        TaxonomyLoadError: document is not the expected nested shape, or ids/ordinals collide
    """
    if isinstance(document, Mapping):
        categories = _field(document, _CATEGORY_KEYS)
        if metadata is None:
            metadata = StandardMetadata(
                name=normalize_whitespace(document.get('Name', ASVS_METADATA.name)),
                short_name=normalize_whitespace(document.get('ShortName', ASVS_METADATA.short_name)),
                version=normalize_whitespace(document.get('Version', ASVS_METADATA.version)),
                description=normalize_whitespace(document.get('Description', ASVS_METADATA.description)),
            )
    elif isinstance(document, list):
        categories = document
    else:
        raise TaxonomyLoadError(f"Standard document must be an object or list, got {type(document).__name__}")

    if not isinstance(categories, list):
        raise TaxonomyLoadError(f"Standard document has no category list (expected one of {', '.join(_CATEGORY_KEYS)})")
    if metadata is None:
        metadata = ASVS_METADATA

    category_names = _NameRegistry("Category", strict_names)
    section_names = _NameRegistry("Section", strict_names)
    categories_by_id: Dict[str, Category] = {}
    subcategories_by_id: Dict[str, Subcategory] = {}
    controls: List[Control] = []
    by_id: Dict[str, Control] = {}
    seen_ordinals: Dict[Tuple[int, int, int], str] = {}

    for cat_pos, category_node in enumerate(categories, start=1):
        cat_path = f"categories[{cat_pos - 1}]"
        if not isinstance(category_node, Mapping):
            raise TaxonomyLoadError(f"{cat_path}: category must be an object")
        category_id = normalize_code(_field(category_node, _CODE_KEYS, ""))
        if not category_id:
            raise TaxonomyLoadError(f"{cat_path}: category has no code")
        category_ordinal = _ordinal(category_node, cat_pos, cat_path)
        category_name = category_names.resolve(
            category_id, normalize_whitespace(_field(category_node, _NAME_KEYS, ""))
        )
        if category_id not in categories_by_id:
            categories_by_id[category_id] = Category(id=category_id, name=category_name, ordinal=category_ordinal)
        else:
            category_ordinal = categories_by_id[category_id].ordinal

        tags = classify(category_id, classification).as_tags() if classification is not None else MappingProxyType({})

        for sec_pos, section_node in enumerate(_children(category_node, cat_path), start=1):
            sec_path = f"{cat_path}.sections[{sec_pos - 1}]"
            if not isinstance(section_node, Mapping):
                raise TaxonomyLoadError(f"{sec_path}: section must be an object")
            section_id = normalize_code(_field(section_node, _CODE_KEYS, ""))
            section_ordinal = _ordinal(section_node, sec_pos, sec_path)
            section_name = section_names.resolve(
                section_id, normalize_whitespace(_field(section_node, _NAME_KEYS, ""))
            )
            if section_id and section_id not in subcategories_by_id:
                subcategories_by_id[section_id] = Subcategory(
                    id=section_id, name=section_name, category_id=category_id
                )

            for item_pos, item in enumerate(_children(section_node, sec_path), start=1):
                item_path = f"{sec_path}.items[{item_pos - 1}]"
                if not isinstance(item, Mapping):
                    raise TaxonomyLoadError(f"{item_path}: requirement must be an object")
                control_id = normalize_whitespace(_field(item, _CODE_KEYS, ""))
                if not control_id:
                    raise TaxonomyLoadError(f"{item_path}: requirement has no id")
                if control_id in by_id:
                    raise TaxonomyLoadError(f"{item_path}: duplicate requirement id {control_id}")

                ordinal = (category_ordinal, section_ordinal, _ordinal(item, item_pos, item_path))
                if ordinal in seen_ordinals:
                    raise TaxonomyLoadError(
                        f"{item_path}: ordinal {ordinal} of {control_id} collides with {seen_ordinals[ordinal]}"
                    )
                seen_ordinals[ordinal] = control_id

                level, levels = _item_levels(item, f"{item_path} ({control_id})")
                control = Control(
                    id=control_id,
                    description=normalize_whitespace(_field(item, _DESCRIPTION_KEYS, "")),
                    level=level,
                    levels=levels,
                    category_id=category_id,
                    category_name=category_name,
                    section_id=section_id,
                    section_name=section_name,
                    ordinal=ordinal,
                    tags=tags,
                    nist=_mapping_text(_field(item, ('NIST', 'nist', 'nistMapping'))),
                    owasp_risk=_mapping_text(_field(item, ('OWASP', 'owaspRisk', 'owasp_risk'))),
                    cwe=_mapping_text(_field(item, ('CWE', 'cwe', 'cweMapping'))),
                    cwe_description=_mapping_text(_field(item, ('CWEDescription', 'cweDescription', 'cwe_description'))),
                )
                controls.append(control)
                by_id[control_id] = control

    controls.sort(key=lambda control: control.ordinal)
    index = TaxonomyIndex(
        metadata=metadata,
        controls=tuple(controls),
        categories=tuple(sorted(categories_by_id.values(), key=lambda c: (c.ordinal, natural_key(c.id)))),
        subcategories=tuple(sorted(subcategories_by_id.values(), key=lambda s: natural_key(s.id))),
        by_id=MappingProxyType(by_id),
        axes=frozenset(ALL_AXES) if classification is not None else frozenset(),
    )

    conflicts = len(category_names.conflicts) + len(section_names.conflicts)
    logger.info(
        f"Loaded {metadata.short_name} {metadata.version}: {len(index.controls)} controls, "
        f"{len(index.categories)} categories, {len(index.subcategories)} subcategories"
        + (f", {conflicts} naming conflicts" if conflicts else "")
    )
    return index


def load_taxonomy_file(path: Path,
                       metadata: Optional[StandardMetadata] = None,
                       classification: Optional[Mapping[str, Classification]] = CLASSIFICATION_TABLE,
                       strict_names: bool = False) -> TaxonomyIndex:
    """Read a nested JSON standard from disk and flatten it."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise TaxonomyLoadError(f"Cannot read standard document {path}: {e}") from e
    return load_taxonomy(document, metadata=metadata, classification=classification, strict_names=strict_names)


def _pipeline_document(frame: pd.DataFrame, strict_names: bool = False) -> List[Dict[str, Any]]:
    """Group flat SPVS rows into the nested category/section/item shape."""
    category_names = _NameRegistry("Category", strict_names)
    section_names = _NameRegistry("Subcategory", strict_names)
    categories: Dict[str, Dict[str, Any]] = {}
    sections: Dict[Tuple[str, str], Dict[str, Any]] = {}

    for row in frame.itertuples(index=False):
        category_id = normalize_code(row.category_id)
        requirement_id = normalize_whitespace(row.requirement_id)
        if not category_id or category_id == "-" or not requirement_id:
            continue

        category_name = category_names.resolve(category_id, normalize_whitespace(row.category_name))
        category = categories.get(category_id)
        if category is None:
            category = {'id': category_id, 'name': category_name, 'sections': []}
            categories[category_id] = category
        elif not category['name']:
            category['name'] = category_name

        section_id = normalize_code(row.subcategory_id)
        section_name = section_names.resolve(section_id, normalize_whitespace(row.subcategory_name))
        section = sections.get((category_id, section_id))
        if section is None:
            section = {'id': section_id, 'name': section_name, 'items': []}
            sections[(category_id, section_id)] = section
            category['sections'].append(section)
        elif not section['name']:
            section['name'] = section_name

        flags = [level.label for level, flag in zip(Level, (row.l1, row.l2, row.l3))
                 if normalize_code(flag) == "X"]
        section['items'].append({
            'id': requirement_id,
            'description': row.description,
            # A row with no level flag applies everywhere
            'levels': flags or [level.label for level in Level],
            'nist': row.nist,
            'owasp_risk': row.owasp_risk,
            'cwe': row.cwe,
            'cwe_description': row.cwe_description,
        })

    return list(categories.values())


def load_pipeline_taxonomy(path: Path,
                           metadata: StandardMetadata = SPVS_METADATA,
                           strict_names: bool = False) -> TaxonomyIndex:
    """Load the SPVS CSV export into a TaxonomyIndex.

    Columns are positional (see SPVS_COLUMNS); the header row is skipped.
    Rows without a category (or with "-") or without a requirement id are
    section dividers and are ignored. The pipeline standard has no tag axes.
    """
    path = Path(path)
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, header=0)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise TaxonomyLoadError(f"Cannot read pipeline standard {path}: {e}") from e

    if frame.shape[1] < 6:
        raise TaxonomyLoadError(
            f"Pipeline standard {path} has {frame.shape[1]} columns, expected at least 6"
        )
    frame = frame.iloc[:, :len(SPVS_COLUMNS)].copy()
    frame.columns = SPVS_COLUMNS[:frame.shape[1]]
    for column in SPVS_COLUMNS[frame.shape[1]:]:
        frame[column] = ""
    frame = frame.apply(lambda column: column.str.strip())

    return load_taxonomy(_pipeline_document(frame, strict_names), metadata=metadata,
                         classification=None, strict_names=strict_names)


def load_standard(name: str, config: Optional[Config] = None) -> TaxonomyIndex:
    """Load one of the configured standards by short name ("asvs" or "spvs")."""
    config = config or Config()
    key = name.strip().lower()
    if key == "asvs":
        return load_taxonomy_file(config.asvs_data_path, strict_names=config.strict_category_names)
    if key == "spvs":
        return load_pipeline_taxonomy(config.spvs_data_path, strict_names=config.strict_category_names)
    raise ValueError(f"Unknown standard: {name!r} (expected 'asvs' or 'spvs')")
