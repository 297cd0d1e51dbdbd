"""Request-shaped facade over the engine.

Whatever transport sits in front of the engine (HTTP handlers, the CLI) talks
to these two services. They validate boundary input, call the pure engine
functions and shape the response payloads.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .query.engine import VOCABULARIES, query_controls, search_requirements
from .scoring.engine import ScoringEngine
from .standards.models import (
    AXIS_APPLICATION_TYPES,
    AXIS_DISCIPLINES,
    AXIS_ROLES,
    AXIS_TECHNOLOGIES,
    Control,
    TaxonomyIndex,
)
from .state.store import InMemoryRecordStore, QuestionnaireRecord, RecordStore
from .util.text import normalize_code
from .util.types import ALL_TECHNOLOGIES, parse_level, tag_value, try_parse_level

logger = logging.getLogger(__name__)

ListFilter = Union[str, Iterable[str], None]


def parse_level_filter(value: ListFilter) -> List[str]:
    """Parse "l1, L3" (or a list) into valid, de-duplicated level labels."""
    if not value:
        return []
    entries = value.split(",") if isinstance(value, str) else value
    labels: List[str] = []
    for entry in entries:
        level = try_parse_level(entry)
        if level is not None and level.label not in labels:
            labels.append(level.label)
    return labels


def parse_list_filter(value: ListFilter) -> List[str]:
    """Parse "v1,v3" (or a list) into upper-cased, de-duplicated codes."""
    if not value:
        return []
    entries = value.split(",") if isinstance(value, str) else value
    codes: List[str] = []
    for entry in entries:
        code = normalize_code(entry)
        if code and code not in codes:
            codes.append(code)
    return codes


def validate_tag(axis: str, value, required: bool = True) -> Optional[str]:
    """Check a role/platform/discipline/technology value against its vocabulary.

    Raises ValueError for unknown values; returns None for an omitted optional
    value or for technology "all".
    """
    text = tag_value(value)
    if text is None:
        if required:
            raise ValueError(f"Missing {axis} value")
        return None
    if axis == AXIS_TECHNOLOGIES and text.lower() == ALL_TECHNOLOGIES:
        return None
    vocabulary = VOCABULARIES[axis]
    allowed = [member.value for member in vocabulary]
    if text.lower() not in allowed:
        raise ValueError(f"Invalid {axis} value {value!r} (expected one of {', '.join(allowed)})")
    return text.lower()


def validate_answers(answers) -> Dict[str, bool]:
    """Check a submitted answer set: a mapping of question id to true/false.

    Raises ValueError for a non-mapping or for any value that is not a bool.
    """
    if answers is None:
        return {}
    if not isinstance(answers, Mapping):
        raise ValueError("Answers must be an object of question id to true/false")
    invalid = sorted(str(key) for key, value in answers.items() if not isinstance(value, bool))
    if invalid:
        raise ValueError(f"Answers must be true or false: {', '.join(invalid)}")
    return {str(key): value for key, value in answers.items()}


def _user_key(user_id) -> str:
    key = str(user_id).strip() if user_id is not None else ""
    if not key:
        raise ValueError("Missing user id")
    return key


class ChecklistService:
    """Checklist building and requirement search over one loaded standard."""

    def __init__(self, index: TaxonomyIndex):
        self.index = index

    def metadata(self, filters: Dict[str, Any], result_count: int) -> Dict[str, Any]:
        metadata = self.index.metadata.to_dict(total=len(self.index))
        metadata['totalControls'] = len(self.index)
        metadata['filters'] = filters
        metadata['resultCount'] = result_count
        return metadata

    def select_checklist(self, level, application_type, role,
                         discipline=None, technology=None,
                         categories: ListFilter = None) -> Tuple[List[Control], Dict[str, Any]]:
        """Validate a profile and return (matching controls, normalized filters)."""
        level_label = parse_level(level).label
        role_value = validate_tag(AXIS_ROLES, role)
        app_value = validate_tag(AXIS_APPLICATION_TYPES, application_type)
        discipline_value = validate_tag(AXIS_DISCIPLINES, discipline, required=False)
        technology_value = validate_tag(AXIS_TECHNOLOGIES, technology, required=False)
        category_codes = parse_list_filter(categories)

        controls = query_controls(
            self.index, level_label, role_value, app_value,
            discipline=discipline_value,
            technology=technology_value,
            categories=category_codes,
        )
        filters = {
            'level': level_label,
            'applicationType': app_value,
            'role': role_value,
            'discipline': discipline_value,
            'technology': technology_value,
            'categories': category_codes,
        }
        logger.info(
            f"{self.index.metadata.short_name} checklist {level_label}/{app_value}/{role_value}: "
            f"{len(controls)} of {len(self.index)} controls"
        )
        return controls, filters

    def build_checklist(self, level, application_type, role,
                        discipline=None, technology=None,
                        categories: ListFilter = None) -> Dict[str, Any]:
        """Checklist for one profile, with the filters echoed back in metadata."""
        controls, filters = self.select_checklist(
            level, application_type, role,
            discipline=discipline, technology=technology, categories=categories,
        )
        return {
            'metadata': self.metadata(filters, len(controls)),
            'tasks': [control.to_dict() for control in controls],
        }

    def search(self, search: Optional[str] = None, levels: ListFilter = None,
               categories: ListFilter = None, subcategories: ListFilter = None) -> Dict[str, Any]:
        """Free-text requirement search with the filters echoed back in metadata."""
        level_labels = parse_level_filter(levels)
        category_codes = parse_list_filter(categories)
        subcategory_codes = parse_list_filter(subcategories)

        requirements = search_requirements(
            self.index,
            search=search,
            levels=level_labels,
            categories=category_codes,
            subcategories=subcategory_codes,
        )
        filters = {
            'search': search if search else None,
            'levels': level_labels,
            'categories': category_codes,
            'subcategories': subcategory_codes,
        }
        return {
            'metadata': self.metadata(filters, len(requirements)),
            'requirements': [control.to_dict() for control in requirements],
        }

    def taxonomy(self) -> Dict[str, Any]:
        """Metadata plus the category and subcategory lists."""
        return {
            'metadata': self.index.metadata.to_dict(total=len(self.index)),
            'categories': [category.to_dict() for category in self.index.categories],
            'subcategories': [subcategory.to_dict() for subcategory in self.index.subcategories],
        }


class QuestionnaireService:
    """Questionnaire scoring plus persistence of the latest answers per user."""

    def __init__(self, engine: ScoringEngine, store: Optional[RecordStore] = None):
        self.engine = engine
        self.store = store if store is not None else InMemoryRecordStore()

    def questions(self) -> List[Dict[str, Any]]:
        return [question.to_dict() for question in self.engine.profile.questions]

    def submit(self, user_id: str, answers: Mapping[str, Any], role=None) -> QuestionnaireRecord:
        """Score the answers and upsert them as the user's current record."""
        user_id = _user_key(user_id)
        role_value = validate_tag(AXIS_ROLES, role, required=False)
        normalized = self.engine.normalize_answers(validate_answers(answers))
        recommendation = self.engine.score(normalized, role_value)
        record = QuestionnaireRecord(
            user_id=user_id,
            answers=normalized,
            recommendation=recommendation,
            role=role_value,
            questionnaire=self.engine.profile.name,
        )
        stored = self.store.save(record)
        logger.info(
            f"Saved {self.engine.profile.name} questionnaire for {stored.user_id}: "
            f"{recommendation.level.label} (score {recommendation.score})"
        )
        return stored

    def get(self, user_id: str) -> Optional[QuestionnaireRecord]:
        """The user's latest record, or None when they have not answered yet."""
        key = str(user_id).strip() if user_id is not None else ""
        return self.store.get(key) if key else None
