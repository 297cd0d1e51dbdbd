"""Questionnaire scoring engine.

Converts yes/no answers into a recommended checklist profile.

Clear rules:
- Score = sum of triggered weight rules; thresholds map it to L1/L2/L3
- Categories are a set union over triggered category rules (no double counting)
- Notes follow the profile's note table order, one per triggered rule
- Platform/discipline/technology come from ordered decision lists, first match wins
- Recommended codes are upper-cased, dropped when the loaded standard does not
  define them, and sorted numeric-aware ("V2" before "V10")

Scoring is a pure function of (answers, role): the same input always yields
an identical Recommendation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from ..standards.models import TaxonomyIndex
from ..util.text import natural_sorted, normalize_code
from ..util.types import Level, tag_value
from .asvs import ASVS_QUESTIONNAIRE
from .pipeline import PIPELINE_QUESTIONNAIRE
from .questionnaire import Decision, QuestionnaireProfile

logger = logging.getLogger(__name__)

PROFILES: Mapping[str, QuestionnaireProfile] = {
    ASVS_QUESTIONNAIRE.name: ASVS_QUESTIONNAIRE,
    PIPELINE_QUESTIONNAIRE.name: PIPELINE_QUESTIONNAIRE,
}


def get_profile(name: str) -> QuestionnaireProfile:
    """Look up a questionnaire profile by name ("asvs" or "spvs")."""
    profile = PROFILES.get(name.strip().lower())
    if profile is None:
        raise ValueError(f"Unknown questionnaire: {name!r} (expected one of {', '.join(PROFILES)})")
    return profile


@dataclass(frozen=True)
class Recommendation:
    """Scored output of a questionnaire.

    application_type, discipline and technology are None for questionnaires
    that do not infer them (the pipeline questionnaire).
    """
    level: Level
    score: int
    notes: Tuple[str, ...]
    recommended_categories: Tuple[str, ...]
    recommended_subcategories: Tuple[str, ...] = ()
    application_type: Optional[str] = None
    discipline: Optional[str] = None
    technology: Optional[str] = None

    @property
    def focus_categories(self) -> Tuple[str, ...]:
        return self.recommended_categories

    @property
    def focus_subcategories(self) -> Tuple[str, ...]:
        return self.recommended_subcategories

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON output."""
        data: Dict[str, Any] = {'level': self.level.label, 'score': self.score}
        if self.application_type is not None:
            data['applicationType'] = self.application_type
        if self.discipline is not None:
            data['discipline'] = self.discipline
        if self.technology is not None:
            data['technology'] = self.technology
        data.update({
            'notes': list(self.notes),
            'recommendedCategories': list(self.recommended_categories),
            'recommendedSubcategories': list(self.recommended_subcategories),
        })
        return data


def _decide(rules: Iterable[Decision], default: Optional[str],
            answers: Mapping[str, bool], role: Optional[str]) -> Optional[str]:
    for rule in rules:
        if rule.guard(answers, role):
            return rule.value
    return default


class ScoringEngine:
    """Scores answers against one questionnaire profile.

    When an index is supplied, recommended codes are restricted to the
    categories and subcategories that standard actually defines.
    """

    def __init__(self, profile: QuestionnaireProfile = ASVS_QUESTIONNAIRE,
                 index: Optional[TaxonomyIndex] = None):
        self.profile = profile
        self.index = index
        self._valid_categories: Optional[FrozenSet[str]] = index.category_ids if index is not None else None
        self._valid_subcategories: Optional[FrozenSet[str]] = index.subcategory_ids if index is not None else None

    def normalize_answers(self, answers: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        """Coerce answers to booleans. Unknown question ids are kept but never scored."""
        normalized = {str(key): bool(value) for key, value in (answers or {}).items()}
        unknown = sorted(set(normalized) - set(self.profile.question_ids))
        if unknown:
            logger.debug(f"Questionnaire '{self.profile.name}' ignoring unknown answers: {unknown}")
        return normalized

    def total_score(self, answers: Mapping[str, bool]) -> int:
        return sum(rule.weight for rule in self.profile.weights if rule.applies(answers))

    def _restrict(self, codes: Set[str], valid: Optional[FrozenSet[str]], kind: str) -> Tuple[str, ...]:
        normalized = {normalize_code(code) for code in codes if normalize_code(code)}
        if valid is not None:
            dropped = normalized - valid
            if dropped:
                logger.debug(f"Dropping {kind} not defined by the loaded standard: {natural_sorted(dropped)}")
            normalized &= valid
        return tuple(natural_sorted(normalized))

    def score(self, answers: Optional[Mapping[str, Any]], role=None) -> Recommendation:
        """Compute the recommendation for one answer set.

        Args:
            answers: question id -> bool; missing questions count as "no"
            role: Optional UserRole (or value) used only for discipline fallback
        """
        answers = self.normalize_answers(answers)
        role_value = tag_value(role)
        profile = self.profile

        total = self.total_score(answers)
        level = profile.thresholds.level_for(total)

        categories: Set[str] = set()
        subcategories: Set[str] = set()
        for rule in profile.category_rules:
            if rule.guard(answers, role_value):
                categories.update(rule.categories)
                subcategories.update(rule.subcategories)

        notes: List[str] = [rule.note for rule in profile.note_rules if rule.guard(answers, role_value)]

        recommendation = Recommendation(
            level=level,
            score=total,
            notes=tuple(notes),
            recommended_categories=self._restrict(categories, self._valid_categories, "categories"),
            recommended_subcategories=self._restrict(subcategories, self._valid_subcategories, "subcategories"),
            application_type=_decide(profile.application_type_rules, profile.application_type_default,
                                     answers, role_value),
            discipline=_decide(profile.discipline_rules, profile.discipline_default, answers, role_value),
            technology=_decide(profile.technology_rules, profile.technology_default, answers, role_value),
        )
        logger.debug(f"Scored '{profile.name}' questionnaire: {total} -> {level.label}")
        return recommendation
