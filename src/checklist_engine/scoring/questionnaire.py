"""Questionnaire definitions and rule tables.

A questionnaire profile is pure data: the ordered questions plus four rule
tables that the scoring engine walks independently.

- weight rules: each triggered rule adds a fixed integer to the score
- category rules: each triggered rule adds codes to a set (union, no counting)
- note rules: each triggered rule contributes one advisory note, in table order
- decision lists: ordered guards for platform/discipline/technology, first match wins

Guards take (answers, role). Answers missing a question count as "no".
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..util.types import Level

Answers = Mapping[str, bool]
Guard = Callable[[Answers, Optional[str]], bool]


@dataclass(frozen=True)
class Question:
    """One yes/no question shown to the user."""
    id: str
    text: str
    help_text: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.id, 'text': self.text, 'tags': list(self.tags)}
        if self.help_text:
            data['helpText'] = self.help_text
        return data


def yes(question_id: str) -> Guard:
    """Triggered when the question was answered yes."""
    return lambda answers, role: bool(answers.get(question_id, False))


def no(question_id: str) -> Guard:
    """Triggered when the question was answered no (or left unanswered)."""
    return lambda answers, role: not answers.get(question_id, False)


def any_of(*guards: Guard) -> Guard:
    return lambda answers, role: any(guard(answers, role) for guard in guards)


def all_of(*guards: Guard) -> Guard:
    return lambda answers, role: all(guard(answers, role) for guard in guards)


def role_is(*roles: str) -> Guard:
    return lambda answers, role: role in roles


@dataclass(frozen=True)
class WeightRule:
    """Adds `weight` to the score when the question's answer equals `when`."""
    question_id: str
    weight: int
    when: bool = True

    def applies(self, answers: Answers) -> bool:
        return bool(answers.get(self.question_id, False)) == self.when


@dataclass(frozen=True)
class CategoryRule:
    """Adds category and subcategory codes when the guard holds."""
    guard: Guard
    categories: Tuple[str, ...] = ()
    subcategories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NoteRule:
    """One advisory note per triggered condition."""
    guard: Guard
    note: str


@dataclass(frozen=True)
class Decision:
    """One entry of an ordered decision list."""
    value: str
    guard: Guard


@dataclass(frozen=True)
class LevelThresholds:
    """Cumulative score boundaries. Below l2 -> L1, below l3 -> L2, else L3."""
    l2: int
    l3: int

    def level_for(self, score: int) -> Level:
        if score >= self.l3:
            return Level.L3
        if score >= self.l2:
            return Level.L2
        return Level.L1


@dataclass(frozen=True)
class QuestionnaireProfile:
    """Everything needed to score one questionnaire variant.

    The decision lists are optional: the pipeline questionnaire recommends
    only a level and focus categories.
    """
    name: str
    standard: str
    questions: Tuple[Question, ...]
    weights: Tuple[WeightRule, ...]
    thresholds: LevelThresholds
    category_rules: Tuple[CategoryRule, ...]
    note_rules: Tuple[NoteRule, ...]
    application_type_rules: Tuple[Decision, ...] = ()
    application_type_default: Optional[str] = None
    discipline_rules: Tuple[Decision, ...] = ()
    discipline_default: Optional[str] = None
    technology_rules: Tuple[Decision, ...] = ()
    technology_default: Optional[str] = None
    # Weights keyed by question id, for documentation and validation
    weight_table: Dict[str, int] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        question_ids = {question.id for question in self.questions}
        unknown = [rule.question_id for rule in self.weights if rule.question_id not in question_ids]
        if unknown:
            raise ValueError(f"Questionnaire '{self.name}' weights unknown questions: {unknown}")
        object.__setattr__(self, 'weight_table', {rule.question_id: rule.weight for rule in self.weights})

    @property
    def question_ids(self) -> Tuple[str, ...]:
        return tuple(question.id for question in self.questions)

    @property
    def max_score(self) -> int:
        return sum(rule.weight for rule in self.weights)
