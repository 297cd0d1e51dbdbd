"""Static classification of ASVS categories.

Maps each category code to the roles, platforms, disciplines and technologies
it is most relevant to. Every control inherits its category's tags when the
standard is flattened.

Codes missing from the table fall back to DEFAULT_CLASSIFICATION, which
applies to everyone. It is never empty: an empty fallback would silently drop
unclassified controls from every filtered checklist.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping

from ..util.types import ApplicationType, DeveloperDiscipline, TechnologyTag, UserRole
from .models import AXIS_APPLICATION_TYPES, AXIS_DISCIPLINES, AXIS_ROLES, AXIS_TECHNOLOGIES


def _values(members: Iterable) -> FrozenSet[str]:
    return frozenset(member.value for member in members)


ALL_ROLES = _values(UserRole)
ALL_APPLICATION_TYPES = _values(ApplicationType)
ALL_DISCIPLINES = _values(DeveloperDiscipline)
ALL_TECHNOLOGIES = _values(TechnologyTag)

# Groups reused across the table
_BUILDERS = _values([UserRole.ARCHITECT, UserRole.DEVELOPER, UserRole.TESTER])
_GOVERNANCE = _values([UserRole.ARCHITECT, UserRole.BUSINESS_ANALYST, UserRole.EXECUTIVE])
_SERVER_SIDE = _values([
    DeveloperDiscipline.BACKEND, DeveloperDiscipline.FULLSTACK,
    DeveloperDiscipline.SECURITY_ENGINEER, DeveloperDiscipline.QA_ENGINEER,
])
_CLIENT_SIDE = _values([
    DeveloperDiscipline.FRONTEND, DeveloperDiscipline.MOBILE, DeveloperDiscipline.FULLSTACK,
    DeveloperDiscipline.SECURITY_ENGINEER, DeveloperDiscipline.QA_ENGINEER,
])
_SERVER_TECH = _values([
    TechnologyTag.PYTHON, TechnologyTag.JAVA, TechnologyTag.CSHARP, TechnologyTag.GO,
    TechnologyTag.RUBY, TechnologyTag.PHP, TechnologyTag.TYPESCRIPT, TechnologyTag.JAVASCRIPT,
    TechnologyTag.KOTLIN,
])
_CLIENT_TECH = _values([
    TechnologyTag.TYPESCRIPT, TechnologyTag.JAVASCRIPT, TechnologyTag.KOTLIN, TechnologyTag.SWIFT,
])


@dataclass(frozen=True)
class Classification:
    """Tag sets a category's controls inherit."""
    roles: FrozenSet[str]
    application_types: FrozenSet[str]
    disciplines: FrozenSet[str]
    technologies: FrozenSet[str]

    def __post_init__(self):
        for axis in (AXIS_ROLES, AXIS_APPLICATION_TYPES, AXIS_DISCIPLINES, AXIS_TECHNOLOGIES):
            if not getattr(self, axis):
                raise ValueError(f"Classification axis '{axis}' must not be empty")

    def as_tags(self) -> Mapping[str, FrozenSet[str]]:
        return MappingProxyType({
            AXIS_ROLES: self.roles,
            AXIS_APPLICATION_TYPES: self.application_types,
            AXIS_DISCIPLINES: self.disciplines,
            AXIS_TECHNOLOGIES: self.technologies,
        })


DEFAULT_CLASSIFICATION = Classification(
    roles=ALL_ROLES,
    application_types=ALL_APPLICATION_TYPES,
    disciplines=ALL_DISCIPLINES,
    technologies=ALL_TECHNOLOGIES,
)


CLASSIFICATION_TABLE: Mapping[str, Classification] = MappingProxyType({
    # Architecture, Design and Threat Modeling
    "V1": Classification(
        roles=_GOVERNANCE | _values([UserRole.DEVELOPER]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=ALL_DISCIPLINES,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Authentication
    "V2": Classification(
        roles=_BUILDERS,
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _CLIENT_SIDE,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Session Management
    "V3": Classification(
        roles=_BUILDERS,
        application_types=_values([ApplicationType.WEB, ApplicationType.MOBILE]),
        disciplines=_SERVER_SIDE | _CLIENT_SIDE,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Access Control
    "V4": Classification(
        roles=_BUILDERS | _values([UserRole.BUSINESS_ANALYST]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE,
        technologies=_SERVER_TECH,
    ),
    # Validation, Sanitization and Encoding
    "V5": Classification(
        roles=_BUILDERS,
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _CLIENT_SIDE,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Stored Cryptography
    "V6": Classification(
        roles=_values([UserRole.ARCHITECT, UserRole.DEVELOPER]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _values([DeveloperDiscipline.MOBILE]),
        technologies=_SERVER_TECH | _values([TechnologyTag.SWIFT]),
    ),
    # Error Handling and Logging
    "V7": Classification(
        roles=_BUILDERS | _values([UserRole.EXECUTIVE]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _values([DeveloperDiscipline.DEVOPS]),
        technologies=_SERVER_TECH,
    ),
    # Data Protection
    "V8": Classification(
        roles=ALL_ROLES,
        application_types=ALL_APPLICATION_TYPES,
        disciplines=ALL_DISCIPLINES,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Communication
    "V9": Classification(
        roles=_values([UserRole.ARCHITECT, UserRole.DEVELOPER]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _values([DeveloperDiscipline.DEVOPS, DeveloperDiscipline.MOBILE]),
        technologies=ALL_TECHNOLOGIES,
    ),
    # Malicious Code
    "V10": Classification(
        roles=_values([UserRole.ARCHITECT, UserRole.DEVELOPER, UserRole.TESTER]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=ALL_DISCIPLINES,
        technologies=ALL_TECHNOLOGIES,
    ),
    # Business Logic
    "V11": Classification(
        roles=ALL_ROLES,
        application_types=ALL_APPLICATION_TYPES,
        disciplines=_SERVER_SIDE | _values([DeveloperDiscipline.PROJECT_MANAGER]),
        technologies=ALL_TECHNOLOGIES,
    ),
    # Files and Resources
    "V12": Classification(
        roles=_BUILDERS,
        application_types=_values([ApplicationType.WEB, ApplicationType.API]),
        disciplines=_SERVER_SIDE,
        technologies=_SERVER_TECH,
    ),
    # API and Web Service
    "V13": Classification(
        roles=_BUILDERS,
        application_types=_values([ApplicationType.API, ApplicationType.WEB]),
        disciplines=_SERVER_SIDE | _values([DeveloperDiscipline.FRONTEND]),
        technologies=_SERVER_TECH,
    ),
    # Configuration
    "V14": Classification(
        roles=_values([UserRole.ARCHITECT, UserRole.DEVELOPER, UserRole.EXECUTIVE]),
        application_types=ALL_APPLICATION_TYPES,
        disciplines=ALL_DISCIPLINES,
        technologies=ALL_TECHNOLOGIES,
    ),
})


def classify(category_id: str, table: Mapping[str, Classification] = CLASSIFICATION_TABLE) -> Classification:
    """Return the tag sets for a category code, or the default entry."""
    return table.get(category_id.upper(), DEFAULT_CLASSIFICATION)
