"""Core vocabulary types used across the engine.

Levels, platforms, roles, disciplines and technologies are closed sets.
No magic strings floating around - every tag has a defined meaning.
"""

from enum import Enum, IntEnum
from typing import Optional, Union


class Level(IntEnum):
    """Verification level of a standard.
    
    L1: Opportunistic - the minimum every application should meet
    L2: Standard - applications handling sensitive data
    L3: Advanced - critical applications (payments, health, infrastructure)
    
    Integer value is what the query engine compares; the label is what
    crosses the boundary.
    """
    L1 = 1
    L2 = 2
    L3 = 3

    @property
    def label(self) -> str:
        return f"L{self.value}"

    @classmethod
    def highest(cls) -> "Level":
        return cls.L3


def parse_level(value: Union[str, int, "Level"]) -> Level:
    """Parse "L1"/"l2"/"3"/3 into a Level.
    
    Raises ValueError for anything else - boundary input must be validated.
    """
    if isinstance(value, Level):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid level: {value!r}")
    if isinstance(value, int):
        return Level(value)
    text = str(value).strip().upper()
    if text.startswith("L"):
        text = text[1:]
    if text.isdigit():
        number = int(text)
        if 1 <= number <= 3:
            return Level(number)
    raise ValueError(f"Invalid level: {value!r} (expected L1, L2 or L3)")


def try_parse_level(value) -> Optional[Level]:
    """Like parse_level but returns None for unparseable input."""
    try:
        return parse_level(value)
    except ValueError:
        return None


class ApplicationType(Enum):
    """Platform an application is delivered on."""
    WEB = "web"
    MOBILE = "mobile"
    API = "api"


class UserRole(Enum):
    """Who is reading the checklist."""
    ARCHITECT = "architect"
    DEVELOPER = "developer"
    TESTER = "tester"
    BUSINESS_ANALYST = "business-analyst"
    DATA_SCIENTIST = "data-scientist"
    EXECUTIVE = "executive"


class DeveloperDiscipline(Enum):
    """Engineering discipline a control is most relevant to."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    MOBILE = "mobile"
    FULLSTACK = "fullstack"
    DATA_ANALYST = "data-analyst"
    DEVOPS = "devops"
    SECURITY_ENGINEER = "security-engineer"
    QA_ENGINEER = "qa-engineer"
    PROJECT_MANAGER = "project-manager"


class TechnologyTag(Enum):
    """Implementation technology a control has specific guidance for."""
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    CSHARP = "csharp"
    GO = "go"
    RUBY = "ruby"
    PHP = "php"
    KOTLIN = "kotlin"
    SWIFT = "swift"


ALL_TECHNOLOGIES = "all"


def tag_value(value) -> Optional[str]:
    """Return the string form of an enum member or plain string tag."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    text = str(value).strip()
    return text or None
