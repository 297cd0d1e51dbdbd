"""Application questionnaire for the ASVS checklist.

Fourteen questions about data sensitivity, exposure and platform. The weights
and thresholds are fixed business rules; changing them changes which level
every past answer set maps to.

Level thresholds: score >= 7 -> L3, score >= 4 -> L2, otherwise L1.
"""

from ..util.types import (
    ALL_TECHNOLOGIES,
    ApplicationType,
    DeveloperDiscipline,
    TechnologyTag,
    UserRole,
)
from .questionnaire import (
    CategoryRule,
    Decision,
    LevelThresholds,
    NoteRule,
    Question,
    QuestionnaireProfile,
    WeightRule,
    all_of,
    any_of,
    no,
    role_is,
    yes,
)

QUESTIONS = (
    Question(
        id="handlesPayments",
        text="Does the application handle payment transactions or store financial data?",
        help_text="Payment or financial workflows raise the bar for integrity and fraud protections.",
        tags=("risk", "financial"),
    ),
    Question(
        id="storesPII",
        text="Does the application store personally identifiable information (PII) or regulated data?",
        help_text="PII and regulated data typically require stronger controls and evidencing.",
        tags=("risk", "privacy"),
    ),
    Question(
        id="externallyFacing",
        text="Is the application externally facing / internet accessible?",
        tags=("risk",),
    ),
    Question(
        id="acceptsUserInput",
        text="Does the application accept untrusted user input or user generated content?",
        tags=("validation",),
    ),
    Question(
        id="usesDatabase",
        text="Does the application persist data in a database or data store?",
        tags=("data",),
    ),
    Question(
        id="integratesThirdParty",
        text="Does the application integrate with third-party APIs or services?",
        tags=("third-party",),
    ),
    Question(
        id="modernFramework",
        text="Is the application built with modern, actively maintained frameworks?",
        help_text="Legacy stacks often need additional hardening and patch-management focus.",
        tags=("stack",),
    ),
    Question(
        id="hasFrontendUI",
        text="Does the application provide a browser-based user interface for end-users?",
        tags=("ui", "frontend"),
    ),
    Question(
        id="implementsAuthentication",
        text="Does the application implement authentication or integrate with an identity provider (SSO/IdP)?",
        tags=("auth",),
    ),
    Question(
        id="requiresRoleManagement",
        text="Do you need role-based access control or multi-tenant authorization separation?",
        tags=("authz",),
    ),
    Question(
        id="logsSensitiveEvents",
        text="Does the application generate audit or security-relevant logs that require protection?",
        tags=("logging", "monitoring"),
    ),
    Question(
        id="multiTenantDeployment",
        text="Will the application run in a shared cloud or multi-tenant environment (SaaS)?",
        help_text="Shared environments raise expectations around isolation, configuration, and secrets management.",
        tags=("deployment",),
    ),
    Question(
        id="mobileClient",
        text="Does the solution include a native or mobile client?",
        tags=("platform",),
    ),
    Question(
        id="apiService",
        text="Is the solution primarily an API or service consumed programmatically?",
        tags=("platform",),
    ),
)

WEIGHTS = (
    WeightRule("handlesPayments", 3),
    WeightRule("storesPII", 2),
    WeightRule("externallyFacing", 2),
    WeightRule("acceptsUserInput", 2),
    WeightRule("usesDatabase", 1),
    WeightRule("integratesThirdParty", 1),
    # Legacy stacks are penalised: the weight applies to a "no"
    WeightRule("modernFramework", 1, when=False),
    WeightRule("hasFrontendUI", 1),
    WeightRule("implementsAuthentication", 1),
    WeightRule("requiresRoleManagement", 1),
    WeightRule("logsSensitiveEvents", 1),
    WeightRule("multiTenantDeployment", 2),
)

CATEGORY_RULES = (
    CategoryRule(any_of(yes("handlesPayments"), yes("storesPII")), categories=("V2", "V3", "V6")),
    CategoryRule(yes("acceptsUserInput"), categories=("V5", "V11")),
    CategoryRule(yes("usesDatabase"), categories=("V9", "V10")),
    CategoryRule(yes("integratesThirdParty"), categories=("V12", "V13")),
    CategoryRule(yes("externallyFacing"), categories=("V1", "V2")),
    CategoryRule(no("modernFramework"), categories=("V14",)),
    CategoryRule(yes("hasFrontendUI"), categories=("V1", "V5", "V11")),
    CategoryRule(yes("implementsAuthentication"), categories=("V2", "V3")),
    CategoryRule(yes("requiresRoleManagement"), categories=("V4",)),
    CategoryRule(yes("logsSensitiveEvents"), categories=("V10",)),
    CategoryRule(yes("multiTenantDeployment"), categories=("V14",)),
)

NOTE_RULES = (
    NoteRule(yes("handlesPayments"),
             "Payment handling observed: ensure PCI-aligned controls and fraud monitoring."),
    NoteRule(yes("storesPII"),
             "PII/regulated data present: document privacy controls and retention policies."),
    NoteRule(yes("externallyFacing"),
             "Externally facing surface: reinforce perimeter, logging, and monitoring."),
    NoteRule(no("modernFramework"),
             "Legacy stack detected: review patch cadence and hardening commitments."),
    NoteRule(yes("integratesThirdParty"),
             "Third-party integrations: capture supply-chain security expectations."),
    NoteRule(yes("implementsAuthentication"),
             "Authentication in scope: confirm MFA, session management, and credential hygiene."),
    NoteRule(yes("requiresRoleManagement"),
             "Complex authorization: catalogue roles, least privilege, and tenant separation rules."),
    NoteRule(yes("logsSensitiveEvents"),
             "Security logging present: ensure tamper resistance and monitoring coverage."),
    NoteRule(yes("multiTenantDeployment"),
             "Multi-tenant/cloud deployment: document isolation, secrets, and configuration controls."),
    NoteRule(yes("hasFrontendUI"),
             "Frontend UI detected: emphasise client-side security, content handling, and session controls."),
)

APPLICATION_TYPE_RULES = (
    Decision(ApplicationType.MOBILE.value, yes("mobileClient")),
    Decision(ApplicationType.API.value, yes("apiService")),
)

# Answer flags decide first; the role only breaks the tie when none apply
DISCIPLINE_RULES = (
    Decision(DeveloperDiscipline.FRONTEND.value, yes("hasFrontendUI")),
    Decision(DeveloperDiscipline.MOBILE.value, yes("mobileClient")),
    Decision(DeveloperDiscipline.BACKEND.value, yes("apiService")),
    Decision(DeveloperDiscipline.FULLSTACK.value,
             all_of(role_is(UserRole.DEVELOPER.value), yes("externallyFacing"))),
    Decision(DeveloperDiscipline.BACKEND.value, role_is(UserRole.DEVELOPER.value)),
    Decision(DeveloperDiscipline.QA_ENGINEER.value, role_is(UserRole.TESTER.value)),
    Decision(DeveloperDiscipline.SECURITY_ENGINEER.value,
             role_is(UserRole.ARCHITECT.value, UserRole.EXECUTIVE.value)),
)

TECHNOLOGY_RULES = (
    Decision(TechnologyTag.TYPESCRIPT.value, yes("hasFrontendUI")),
    Decision(TechnologyTag.KOTLIN.value, yes("mobileClient")),
    Decision(TechnologyTag.JAVA.value, yes("apiService")),
)

ASVS_QUESTIONNAIRE = QuestionnaireProfile(
    name="asvs",
    standard="ASVS",
    questions=QUESTIONS,
    weights=WEIGHTS,
    thresholds=LevelThresholds(l2=4, l3=7),
    category_rules=CATEGORY_RULES,
    note_rules=NOTE_RULES,
    application_type_rules=APPLICATION_TYPE_RULES,
    application_type_default=ApplicationType.WEB.value,
    discipline_rules=DISCIPLINE_RULES,
    discipline_default=DeveloperDiscipline.PROJECT_MANAGER.value,
    technology_rules=TECHNOLOGY_RULES,
    technology_default=ALL_TECHNOLOGIES,
)
