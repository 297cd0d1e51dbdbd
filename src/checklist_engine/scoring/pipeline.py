"""Pipeline questionnaire for the SPVS checklist.

Ten questions about how the CI/CD pipeline is run, plus the extra
payment-workload question. Recommends a level and the SPVS categories and
subcategories to focus on; there is no platform/discipline inference.

Level thresholds: score >= 10 -> L3, score >= 5 -> L2, otherwise L1.
"""

from .questionnaire import (
    CategoryRule,
    LevelThresholds,
    NoteRule,
    Question,
    QuestionnaireProfile,
    WeightRule,
    yes,
)

QUESTIONS = (
    Question(
        id="usesHostedRunners",
        text="Does your CI/CD pipeline rely on shared or SaaS-hosted runners/agents?",
        help_text="Hosted runners increase exposure to shared infrastructure risk and require stronger hardening.",
        tags=("environment", "integrate"),
    ),
    Question(
        id="usesSelfHostedRunners",
        text="Do you operate self-hosted runners or build agents within your own infrastructure?",
        help_text="Self-hosted runners require patching, credential hygiene, and isolation controls.",
        tags=("environment", "integrate"),
    ),
    Question(
        id="managesPipelineSecrets",
        text="Does the pipeline manage or inject credentials, secrets, or signing keys?",
        help_text="Secret storage, rotation, and least-privilege policies are critical when pipelines broker credentials.",
        tags=("secrets", "integrate"),
    ),
    Question(
        id="deploysToProduction",
        text="Can the pipeline promote changes directly into production systems?",
        help_text="Production deployments through automation typically require advanced change control and release governance.",
        tags=("release", "operate"),
    ),
    Question(
        id="supportsMultipleEnvironments",
        text="Does the pipeline orchestrate multiple environments (dev/test/stage/prod)?",
        help_text="Promotion across environments demands guardrails around approvals, artifact integrity, and configuration drift.",
        tags=("release",),
    ),
    Question(
        id="integratesThirdPartyServices",
        text="Does the pipeline rely on third-party integrations or marketplace plug-ins?",
        help_text="Third-party components introduce supply chain risk and require vetting, monitoring, and fallback plans.",
        tags=("supply-chain",),
    ),
    Question(
        id="managesInfrastructureAsCode",
        text="Does the pipeline apply infrastructure as code (IaC) or configuration changes?",
        help_text="IaC pipelines must enforce policy-as-code, change reviews, and drift detection to avoid production misconfigurations.",
        tags=("iac", "release"),
    ),
    Question(
        id="handlesSensitiveCode",
        text="Does the pipeline process proprietary, regulated, or otherwise sensitive source code or data?",
        help_text="Higher-sensitivity codebases require tightened access controls, auditing, and monitoring throughout the toolchain.",
        tags=("governance",),
    ),
    Question(
        id="requiresAuditTrail",
        text="Do compliance or governance programs require immutable audit trails for pipeline activity?",
        help_text="Operational accountability pressures logging, detection, and incident response capabilities in release pipelines.",
        tags=("compliance", "operate"),
    ),
    Question(
        id="usesAttestationOrSigning",
        text="Do you require artifact signing, attestations, or provenance tracking before releases?",
        help_text="Integrity controls tie directly into SPVS Integrate and Release practices, especially around artifact verification.",
        tags=("integrity", "release"),
    ),
    Question(
        id="handlesPayments",
        text="Does the pipeline build or release software that processes payments or financial data?",
        help_text="Payment workloads bring PCI-style change control and segregation-of-duties expectations to the release path.",
        tags=("risk", "financial"),
    ),
)

WEIGHTS = (
    WeightRule("usesHostedRunners", 2),
    WeightRule("usesSelfHostedRunners", 2),
    WeightRule("managesPipelineSecrets", 2),
    WeightRule("deploysToProduction", 3),
    WeightRule("supportsMultipleEnvironments", 1),
    WeightRule("integratesThirdPartyServices", 2),
    WeightRule("managesInfrastructureAsCode", 2),
    WeightRule("handlesSensitiveCode", 2),
    WeightRule("requiresAuditTrail", 2),
    WeightRule("usesAttestationOrSigning", 2),
    WeightRule("handlesPayments", 3),
)

CATEGORY_RULES = (
    CategoryRule(yes("usesHostedRunners"), categories=("V3",), subcategories=("V3.1",)),
    CategoryRule(yes("usesSelfHostedRunners"), categories=("V3",), subcategories=("V3.1",)),
    CategoryRule(yes("managesPipelineSecrets"), categories=("V2", "V3"), subcategories=("V2.5", "V3.2")),
    CategoryRule(yes("deploysToProduction"), categories=("V4",), subcategories=("V4.3", "V4.4")),
    CategoryRule(yes("supportsMultipleEnvironments"), categories=("V4",), subcategories=("V4.2",)),
    CategoryRule(yes("integratesThirdPartyServices"), categories=("V2",), subcategories=("V2.6", "V3.3")),
    CategoryRule(yes("managesInfrastructureAsCode"), categories=("V3", "V4"), subcategories=("V3.4", "V4.1")),
    CategoryRule(yes("handlesSensitiveCode"), categories=("V1", "V5"), subcategories=("V1.1", "V5.2")),
    CategoryRule(yes("requiresAuditTrail"), categories=("V5",), subcategories=("V5.1", "V5.4")),
    CategoryRule(yes("usesAttestationOrSigning"), categories=("V3", "V4"), subcategories=("V3.4", "V4.3")),
    CategoryRule(yes("handlesPayments"), categories=("V1", "V4"), subcategories=("V1.1", "V4.3")),
)

NOTE_RULES = (
    NoteRule(yes("usesHostedRunners"),
             "Shared/hosted runners detected: harden the build environment and enforce isolation."),
    NoteRule(yes("usesSelfHostedRunners"),
             "Self-hosted runners require patch management, credential rotation, and tamper monitoring."),
    NoteRule(yes("managesPipelineSecrets"),
             "Pipeline-managed secrets: emphasise vaulting, rotation, and least privilege across toolchains."),
    NoteRule(yes("deploysToProduction"),
             "Production automation in scope: tighten release approvals, deployment controls, and rollback plans."),
    NoteRule(yes("supportsMultipleEnvironments"),
             "Multi-environment promotion: standardise approvals and environment parity checks."),
    NoteRule(yes("integratesThirdPartyServices"),
             "Third-party integrations present: vet plug-ins, pin versions, and monitor marketplace risk."),
    NoteRule(yes("managesInfrastructureAsCode"),
             "IaC orchestration: enforce policy-as-code, scanning, and artifact integrity before rollout."),
    NoteRule(yes("handlesSensitiveCode"),
             "Sensitive code/data detected: tighten identity, access reviews, and operational enforcement."),
    NoteRule(yes("requiresAuditTrail"),
             "Audit requirements present: implement immutable logging, alert routing, and retention baselines."),
    NoteRule(yes("usesAttestationOrSigning"),
             "Artifact attestation required: enforce signing, provenance, and verification gates."),
    NoteRule(yes("handlesPayments"),
             "Payment workloads in the pipeline: require segregation of duties and signed-off production releases."),
)

PIPELINE_QUESTIONNAIRE = QuestionnaireProfile(
    name="spvs",
    standard="SPVS",
    questions=QUESTIONS,
    weights=WEIGHTS,
    thresholds=LevelThresholds(l2=5, l3=10),
    category_rules=CATEGORY_RULES,
    note_rules=NOTE_RULES,
)
