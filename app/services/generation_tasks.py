"""
Catalogue of document generation tasks.

Each ``GenerationTask`` describes one project document: where it lands in the
output tree, how it is ordered, and which persona the model writes it as.
Prompts are deliberately short; the project context carries the substance.
"""
from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Optional, Tuple

MARKDOWN_OUTPUT = "markdown"
JSON_OUTPUT = "json"


@dataclasses.dataclass(frozen=True)
class GenerationTask:
    key: str
    name: str
    category: str
    priority: int
    emoji: str
    description: str
    persona: str = "an experienced project manager familiar with PMBOK 7"
    output: str = MARKDOWN_OUTPUT
    # Column order for JSON tasks rendered as markdown tables
    json_columns: Tuple[str, ...] = ()

    @property
    def filename(self) -> str:
        return f"{self.key}.md"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "category": self.category,
            "filename": self.filename,
            "priority": self.priority,
            "emoji": self.emoji,
            "description": self.description,
            "output": self.output,
        }


_BA = "a senior business analyst who follows BABOK v3"
_ARCH = "a pragmatic software architect"
_QA = "a quality assurance lead"
_RISK = "a risk and compliance manager"


GENERATION_TASKS: List[GenerationTask] = [
    # Strategic statements
    GenerationTask(
        "mission-vision-core-values", "Mission, Vision & Core Values",
        "strategic-statements", 1, "🎯",
        "Project mission, vision and core values for strategic alignment.",
    ),
    GenerationTask(
        "project-purpose", "Project Purpose", "strategic-statements", 2, "🎯",
        "Why the project exists and the business problem it addresses.",
    ),
    # Project charter
    GenerationTask(
        "project-charter", "Project Charter", "project-charter", 3, "📜",
        "Formal authorization: objectives, high-level scope, sponsor, success criteria.",
    ),
    GenerationTask(
        "business-case", "Business Case", "project-charter", 4, "💼",
        "Justification, options considered, expected benefits and costs.",
        persona=_BA,
    ),
    # Management plans
    GenerationTask(
        "scope-management-plan", "Scope Management Plan", "management-plans", 5, "📊",
        "How scope is defined, validated and controlled.",
    ),
    GenerationTask(
        "requirements-documentation", "Requirements Documentation", "management-plans", 6, "📃",
        "Business, stakeholder, solution and transition requirements.",
        persona=_BA,
    ),
    GenerationTask(
        "project-scope-statement", "Project Scope Statement", "management-plans", 7, "📄",
        "Deliverables, acceptance criteria, exclusions, constraints and assumptions.",
    ),
    GenerationTask(
        "quality-management-plan", "Quality Management Plan", "management-plans", 8, "✅",
        "Quality standards, assurance activities and control measures.",
    ),
    GenerationTask(
        "communication-management-plan", "Communication Management Plan",
        "management-plans", 9, "📢",
        "Who needs which information, when, and through which channel.",
    ),
    # Stakeholder management
    GenerationTask(
        "stakeholder-register", "Stakeholder Register", "stakeholder-management", 10, "👥",
        "Identified stakeholders with their interest, influence and strategy.",
        persona=_BA,
        output=JSON_OUTPUT,
        json_columns=("name", "role", "interest", "influence", "engagement_strategy"),
    ),
    GenerationTask(
        "stakeholder-analysis", "Stakeholder Analysis", "stakeholder-management", 11, "📈",
        "Power/interest analysis and stakeholder expectations.",
        persona=_BA,
    ),
    GenerationTask(
        "stakeholder-engagement-plan", "Stakeholder Engagement Plan",
        "stakeholder-management", 12, "🤝",
        "Current versus desired engagement and the actions that close the gap.",
    ),
    # Planning artifacts
    GenerationTask(
        "work-breakdown-structure", "Work Breakdown Structure", "planning-artifacts", 13, "🏗️",
        "Hierarchical decomposition of the total scope into work packages.",
    ),
    GenerationTask(
        "milestone-list", "Milestone List", "planning-artifacts", 14, "🎯",
        "Significant points or events with target dates.",
        output=JSON_OUTPUT,
        json_columns=("milestone", "target_date", "deliverable", "owner"),
    ),
    GenerationTask(
        "activity-list", "Activity List", "planning-artifacts", 15, "📋",
        "Schedule activities needed to produce the deliverables.",
    ),
    # Risk management
    GenerationTask(
        "risk-management-plan", "Risk Management Plan", "risk-management", 16, "⚠️",
        "Risk methodology, roles, categories, probability and impact scales.",
        persona=_RISK,
    ),
    GenerationTask(
        "risk-register", "Risk Register", "risk-management", 17, "🔍",
        "Identified risks with probability, impact, owner and response.",
        persona=_RISK,
        output=JSON_OUTPUT,
        json_columns=("id", "description", "probability", "impact", "owner", "response"),
    ),
    GenerationTask(
        "risk-compliance-assessment", "Risk and Compliance Assessment",
        "risk-management", 18, "⚖️",
        "Regulatory, contractual and standards exposure with mitigation actions.",
        persona=_RISK,
    ),
    # Technical design
    GenerationTask(
        "architecture-design", "Architecture Design", "technical-design", 19, "🏗️",
        "System context, main components and their interactions.",
        persona=_ARCH,
    ),
    GenerationTask(
        "security-design", "Security Design", "technical-design", 20, "🔒",
        "Authentication, authorization, data protection and threat mitigations.",
        persona=_ARCH,
    ),
    # Quality assurance
    GenerationTask(
        "test-strategy", "Test Strategy", "quality-assurance", 21, "📋",
        "Test levels, types, environments and exit criteria.",
        persona=_QA,
    ),
    GenerationTask(
        "acceptance-criteria", "Acceptance Criteria", "quality-assurance", 22, "✔️",
        "Conditions each deliverable must satisfy to be accepted.",
        persona=_QA,
    ),
]

_TASKS_BY_KEY: Dict[str, GenerationTask] = {t.key: t for t in GENERATION_TASKS}


def get_task(key: str) -> GenerationTask:
    """Look up a task by key. Raises ``KeyError`` for unknown keys."""
    try:
        return _TASKS_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown document key '{key}'") from None


def get_tasks_by_category(category: str) -> List[GenerationTask]:
    return sorted(
        (t for t in GENERATION_TASKS if t.category == category),
        key=lambda t: (t.priority, t.key),
    )


def get_available_categories() -> List[str]:
    return sorted({t.category for t in GENERATION_TASKS})


# ---------------------------------------------------------------------------
# Prompt construction
# ---------------------------------------------------------------------------

_MARKDOWN_RULES = (
    "Write in GitHub-flavoured Markdown. Start with a single '# ' title, "
    "use '## ' section headings, and prefer bullet lists over long paragraphs. "
    "Do not invent facts that contradict the project context."
)


def _json_rules(columns: Tuple[str, ...]) -> str:
    return (
        "Respond with a JSON array only, no prose and no code fences. "
        f"Each element is an object with exactly these keys: {', '.join(columns)}."
    )


def build_prompts(task: GenerationTask, context: str) -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for a catalogue task."""
    rules = _json_rules(task.json_columns) if task.output == JSON_OUTPUT else _MARKDOWN_RULES
    system_prompt = f"You are {task.persona}. {rules}"
    user_prompt = (
        f"Create the {task.name} for the project described below.\n"
        f"Purpose of the document: {task.description}\n\n"
        f"Project context:\n{context.strip()}"
    )
    return system_prompt, user_prompt


def build_template_prompts(
    template: Any, rendered_content: str, context: str
) -> Tuple[str, str]:
    """
    Prompts for a stored template.

    *template* is anything with ``name`` and a ``template_data`` dict (an ORM
    row or a plain namespace); *rendered_content* is the skeleton with its
    variables already substituted.
    """
    data: Dict[str, Any] = template.template_data or {}
    instructions: Optional[str] = data.get("ai_instructions")

    system_prompt = f"You are an experienced project documentation specialist. {_MARKDOWN_RULES}"
    if instructions:
        system_prompt += f"\nAdditional instructions: {instructions}"

    parts = [
        f"Complete the '{template.name}' document by filling in the template below.",
        "Keep its headings and order.",
        "",
        "Template:",
        rendered_content.strip(),
    ]
    if context.strip():
        parts += ["", "Project context:", context.strip()]
    return system_prompt, "\n".join(parts)
