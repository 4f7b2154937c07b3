"""
Rule-based standards compliance analysis (PMBOK 7, BABOK v3, DMBOK 2).

A document is scored on three things:

- required elements (50 %): the phrases its document type or standard expects
- terminology (30 %): how much of the standard's vocabulary it uses
- structure (20 %): headings, lists and length

A score of ``COMPLIANCE_THRESHOLD`` (80 by default) or more is compliant.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.config import settings
from app.services.docx_writer import docx_to_markdown
from app.services.file_manager import INDEX_FILENAME
from app.utils.helpers import count_words, safe_divide

logger = logging.getLogger(__name__)

ELEMENT_WEIGHT = 0.5
TERMINOLOGY_WEIGHT = 0.3
STRUCTURE_WEIGHT = 0.2

# Terms a well-written document is expected to use; more than this adds nothing.
TERMINOLOGY_TARGET = 8

GENERATED_SUFFIXES = (".md", ".json", ".docx")


# ---------------------------------------------------------------------------
# Requirement tables
# ---------------------------------------------------------------------------

PMBOK_DOCUMENT_REQUIREMENTS: Dict[str, List[str]] = {
    "project-charter": [
        "project purpose",
        "measurable objectives",
        "high-level requirements",
        "assumptions",
        "constraints",
        "project approval requirements",
    ],
    "stakeholder-register": [
        "identification information",
        "assessment information",
        "stakeholder classification",
    ],
    "stakeholder-engagement-plan": [
        "engagement strategies",
        "communication requirements",
        "stakeholder expectations",
    ],
    "scope-management-plan": [
        "scope definition",
        "wbs development",
        "scope verification",
        "scope control",
    ],
    "work-breakdown-structure": [
        "work packages",
        "deliverables",
        "hierarchical decomposition",
    ],
    "requirements-documentation": [
        "functional requirements",
        "non-functional requirements",
        "quality requirements",
        "acceptance criteria",
    ],
    "project-scope-statement": [
        "product scope description",
        "deliverables",
        "acceptance criteria",
        "exclusions",
        "constraints",
        "assumptions",
    ],
    "risk-management-plan": [
        "methodology",
        "roles and responsibilities",
        "risk categories",
        "risk probability and impact",
        "risk response strategies",
    ],
    "quality-management-plan": [
        "quality standards",
        "quality objectives",
        "quality assurance",
        "quality control",
        "quality improvement",
    ],
    "mission-vision-core-values": [
        "mission statement",
        "vision statement",
        "core values",
        "alignment with project goals",
    ],
    "project-purpose": [
        "executive summary",
        "project background",
        "purpose statement",
        "strategic importance",
        "expected impact",
        "success criteria",
        "stakeholder benefits",
        "alignment with strategy",
    ],
}

PMBOK_TERMINOLOGY: List[str] = [
    "deliverable",
    "milestone",
    "work package",
    "baseline",
    "change control",
    "risk register",
    "stakeholder",
    "requirements",
    "assumptions",
    "constraints",
    "work performance data",
    "change request",
    "quality metrics",
    "activity duration",
    "resource requirements",
    "critical path",
    "schedule baseline",
    "work breakdown structure",
    "configuration management",
    "performance measurement",
]

STANDARDS: Dict[str, Dict[str, Any]] = {
    "PMBOK_7": {
        "name": "PMBOK Guide 7th Edition",
        # Performance domains
        "elements": [
            "stakeholders",
            "team",
            "development approach",
            "planning",
            "project work",
            "delivery",
            "measurement",
            "uncertainty",
        ],
        "terminology": PMBOK_TERMINOLOGY,
    },
    "BABOK_V3": {
        "name": "BABOK Guide v3",
        # Knowledge areas
        "elements": [
            "business analysis planning",
            "elicitation",
            "requirements life cycle",
            "strategy analysis",
            "requirements analysis",
            "solution evaluation",
        ],
        "terminology": [
            "stakeholder",
            "business need",
            "requirement",
            "solution",
            "traceability",
            "acceptance criteria",
            "elicitation",
            "assumption",
            "constraint",
            "change",
            "value",
            "context",
        ],
    },
    "DMBOK_2": {
        "name": "DAMA-DMBOK 2",
        # Knowledge areas
        "elements": [
            "data governance",
            "data architecture",
            "data modeling",
            "data storage",
            "data security",
            "data integration",
            "data quality",
            "metadata",
        ],
        "terminology": [
            "data steward",
            "data owner",
            "data lineage",
            "data quality",
            "metadata",
            "master data",
            "reference data",
            "retention",
            "classification",
            "data catalog",
        ],
    },
}

DEFAULT_STANDARD = "PMBOK_7"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ComplianceReport:
    standard: str
    score: float
    compliant: bool
    found_elements: List[str]
    missing_elements: List[str]
    terminology_hits: List[str]
    recommendations: List[str]
    document_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass
class OutputValidationReport:
    output_dir: str
    standard: str
    overall_score: float
    compliant: bool
    documents: List[ComplianceReport] = dataclasses.field(default_factory=list)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def _normalize(text: str) -> str:
    text = text.lower().replace("-", " ").replace("_", " ")
    return re.sub(r"\s+", " ", text)


def _contains(haystack: str, phrase: str) -> bool:
    return _normalize(phrase) in haystack


def _structure_score(content: str) -> float:
    lines = content.splitlines()
    headings = sum(1 for line in lines if re.match(r"^\s*#{1,6}\s+\S", line))
    list_items = sum(1 for line in lines if re.match(r"^\s*([-*+]|\d+[.)])\s+\S", line))
    table_rows = sum(1 for line in lines if line.strip().startswith("|"))
    words = count_words(content)

    score = 0.0
    score += 0.4 if headings >= 3 else 0.2 if headings >= 1 else 0.0
    score += 0.3 if (list_items + table_rows) >= 3 else 0.15 if (list_items + table_rows) else 0.0
    score += 0.3 if words >= 300 else 0.15 if words >= 100 else 0.0
    return min(score, 1.0)


def get_supported_standards() -> List[Dict[str, Any]]:
    return [
        {"code": code, "name": definition["name"], "elements": list(definition["elements"])}
        for code, definition in STANDARDS.items()
    ]


def analyze_document(
    content: str,
    document_key: Optional[str] = None,
    standard: str = DEFAULT_STANDARD,
    threshold: Optional[float] = None,
) -> ComplianceReport:
    """
    Score *content* against *standard*.

    PMBOK documents with a known *document_key* are checked against that
    document type's required elements; everything else uses the standard's
    own element list.  Raises ``ValueError`` for an unknown standard.
    """
    code = (standard or DEFAULT_STANDARD).upper()
    if code not in STANDARDS:
        raise ValueError(
            f"Unknown standard '{standard}' (supported: {', '.join(STANDARDS)})"
        )
    definition = STANDARDS[code]
    threshold = settings.COMPLIANCE_THRESHOLD if threshold is None else threshold

    if code == "PMBOK_7" and document_key in PMBOK_DOCUMENT_REQUIREMENTS:
        required = PMBOK_DOCUMENT_REQUIREMENTS[document_key]
    else:
        required = definition["elements"]

    text = _normalize(content or "")
    found = [e for e in required if _contains(text, e)]
    missing = [e for e in required if e not in found]
    terms = [t for t in definition["terminology"] if _contains(text, t)]

    element_score = safe_divide(len(found), len(required), default=1.0)
    target = min(TERMINOLOGY_TARGET, len(definition["terminology"]))
    terminology_score = min(len(terms) / target, 1.0) if target else 1.0
    structure_score = _structure_score(content or "")

    score = round(
        100
        * (
            ELEMENT_WEIGHT * element_score
            + TERMINOLOGY_WEIGHT * terminology_score
            + STRUCTURE_WEIGHT * structure_score
        ),
        1,
    )

    recommendations = [f"Add a section covering '{e}'." for e in missing]
    if terminology_score < 0.5:
        unused = [t for t in definition["terminology"] if t not in terms][:5]
        recommendations.append(
            f"Use more {definition['name']} terminology, e.g. {', '.join(unused)}."
        )
    if structure_score < 0.5:
        recommendations.append(
            "Organise the document with section headings and lists, and expand thin sections."
        )

    return ComplianceReport(
        standard=code,
        document_key=document_key,
        score=score,
        compliant=score >= threshold,
        found_elements=found,
        missing_elements=missing,
        terminology_hits=terms,
        recommendations=recommendations,
    )


def _read_generated(path: Path) -> str:
    if path.suffix == ".docx":
        return docx_to_markdown(path)
    text = path.read_text(encoding="utf-8", errors="replace")
    if path.suffix == ".json":
        try:
            payload = json.loads(text)
        except ValueError:
            return text
        if isinstance(payload, dict) and isinstance(payload.get("content"), str):
            return payload["content"]
    return text


def validate_output_dir(
    output_dir: Path,
    standard: str = DEFAULT_STANDARD,
    threshold: Optional[float] = None,
) -> OutputValidationReport:
    """
    Analyse every generated .md, .json and .docx document under *output_dir*.

    The overall score is the mean document score.  Raises
    ``FileNotFoundError`` if *output_dir* does not exist.
    """
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        raise FileNotFoundError(f"Output directory {output_dir} does not exist")
    threshold = settings.COMPLIANCE_THRESHOLD if threshold is None else threshold

    reports: List[ComplianceReport] = []
    for path in sorted(output_dir.rglob("*")):
        if path.suffix not in GENERATED_SUFFIXES or not path.is_file():
            continue
        if path.name == INDEX_FILENAME or ".git" in path.parts:
            continue
        report = analyze_document(
            _read_generated(path), document_key=path.stem, standard=standard, threshold=threshold
        )
        reports.append(report)
        logger.debug("%s: %.1f", path.relative_to(output_dir), report.score)

    overall = round(sum(r.score for r in reports) / len(reports), 1) if reports else 0.0
    return OutputValidationReport(
        output_dir=str(output_dir),
        standard=standard.upper(),
        overall_score=overall,
        compliant=bool(reports) and overall >= threshold,
        documents=reports,
    )
