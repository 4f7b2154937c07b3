"""
Robust JSON extraction from LLM output.

JSON generation tasks (risk register, stakeholder register, milestone list and
the like) ask the provider for an array of row objects keyed by the task's
``json_columns``; the parsed rows become the Markdown table in the saved
document and the ``data`` field of JSON output.

Models like to wrap that array in markdown fences, leave trailing commas, emit
Python literals, or pad it with prose.  ``parse_json_robust`` tries a series of
increasingly forgiving strategies and raises ``JSONParseError`` when none of
them work, which the generator treats as a retryable failure.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Tuple

from app.errors import JSONParseError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 400


def parse_json_robust(response: str) -> Any:
    """
    Try multiple strategies to parse JSON from potentially messy LLM output.

    Handles:
    - Markdown code fences (```json … ```, ``` … ```)
    - Trailing commas before ] or }
    - Python-style True / False / None
    - Surrounding prose (finds the first balanced [...] or {...} block)
    - Missing closing bracket (adds one and retries)

    Returns the parsed value; raises ``JSONParseError`` if every strategy fails.
    """
    if not response or not response.strip():
        raise JSONParseError("")

    text = response.strip()

    # Strategy 1: direct parse
    ok, val = _try_json(text)
    if ok:
        return val

    # Strategy 2: strip markdown code fences
    stripped = strip_code_fences(text)
    if stripped != text:
        ok, val = _try_json(stripped)
        if ok:
            return val
        text = stripped  # work on stripped version from here

    # Strategy 3: fix common JSON mangling
    fixed = fix_json_issues(text)
    ok, val = _try_json(fixed)
    if ok:
        return val

    # Strategy 4: extract JSON structure from surrounding prose
    for bracket_pair in (("[", "]"), ("{", "}")):
        fragment = extract_json_structure(text, *bracket_pair)
        if fragment:
            ok, val = _try_json(fragment)
            if ok:
                return val
            ok, val = _try_json(fix_json_issues(fragment))
            if ok:
                return val

    # Strategy 5: attempt to close a truncated array / object
    for suffix in ("]", "}", "}]"):
        ok, val = _try_json(fixed + suffix)
        if ok:
            logger.debug("parse_json_robust: recovered with suffix %r", suffix)
            return val

    logger.warning(
        "parse_json_robust: all strategies failed. Preview: %s",
        response[:PREVIEW_CHARS],
    )
    raise JSONParseError(response[:PREVIEW_CHARS])


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` delimiters that LLMs often wrap output in."""
    # Remove opening fence (with optional language tag)
    text = re.sub(r"^```(?:json|python|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
    # Remove closing fence
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def fix_json_issues(text: str) -> str:
    """Repair the most common JSON mangling patterns from LLMs."""
    # Trailing commas before ] or }
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    # Python → JSON literals
    text = re.sub(r"\bTrue\b", "true", text)
    text = re.sub(r"\bFalse\b", "false", text)
    text = re.sub(r"\bNone\b", "null", text)
    # Line comments; the lookbehind keeps "https://" intact
    text = re.sub(r"(?<![:\"])//[^\n]*", "", text)
    return text.strip()


def extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """
    Find the first complete balanced open_b … close_b structure in *text*.
    Returns the matched fragment, or empty string if not found.
    """
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""
