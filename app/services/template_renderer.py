"""
``{{placeholder}}`` substitution for stored templates.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Mapping, Optional

from app.errors import TemplateRenderError

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.-]*)\s*\}\}")


def _variable_field(variable: Any, name: str) -> Any:
    if isinstance(variable, Mapping):
        return variable.get(name)
    return getattr(variable, name, None)


def render_template(
    content: str,
    variables: Optional[Iterable[Any]] = None,
    values: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Substitute ``{{name}}`` placeholders in *content*.

    A value comes from *values*, then from the variable's ``default``.  A
    required variable with neither raises ``TemplateRenderError``.  Placeholders
    with no value and no declared variable are left as they are.
    """
    values = dict(values or {})
    declared: Dict[str, Any] = {}
    for variable in variables or []:
        declared[_variable_field(variable, "name")] = variable

    resolved: Dict[str, str] = {}
    for name, variable in declared.items():
        if values.get(name) not in (None, ""):
            resolved[name] = str(values[name])
        elif _variable_field(variable, "default") is not None:
            resolved[name] = str(_variable_field(variable, "default"))
        elif _variable_field(variable, "required"):
            raise TemplateRenderError(name)

    for name, value in values.items():
        resolved.setdefault(name, str(value))

    def _replace(match: "re.Match[str]") -> str:
        return resolved.get(match.group(1), match.group(0))

    return PLACEHOLDER_RE.sub(_replace, content)
