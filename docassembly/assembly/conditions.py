"""Template condition evaluation.

A template may carry a condition expression such as ``x == true`` or
``age >= 18 and state == "MN"``. Expressions are compiled with a sandboxed
Jinja2 environment and evaluated against the submitted answers. Undefined
names raise instead of silently evaluating to false, so a condition that
references a missing answer is reported like any other evaluation failure.

A condition that cannot be evaluated excludes its template.
"""

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from docassembly.assembly.models import Template

logger = logging.getLogger(__name__)

_environment = SandboxedEnvironment(undefined=StrictUndefined)


@lru_cache(maxsize=512)
def _compile(condition: str):
    return _environment.compile_expression(condition, undefined_to_none=False)


def _evaluation_context(answers: Mapping[str, Any]) -> dict[str, Any]:
    context = {key.lower(): value for key, value in answers.items()}
    context.update(answers)
    return context


def applies(template: Template, answers: Mapping[str, Any]) -> bool:
    """Decide whether a template applies to the given answers.

    Args:
        template: The template whose condition is checked.
        answers: Answer values keyed by variable name.

    Returns:
        True when the template has no condition or its condition is truthy,
        False when the condition is falsy or cannot be evaluated.
    """
    condition = (template.condition or "").strip()
    if not condition:
        return True

    try:
        expression = _compile(condition)
        return bool(expression(**_evaluation_context(answers)))
    except (TemplateError, TypeError, ValueError, ArithmeticError) as e:
        logger.warning(
            f"Excluding template {template.template_id}: "
            f"condition {condition!r} could not be evaluated ({e})"
        )
        return False


def filter_templates_by_condition(
    templates: Iterable[Template], answers: Mapping[str, Any]
) -> list[Template]:
    """Keep the templates whose condition applies, preserving order."""
    return [template for template in templates if applies(template, answers)]
