"""Query template substitution.

Templates carry the fixed placeholder tokens ``{{from}}``, ``{{to}}`` and
``{{now}}``. Every occurrence of a token is replaced. A template that lacks a
required token, or that still contains a ``{{...}}`` token after substitution,
is rejected rather than sent to the provider half-resolved.
"""

from __future__ import annotations

import re
from typing import Iterable

from analytics_widgets.core.domain.errors import TemplateSubstitutionError
from analytics_widgets.core.domain.types import TimeRange

PLACEHOLDER_FROM = "from"
PLACEHOLDER_TO = "to"
PLACEHOLDER_NOW = "now"

PLACEHOLDER_NAMES: tuple[str, ...] = (PLACEHOLDER_FROM, PLACEHOLDER_TO, PLACEHOLDER_NOW)

DEFAULT_REQUIRED_PLACEHOLDERS: tuple[str, ...] = (PLACEHOLDER_FROM, PLACEHOLDER_TO)

_TOKEN_PATTERN = re.compile(r"\{\{(from|to|now)\}\}")
_ANY_TOKEN_PATTERN = re.compile(r"\{\{[^{}]*\}\}")


def placeholder_token(name: str) -> str:
    """Return the literal token for a placeholder name, e.g. ``{{from}}``."""
    return "{{" + name + "}}"


def find_placeholders(template: str) -> set[str]:
    """Return the known placeholder names present in ``template``."""
    return set(_TOKEN_PATTERN.findall(template))


def find_unresolved_tokens(text: str) -> list[str]:
    """Return every ``{{...}}`` token left in ``text``."""
    return _ANY_TOKEN_PATTERN.findall(text)


def render_query(
    template: str,
    time_range: TimeRange,
    now_ms: int,
    *,
    required: Iterable[str] = DEFAULT_REQUIRED_PLACEHOLDERS,
) -> str:
    """Substitute the selection and current time into a query template."""
    if not template or not template.strip():
        raise TemplateSubstitutionError("query template is empty", template=template)

    present = find_placeholders(template)
    missing = [name for name in required if name not in present]
    if missing:
        tokens = ", ".join(placeholder_token(name) for name in missing)
        raise TemplateSubstitutionError(
            f"query template is missing placeholder(s): {tokens}",
            template=template,
        )

    values = {
        PLACEHOLDER_FROM: str(time_range.from_),
        PLACEHOLDER_TO: str(time_range.to),
        PLACEHOLDER_NOW: str(now_ms),
    }
    rendered = _TOKEN_PATTERN.sub(lambda match: values[match.group(1)], template)

    unresolved = find_unresolved_tokens(rendered)
    if unresolved:
        raise TemplateSubstitutionError(
            f"query template has unresolved token(s): {', '.join(unresolved)}",
            template=template,
        )

    return rendered
