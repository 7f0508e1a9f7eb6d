"""Interpolation of ``{{fieldId}}`` placeholders in display text."""

import logging
import re

from ._expr import UnresolvedReferenceError, ValueContext, display_string

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


def template_references(template: str) -> tuple[str, ...]:
    """Return the placeholder names of a template, in first-use order.

    Example:
        >>> template_references("{{x}} doubled is {{ y }}, again {{x}}")
        ('x', 'y')

    """
    names = (m.group(1) for m in _PLACEHOLDER_RE.finditer(template))
    return tuple(dict.fromkeys(name for name in names if name))


def interpolate(template: str, context: ValueContext) -> str:
    """Replace each placeholder with the display string of the field's value.

    Placeholders resolve like expression identifiers (``{{price}}``,
    ``{{price.value}}``, ``{{result.total}}``). A placeholder that does not
    resolve renders as an empty string.

    Args:
        template: Text containing ``{{fieldId}}`` placeholders.
        context: Current values of the referenced fields.

    Returns:
        The interpolated text.

    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if not name:
            return ""
        try:
            value = context.resolve(tuple(name.split(".")))
        except UnresolvedReferenceError:
            logger.debug("Placeholder {{%s}} does not resolve; rendering empty", name)
            return ""
        return display_string(value)

    return _PLACEHOLDER_RE.sub(_replace, template)
