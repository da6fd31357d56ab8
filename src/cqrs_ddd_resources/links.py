"""``<%=field%>`` link templates and pagination links."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Any

from .exceptions import LinkTemplateError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .ports import IQueryOptions

SELF = "$self"

_PLACEHOLDER = re.compile(r"<%=\s*([A-Za-z_$][\w$]*)\s*%>")


def render_link(template: str, context: Mapping[str, Any]) -> str:
    """
    Substitute ``<%=field%>`` placeholders with values from *context*.

    Raises:
        LinkTemplateError: if a placeholder names a field not in *context*.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in context:
            raise LinkTemplateError(template, name)
        value = context[name]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_substitute, template)


def page_count(total: int, size: int) -> int:
    return math.ceil(total / size) if size else 0


def page_links(
    url: str,
    options: IQueryOptions,
    number: int,
    count: int,
) -> dict[str, str]:
    """
    Build ``$first`` / ``$last`` / ``$previous`` / ``$next`` links.

    Each link is the current options with only ``page.number`` replaced.
    """

    def _link(n: int) -> str:
        return url + options.clone({"page": {"number": n}}).to_query_string()

    links = {
        "$first": _link(1),
        "$last": _link(max(count, 1)),
    }
    if number > 1:
        links["$previous"] = _link(number - 1)
    if number < count:
        links["$next"] = _link(number + 1)
    return links
