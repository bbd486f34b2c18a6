"""
Variable substitution for script content.

Scripts may reference variables as ``${name}``. Substitution only changes
the text handed to the executor; the script's identity hash is always taken
from the original content.
"""

import re
from collections.abc import Mapping

VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_variables(content: str, variables: Mapping[str, str] | None) -> str:
    """
    Replace ``${name}`` tokens with configured values.

    Unknown variables are left in place verbatim. A variable mapped to
    ``None`` is replaced with the empty string.
    """
    if not content or not variables:
        return content

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return variables[name] or ""
        return match.group(0)

    return VARIABLE_PATTERN.sub(_replace, content)


def get_variable_names(content: str) -> list[str]:
    """Distinct variable names referenced by content, in order of first use."""
    if not content:
        return []

    names: list[str] = []
    for match in VARIABLE_PATTERN.finditer(content):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


def get_unresolved_variables(
    content: str,
    variables: Mapping[str, str] | None,
) -> list[str]:
    """Variable names referenced by content that have no configured value."""
    known = variables or {}
    return [name for name in get_variable_names(content) if name not in known]
