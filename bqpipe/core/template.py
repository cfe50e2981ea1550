"""Strict variable substitution for SQL files.

Placeholders use a minimal mustache-like syntax, ``{{ name }}``. Only plain
value interpolation is supported. A reference to a variable that is not
defined is an error: silently rendering an empty string would produce SQL
that runs but is wrong.
"""

import re
from typing import Dict, List, Mapping, Optional

from bqpipe.exceptions import RenderError, UndefinedVariableError
from bqpipe.logging import get_logger

logger = get_logger(__name__)

OPEN_DELIMITER = "{{"
CLOSE_DELIMITER = "}}"

# A leading dot is accepted for templates written as {{ .name }}
_PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_NAME_PATTERN = re.compile(r"\.?([A-Za-z_][A-Za-z0-9_]*)")

DATASET_VARIABLE = "dataset"
PROJECT_ID_VARIABLE = "project_id"


def build_render_context(
    variables: Mapping[str, str], dataset: str = "", project_id: str = ""
) -> Dict[str, str]:
    """Build the variables available to every SQL file in a run.

    The automatic ``dataset`` and ``project_id`` variables are added after the
    user variables, so they shadow user variables of the same name.
    """
    context = dict(variables)
    if dataset:
        context[DATASET_VARIABLE] = dataset
    if project_id:
        context[PROJECT_ID_VARIABLE] = project_id
    return context


def _placeholder_name(expression: str, path: str) -> str:
    match = _NAME_PATTERN.fullmatch(expression.strip())
    if not match:
        raise RenderError(
            path, f"unsupported template expression '{{{{{expression}}}}}'"
        )
    return match.group(1)


def _check_unterminated(text: str, path: str) -> None:
    remainder = _PLACEHOLDER_PATTERN.sub("", text)
    position = remainder.find(OPEN_DELIMITER)
    if position != -1:
        line = remainder.count("\n", 0, position) + 1
        raise RenderError(path, f"unterminated '{OPEN_DELIMITER}' near line {line}")


def find_placeholders(text: str, path: str = "<string>") -> List[str]:
    """Return the variable names referenced in text, in order of appearance.

    Raises:
        RenderError: If the text contains an unsupported or unterminated
            placeholder
    """
    _check_unterminated(text, path)
    return [
        _placeholder_name(match.group(1), path)
        for match in _PLACEHOLDER_PATTERN.finditer(text)
    ]


def render(text: str, context: Mapping[str, str], path: Optional[str] = None) -> str:
    """Substitute every placeholder in text with its value from context.

    Nothing is returned unless every placeholder can be resolved.

    Args:
        text: Raw SQL text
        context: Variable values
        path: Path of the SQL file, used in error messages

    Returns:
        Rendered SQL text

    Raises:
        UndefinedVariableError: If a placeholder names a variable missing
            from context
        RenderError: If a placeholder is malformed
    """
    path = path or "<string>"
    names = find_placeholders(text, path)

    missing = []
    for name in names:
        if name not in context and name not in missing:
            missing.append(name)
    if missing:
        raise UndefinedVariableError(path, missing)

    if names:
        logger.debug(f"Substituting {len(names)} placeholder(s) in {path}")
    return _PLACEHOLDER_PATTERN.sub(
        lambda match: context[_placeholder_name(match.group(1), path)], text
    )
