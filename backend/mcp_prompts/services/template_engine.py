"""Template variable extraction and substitution.

Pure functions over (content, values, delimiter style). Four placeholder
notations are supported:

    double_curly  {{name}}   (default)
    curly         {name}
    dollar        ${name}
    percent       %name%

Whitespace just inside the delimiters is tolerated everywhere, so
`{{ name }}` and `{{name}}` are the same placeholder.
"""
import re
from enum import Enum
from typing import Any, Optional


class DelimiterStyle(str, Enum):
    DOUBLE_CURLY = "double_curly"
    CURLY = "curly"
    DOLLAR = "dollar"
    PERCENT = "percent"


# (opening, closing) regex fragments per style. Single-curly placeholders must
# not be part of a {{...}} pair, and dollar placeholders claim their own "{".
_DELIMITERS: dict[DelimiterStyle, tuple[str, str]] = {
    DelimiterStyle.DOUBLE_CURLY: (r"\{\{", r"\}\}"),
    DelimiterStyle.CURLY: (r"(?<![{$])\{(?!\{)", r"\}(?!\})"),
    DelimiterStyle.DOLLAR: (r"\$\{", r"\}"),
    DelimiterStyle.PERCENT: (r"%", r"%"),
}

_NAME_CHARS: dict[DelimiterStyle, str] = {
    DelimiterStyle.DOUBLE_CURLY: r"[^{}]+?",
    DelimiterStyle.CURLY: r"[^{}]+",
    DelimiterStyle.DOLLAR: r"[^{}]+",
    DelimiterStyle.PERCENT: r"[^%\n]+",
}

_RENDER: dict[DelimiterStyle, str] = {
    DelimiterStyle.DOUBLE_CURLY: "{{{{{}}}}}",
    DelimiterStyle.CURLY: "{{{}}}",
    DelimiterStyle.DOLLAR: "${{{}}}",
    DelimiterStyle.PERCENT: "%{}%",
}


def resolve_style(style: Optional[Any]) -> DelimiterStyle:
    """Accept a DelimiterStyle, its string value, or None (the default)."""
    if style is None:
        return DelimiterStyle.DOUBLE_CURLY
    return DelimiterStyle(style)


def extraction_pattern(style: DelimiterStyle) -> re.Pattern:
    opening, closing = _DELIMITERS[style]
    return re.compile(rf"{opening}\s*({_NAME_CHARS[style]})\s*{closing}")


def placeholder_pattern(name: str, style: DelimiterStyle) -> re.Pattern:
    """Pattern matching every placeholder for one variable name."""
    opening, closing = _DELIMITERS[style]
    return re.compile(rf"{opening}\s*{re.escape(name)}\s*{closing}")


def render_placeholder(name: str, style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY) -> str:
    return _RENDER[resolve_style(style)].format(name)


def extract_variables(content: str, style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY) -> list[str]:
    """Unique variable names in first-occurrence order."""
    style = resolve_style(style)
    names = []
    seen = set()
    for match in extraction_pattern(style).finditer(content):
        name = match.group(1).strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names


def apply_variables(
    content: str,
    values: dict[str, Any],
    style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY,
) -> str:
    """Replace placeholders for every key in `values`.

    Placeholders without a value are left as they are. Values are inserted
    literally (no backreference expansion); non-strings are str()-ed.
    """
    style = resolve_style(style)
    result = content
    for key, value in values.items():
        replacement = value if isinstance(value, str) else str(value)
        result = placeholder_pattern(key, style).sub(lambda _m: replacement, result)
    return result


def convert_delimiters(
    content: str,
    source: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY,
    target: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY,
) -> str:
    """Rewrite every `source`-style placeholder into `target` style."""
    source = resolve_style(source)
    target = resolve_style(target)
    if source == target:
        return content
    return apply_variables(
        content,
        {name: render_placeholder(name, target) for name in extract_variables(content, source)},
        source,
    )

