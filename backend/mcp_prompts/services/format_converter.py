"""Conversion between the canonical Prompt and its serialized forms.

- json:     field-for-field serialization of the entity
- mdc:      Cursor rules file (frontmatter + markdown body + Variables section)
- pgai:     flat vector-store payload with everything else folded into metadata
- template: content with placeholders kept, restyled, or filled with defaults

Conversion errors are never recovered here; a malformed document is the
caller's authoring error and surfaces as InvalidFormatError.
"""
import json
import logging
import re
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import ValidationError

from mcp_prompts.errors import InvalidFormatError, UnsupportedFormatError
from mcp_prompts.schemas.base import CamelModel
from mcp_prompts.schemas.prompt import Prompt, TemplateVariable, generate_prompt_id, utcnow
from mcp_prompts.services.template_engine import (
    DelimiterStyle,
    apply_variables,
    convert_delimiters,
    extract_variables,
)

logger = logging.getLogger(__name__)

GLOB_TAG_PREFIX = "glob:"
VARIABLES_HEADING = "## Variables"

# Entity fields that to_pgai folds into the payload's metadata object
PGAI_METADATA_FIELDS = (
    "description",
    "isTemplate",
    "variables",
    "tags",
    "category",
    "createdAt",
    "updatedAt",
    "version",
)


class PromptFormat(str, Enum):
    JSON = "json"
    MDC = "mdc"
    PGAI = "pgai"
    TEMPLATE = "template"


# ── Options ──────────────────────────────────────────────────────


class MdcFormatOptions(CamelModel):
    globs: Optional[list[str]] = None  # overrides globs derived from tags
    include_variables: bool = True


class VectorConfig(CamelModel):
    dimension: int = 1536
    metric: Literal["cosine", "euclidean", "manhattan"] = "cosine"


class PgaiFormatOptions(CamelModel):
    generate_embeddings: bool = False
    vector_config: Optional[VectorConfig] = None
    collection: Optional[str] = None


class TemplateFormatOptions(CamelModel):
    delimiter_style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY
    source_style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY
    default_values: Optional[dict[str, str]] = None


class PromptConversionOptions(CamelModel):
    mdc: Optional[MdcFormatOptions] = None
    pgai: Optional[PgaiFormatOptions] = None
    template: Optional[TemplateFormatOptions] = None


# ── Helpers ──────────────────────────────────────────────────────


def create_prompt(data: Union[dict, Prompt]) -> Prompt:
    """Canonical entity from partial data: id, timestamps and version filled in."""
    if isinstance(data, Prompt):
        return data.clone()
    fields = {k: v for k, v in dict(data).items() if v is not None}
    fields.setdefault("name", "Untitled Prompt")
    fields.setdefault("content", "")
    if not fields.get("id"):
        fields["id"] = generate_prompt_id(fields["name"])
    now = utcnow()
    if "createdAt" not in fields and "created_at" not in fields:
        fields["created_at"] = now
    if "updatedAt" not in fields and "updated_at" not in fields:
        fields["updated_at"] = now
    try:
        return Prompt.model_validate(fields)
    except ValidationError as e:
        raise InvalidFormatError(f"Invalid prompt data: {e}") from e


def glob_patterns(tags: list[str]) -> list[str]:
    return [t[len(GLOB_TAG_PREFIX):] for t in tags if t.startswith(GLOB_TAG_PREFIX)]


def _load_json_object(payload: Union[str, bytes, dict], label: str) -> dict:
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise InvalidFormatError(f"Invalid {label} JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidFormatError(f"{label} payload must be a JSON object")
    return payload


def _resolve_format(fmt: Union[PromptFormat, str]) -> PromptFormat:
    try:
        return PromptFormat(fmt)
    except ValueError:
        raise UnsupportedFormatError(fmt) from None


# ── JSON ─────────────────────────────────────────────────────────


def to_json(prompt: Prompt) -> str:
    return json.dumps(prompt.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)


def from_json(payload: Union[str, bytes, dict]) -> Prompt:
    return create_prompt(_load_json_object(payload, "JSON"))


# ── MDC ──────────────────────────────────────────────────────────

_FRONTMATTER = re.compile(r"\A\s*---[ \t]*\n(.*?)^---[ \t]*$\n?", re.S | re.M)
_TITLE = re.compile(r"^#[ \t]+(.+?)[ \t]*$")
_VARIABLES_HEADING = re.compile(rf"^{re.escape(VARIABLES_HEADING)}[ \t]*$", re.M)
# Body lines that would read as the section heading carry one extra leading backslash
_HEADING_LIKE = re.compile(rf"^\\*{re.escape(VARIABLES_HEADING)}[ \t]*$", re.M)
_ESCAPED_HEADING = re.compile(rf"^\\(\\*{re.escape(VARIABLES_HEADING)}[ \t]*)$", re.M)
_VARIABLE_LINE = re.compile(r"^[-*][ \t]+`([^`]+)`(?::[ \t]?(.*))?$")
_VARIABLE_ATTR = re.compile(r"^[ \t]+[-*][ \t]+(Required|Default|Type|Options):[ \t]*(.*)$", re.I)


def _frontmatter_value(value: str) -> str:
    """Plain text when it survives a line-based parse, else a JSON string."""
    if "\n" in value or value != value.strip() or value.startswith('"'):
        return json.dumps(value, ensure_ascii=False)
    return value


def _plain_option(option: str) -> bool:
    """True when the option survives the comma-separated form unchanged."""
    return bool(option) and option == option.strip() and "," not in option and not option.startswith("[")


def escape_body(content: str) -> str:
    return _HEADING_LIKE.sub(lambda m: "\\" + m.group(0), content)


def unescape_body(content: str) -> str:
    return _ESCAPED_HEADING.sub(lambda m: m.group(1), content)


def _render_variable(var: TemplateVariable) -> list[str]:
    if var.is_plain:
        return [f"- `{var.name}`"]
    lines = [f"- `{var.name}`: {var.description or ''}".rstrip()]
    if var.required is not None:
        lines.append(f"  - Required: {str(var.required).lower()}")
    if var.default is not None:
        lines.append(f"  - Default: `{var.default}`")
    if var.type:
        lines.append(f"  - Type: {var.type}")
    if var.options:
        if any(not _plain_option(o) for o in var.options):
            lines.append(f"  - Options: {json.dumps(var.options, ensure_ascii=False)}")
        else:
            lines.append(f"  - Options: {', '.join(var.options)}")
    return lines


def to_mdc(prompt: Prompt, options: Optional[MdcFormatOptions] = None) -> str:
    """Render a prompt as a Cursor rules (.mdc) document.

    Templates always get a Variables section so `is_template` survives a round
    trip; when the entity lists no variables they are extracted from content.
Body lines that look like the Variables heading get a leading backslash.
    """
    options = options or MdcFormatOptions()
    globs = options.globs if options.globs is not None else glob_patterns(prompt.tags)

    header = ["---"]
    if prompt.description:
        header.append(f"description: {_frontmatter_value(prompt.description)}")
    if globs:
        header.append(f"globs: {json.dumps(globs, ensure_ascii=False)}")
    header.append("---")

    title = " ".join(prompt.name.split())
    sections = ["\n".join(header), f"# {title}", escape_body(prompt.content)]

    if options.include_variables and prompt.is_template:
        specs = prompt.variable_specs() or [
            TemplateVariable(name=n) for n in extract_variables(prompt.content)
        ]
        lines = [VARIABLES_HEADING, ""]
        for var in specs:
            lines.extend(_render_variable(var))
        sections.append("\n".join(lines).rstrip())

    return "\n\n".join(sections) + "\n"


def _parse_frontmatter(block: str) -> tuple[Optional[str], list[str]]:
    description = None
    globs: list[str] = []
    for line in block.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            raise InvalidFormatError(f"Malformed metadata line: {line!r}")
        key, value = key.strip(), value.strip()
        if key == "description":
            if value.startswith('"'):
                try:
                    description = json.loads(value)
                except ValueError as e:
                    raise InvalidFormatError(f"Invalid quoted description: {e}") from e
            else:
                description = value or None
        elif key == "globs":
            try:
                parsed = json.loads(value) if value else []
            except ValueError as e:
                raise InvalidFormatError(f"Invalid globs list: {e}") from e
            if not isinstance(parsed, list) or not all(isinstance(g, str) for g in parsed):
                raise InvalidFormatError("globs must be a list of strings")
            globs = parsed
        else:
            logger.debug(f"Ignoring MDC metadata key {key!r}")
    return description, globs


def _parse_variables(section: str) -> list[Union[str, TemplateVariable]]:
    entries: list[dict[str, Any]] = []
    for line in section.splitlines():
        var_match = _VARIABLE_LINE.match(line)
        if var_match:
            entry: dict[str, Any] = {"name": var_match.group(1).strip()}
            if var_match.group(2):
                entry["description"] = var_match.group(2).strip()
            entries.append(entry)
            continue
        attr_match = _VARIABLE_ATTR.match(line)
        if attr_match and entries:
            key, value = attr_match.group(1).lower(), attr_match.group(2).strip()
            if key == "required":
                entries[-1]["required"] = value.lower() == "true"
            elif key == "default":
                entries[-1]["default"] = value[1:-1] if len(value) >= 2 and value[0] == value[-1] == "`" else value
            elif key == "type":
                entries[-1]["type"] = value
            elif key == "options":
                if value.startswith("["):
                    try:
                        entries[-1]["options"] = json.loads(value)
                    except ValueError as e:
                        raise InvalidFormatError(f"Invalid options list: {e}") from e
                else:
                    entries[-1]["options"] = [o.strip() for o in value.split(",") if o.strip()]

    variables: list[Union[str, TemplateVariable]] = []
    for entry in entries:
        if entry.keys() == {"name"}:
            variables.append(entry["name"])
            continue
        try:
            variables.append(TemplateVariable.model_validate(entry))
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid variable {entry['name']!r}: {e}") from e
    return variables


def from_mdc(document: str) -> Prompt:
    """Parse a rules document produced by to_mdc (or written by hand)."""
    if not isinstance(document, str):
        raise InvalidFormatError("MDC document must be text")
    text = document.replace("\r\n", "\n")

    match = _FRONTMATTER.match(text)
    if not match:
        raise InvalidFormatError("MDC document must start with a --- metadata block")
    description, globs = _parse_frontmatter(match.group(1))

    body_lines = text[match.end():].split("\n")
    while body_lines and not body_lines[0].strip():
        body_lines.pop(0)
    title = _TITLE.match(body_lines[0]) if body_lines else None
    if not title:
        raise InvalidFormatError("MDC document has no '# title' line after the metadata block")
    rest = "\n".join(body_lines[1:])

    variables: list[Union[str, TemplateVariable]] = []
    is_template = False
    headings = list(_VARIABLES_HEADING.finditer(rest))
    if headings:
        last = headings[-1]
        is_template = True
        variables = _parse_variables(rest[last.end():])
        rest = rest[:last.start()]

    return create_prompt({
        "name": title.group(1),
        "description": description,
        "content": unescape_body(rest.strip("\n")),
        "is_template": is_template,
        "variables": variables,
        "tags": [f"{GLOB_TAG_PREFIX}{g}" for g in globs],
    })


# ── PGAI ─────────────────────────────────────────────────────────


def to_pgai(prompt: Prompt, options: Optional[PgaiFormatOptions] = None) -> dict[str, Any]:
    """Flat payload for vector stores; entity fields ride along in metadata."""
    options = options or PgaiFormatOptions()
    dumped = prompt.model_dump(mode="json", by_alias=True)
    metadata = dict(dumped["metadata"])
    metadata.update({field: dumped[field] for field in PGAI_METADATA_FIELDS})

    payload: dict[str, Any] = {
        "id": prompt.id,
        "name": prompt.name,
        "content": prompt.content,
        "metadata": metadata,
    }
    if options.collection:
        payload["collection"] = options.collection
    if options.generate_embeddings:
        vector = options.vector_config or VectorConfig()
        payload["embedding"] = {
            "text": prompt.content,
            "dimension": vector.dimension,
            "metric": vector.metric,
        }
    return payload


def from_pgai(payload: Union[str, bytes, dict]) -> Prompt:
    """Rebuild an entity; unrecognized metadata keys go back into `metadata`."""
    data = _load_json_object(payload, "PGAI")
    for key in ("name", "content"):
        if not isinstance(data.get(key), str):
            raise InvalidFormatError(f"PGAI payload is missing string field {key!r}")
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise InvalidFormatError("PGAI metadata must be an object")

    fields = {k: metadata[k] for k in PGAI_METADATA_FIELDS if k in metadata}
    fields.update(
        id=data.get("id"),
        name=data["name"],
        content=data["content"],
        metadata={k: v for k, v in metadata.items() if k not in PGAI_METADATA_FIELDS},
    )
    return create_prompt(fields)


# ── Template ─────────────────────────────────────────────────────


def to_template(prompt: Prompt, options: Optional[TemplateFormatOptions] = None) -> str:
    """Content with placeholders restyled, or filled when default_values is given.

    Descriptor defaults apply underneath explicit default_values. Anything left
    unfilled is rewritten into the target delimiter style.
    """
    options = options or TemplateFormatOptions()
    if not prompt.is_template:
        return prompt.content

    content = prompt.content
    if options.default_values is not None:
        values = {v.name: v.default for v in prompt.variable_specs() if v.default is not None}
        values.update(options.default_values)
        content = apply_variables(content, values, options.source_style)
    return convert_delimiters(content, options.source_style, options.delimiter_style)


# ── Dispatch ─────────────────────────────────────────────────────


def to_format(
    prompt: Prompt,
    fmt: Union[PromptFormat, str],
    options: Optional[PromptConversionOptions] = None,
) -> Union[str, dict[str, Any]]:
    fmt = _resolve_format(fmt)
    options = options or PromptConversionOptions()
    if fmt == PromptFormat.JSON:
        return to_json(prompt)
    if fmt == PromptFormat.MDC:
        return to_mdc(prompt, options.mdc)
    if fmt == PromptFormat.PGAI:
        return to_pgai(prompt, options.pgai)
    return to_template(prompt, options.template)


def from_format(payload: Union[str, bytes, dict], fmt: Union[PromptFormat, str]) -> Prompt:
    fmt = _resolve_format(fmt)
    if fmt == PromptFormat.JSON:
        return from_json(payload)
    if fmt == PromptFormat.MDC:
        return from_mdc(payload)
    if fmt == PromptFormat.PGAI:
        return from_pgai(payload)
    raise UnsupportedFormatError(fmt.value)
