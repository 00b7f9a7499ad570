"""Prompt entity and request schemas."""
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import Field, field_validator

from mcp_prompts.schemas.base import CamelModel
from mcp_prompts.services.template_engine import (
    DelimiterStyle,
    apply_variables,
    extract_variables,
)

VariableType = Literal["string", "number", "boolean", "array", "object"]

# Fields a merge can never touch: identity and creation are fixed, version is derived.
IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at", "version"})

ID_SUFFIX_LENGTH = 5
_ID_ALPHABET = string.ascii_lowercase + string.digits
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to "-", trim hyphens."""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def generate_prompt_id(name: str) -> str:
    """Slug of `name` plus a short random suffix, e.g. "code-review-x7q2m"."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{slugify(name) or 'prompt'}-{suffix}"


class TemplateVariable(CamelModel):
    """Rich description of a template variable."""
    name: str
    description: Optional[str] = None
    default: Optional[str] = None
    required: Optional[bool] = None
    type: Optional[VariableType] = None
    options: Optional[list[str]] = None

    @property
    def is_plain(self) -> bool:
        """True when only the name is known."""
        return self.model_dump(exclude_none=True).keys() == {"name"}


# Bare names and described variables are both accepted and round-tripped as given.
Variable = Union[str, TemplateVariable]


def _dedupe(tags: list[str]) -> list[str]:
    seen = set()
    ordered = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            ordered.append(tag)
    return ordered


class Prompt(CamelModel):
    """Canonical prompt entity."""
    id: str
    name: str
    description: Optional[str] = None
    content: str
    is_template: bool = False
    variables: list[Variable] = []
    tags: list[str] = []
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = Field(default=1, ge=1)
    metadata: dict[str, Any] = {}

    @field_validator("variables", "tags", "metadata", mode="before")
    @classmethod
    def none_to_empty(cls, v, info):
        if v is None:
            return {} if info.field_name == "metadata" else []
        return v

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, v):
        return _dedupe(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    # ── Variables ────────────────────────────────────────────────

    def variable_specs(self) -> list[TemplateVariable]:
        """All variables as descriptors; bare names become name-only descriptors."""
        return [
            v if isinstance(v, TemplateVariable) else TemplateVariable(name=v)
            for v in self.variables
        ]

    def variable_names(self) -> list[str]:
        return [v.name for v in self.variable_specs()]

    def extract_variables(self, style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY) -> list[str]:
        return extract_variables(self.content, style)

    def apply_variables(
        self,
        values: dict[str, Any],
        style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY,
    ) -> str:
        """Substitute values into content. Non-templates come back unchanged."""
        if not self.is_template:
            return self.content
        return apply_variables(self.content, values, style)

    # ── Versioning ───────────────────────────────────────────────

    def clone(self) -> "Prompt":
        """Deep copy sharing no mutable state with this instance."""
        return self.model_copy(deep=True)

    def create_version(self, changes: Union["PromptUpdate", dict, None] = None) -> "Prompt":
        """Return a copy with `changes` applied, version + 1 and a fresh updated_at.

        id, created_at and version are never taken from `changes`.
        """
        data = self.model_dump()
        data.update(merge_fields(changes))
        data["updated_at"] = max(utcnow(), self.created_at)
        data["version"] = self.version + 1
        return Prompt.model_validate(data)


class PromptCreate(CamelModel):
    id: Optional[str] = None
    name: str
    content: str
    description: Optional[str] = None
    is_template: bool = False
    variables: list[Variable] = []
    tags: list[str] = []
    category: Optional[str] = None
    metadata: dict[str, Any] = {}


class PromptUpdate(CamelModel):
    name: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    is_template: Optional[bool] = None
    variables: Optional[list[Variable]] = None
    tags: Optional[list[str]] = None
    category: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


def merge_fields(changes: Union[PromptUpdate, dict, None]) -> dict:
    """Only the fields the caller actually supplied, minus immutable ones."""
    if changes is None:
        return {}
    if isinstance(changes, dict):
        changes = PromptUpdate.model_validate(
            {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        )
    return {
        k: v for k, v in changes.model_dump(exclude_unset=True).items()
        if k not in IMMUTABLE_FIELDS
    }


class ListPromptsOptions(CamelModel):
    """Fixed filter / sort / paginate parameter set for list_prompts."""
    is_template: Optional[bool] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    search: Optional[str] = None
    sort: str = "updatedAt"
    order: Literal["asc", "desc"] = "desc"
    offset: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)


class ApplyTemplateResult(CamelModel):
    content: str
    original_prompt: Prompt
    applied_variables: dict[str, str] = {}
    missing_variables: list[str] = []
