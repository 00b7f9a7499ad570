"""In-process filter / sort / paginate for backends that cannot push queries down.

The memory and file backends both list through apply_list_options(), so the
two behave identically. The postgres backend translates the same options to SQL.
"""
import logging
from typing import Iterable, Optional, Union

from mcp_prompts.schemas.prompt import ListPromptsOptions, Prompt

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELD = "updated_at"

# Accepted sort keys (camelCase as sent by callers, snake_case as used in Python)
SORT_FIELDS = {
    "id": "id",
    "name": "name",
    "description": "description",
    "content": "content",
    "category": "category",
    "version": "version",
    "isTemplate": "is_template",
    "is_template": "is_template",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
}


def as_list_options(options: Union[ListPromptsOptions, dict, None]) -> ListPromptsOptions:
    """Accept options as a model, a camelCase or snake_case dict, or None."""
    if options is None:
        return ListPromptsOptions()
    if isinstance(options, dict):
        return ListPromptsOptions.model_validate(options)
    return options


def resolve_sort_field(sort: Optional[str]) -> str:
    """Attribute name to sort on. Unknown keys fall back to updated_at."""
    if not sort:
        return DEFAULT_SORT_FIELD
    field = SORT_FIELDS.get(sort)
    if field is None:
        logger.debug(f"Unknown sort field {sort!r}, sorting by {DEFAULT_SORT_FIELD}")
        return DEFAULT_SORT_FIELD
    return field


def matches(prompt: Prompt, options: ListPromptsOptions) -> bool:
    """True if the prompt satisfies every supplied filter."""
    if options.is_template is not None and prompt.is_template != options.is_template:
        return False
    if options.category is not None and prompt.category != options.category:
        return False
    if options.tags and not set(options.tags).issubset(prompt.tags):
        return False
    if options.search:
        needle = options.search.lower()
        haystacks = (prompt.name, prompt.description or "", prompt.content)
        if not any(needle in h.lower() for h in haystacks):
            return False
    return True


def sort_prompts(prompts: Iterable[Prompt], field: str, order: str = "desc") -> list[Prompt]:
    """Stable sort on one attribute. Records without a value go last."""
    prompts = list(prompts)
    present = [p for p in prompts if getattr(p, field) is not None]
    absent = [p for p in prompts if getattr(p, field) is None]
    present.sort(key=lambda p: getattr(p, field), reverse=(order == "desc"))
    return present + absent


def paginate(prompts: list[Prompt], offset: int = 0, limit: Optional[int] = None) -> list[Prompt]:
    if limit is None:
        return prompts[offset:]
    return prompts[offset:offset + limit]


def apply_list_options(
    prompts: Iterable[Prompt],
    options: Union[ListPromptsOptions, dict, None] = None,
) -> list[Prompt]:
    options = as_list_options(options)
    filtered = [p for p in prompts if matches(p, options)]
    ordered = sort_prompts(filtered, resolve_sort_field(options.sort), options.order)
    return paginate(ordered, options.offset, options.limit)
