"""Base schema classes with camelCase alias generation.

All prompt schemas inherit from this instead of BaseModel directly.
Python code stays snake_case. Serialized JSON (files, payloads) is camelCase.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, outputs camelCase with by_alias."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }
