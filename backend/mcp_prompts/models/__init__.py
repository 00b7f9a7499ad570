"""Import all models so SQLAlchemy metadata knows about them."""
from mcp_prompts.models.base import Base
from mcp_prompts.models.prompt import PromptRecord

__all__ = ["Base", "PromptRecord"]
