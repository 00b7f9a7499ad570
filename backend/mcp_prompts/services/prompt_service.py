"""Prompt service: storage access plus template application.

The service is constructed with an explicit storage adapter and only calls
into it; adapters never call back.
"""
import logging
from typing import Any, Union

from mcp_prompts.schemas.prompt import (
    ApplyTemplateResult,
    ListPromptsOptions,
    Prompt,
    PromptCreate,
    PromptUpdate,
)
from mcp_prompts.services.storage.base import StorageAdapter
from mcp_prompts.services.template_engine import DelimiterStyle, extract_variables

logger = logging.getLogger(__name__)


class PromptService:
    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    async def get_prompt(self, prompt_id: str) -> Prompt:
        return await self.storage.get_prompt(prompt_id)

    async def add_prompt(self, data: Union[PromptCreate, Prompt, dict]) -> Prompt:
        prompt = await self.storage.save_prompt(data)
        logger.info(f"Added prompt {prompt.id}")
        return prompt

    async def update_prompt(self, prompt_id: str, changes: Union[PromptUpdate, dict]) -> Prompt:
        prompt = await self.storage.update_prompt(prompt_id, changes)
        logger.info(f"Updated prompt {prompt_id} to version {prompt.version}")
        return prompt

    async def delete_prompt(self, prompt_id: str) -> None:
        await self.storage.delete_prompt(prompt_id)

    async def list_prompts(self, options: Union[ListPromptsOptions, dict, None] = None) -> list[Prompt]:
        return await self.storage.list_prompts(options)

    async def list_templates(self) -> list[Prompt]:
        return await self.list_prompts(ListPromptsOptions(is_template=True))

    async def apply_template(
        self,
        prompt_id: str,
        variables: dict[str, Any],
        style: DelimiterStyle = DelimiterStyle.DOUBLE_CURLY,
    ) -> ApplyTemplateResult:
        """Substitute `variables` into a stored prompt.

        Non-template prompts come back unchanged with nothing applied.
        Placeholders the map does not cover stay in the content and are
        reported in missing_variables.
        """
        prompt = await self.storage.get_prompt(prompt_id)
        if not prompt.is_template:
            logger.debug(f"Prompt {prompt_id} is not a template; content returned as-is")
            return ApplyTemplateResult(content=prompt.content, original_prompt=prompt)

        applied = {key: value if isinstance(value, str) else str(value) for key, value in variables.items()}
        content = prompt.apply_variables(applied, style)
        return ApplyTemplateResult(
            content=content,
            original_prompt=prompt,
            applied_variables=applied,
            missing_variables=extract_variables(content, style),
        )

    async def backup(self) -> str:
        return await self.storage.backup()

    async def restore(self, backup_id: str) -> None:
        await self.storage.restore(backup_id)

    async def list_backups(self) -> list[str]:
        return await self.storage.list_backups()
