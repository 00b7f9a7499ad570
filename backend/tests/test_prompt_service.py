"""Unit tests for the prompt service."""
import re

import pytest

from mcp_prompts.errors import PromptNotFoundError
from mcp_prompts.services.prompt_service import PromptService
from mcp_prompts.services.template_engine import DelimiterStyle


@pytest.fixture
def service(memory_storage):
    """Create a service over connected memory storage."""
    return PromptService(memory_storage)


class TestPromptService:
    """Test cases for PromptService."""

    @pytest.mark.asyncio
    async def test_code_review_scenario(self, service, code_review_data):
        """Test add, apply, update and re-read of a template."""
        prompt = await service.add_prompt(code_review_data)
        assert re.match(r"^code-review-[a-z0-9]{5}$", prompt.id)
        assert prompt.version == 1

        result = await service.apply_template(prompt.id, {"code": "print(1)"})
        assert result.content == "Review print(1)"
        assert result.applied_variables == {"code": "print(1)"}
        assert result.missing_variables == []
        assert result.original_prompt == prompt

        updated = await service.update_prompt(prompt.id, {"tags": ["python"]})
        assert updated.version == 2
        assert (await service.get_prompt(prompt.id)).tags == ["python"]

    @pytest.mark.asyncio
    async def test_apply_reports_missing(self, service):
        """Test placeholders without values stay and are reported."""
        prompt = await service.add_prompt({
            "name": "Letter",
            "content": "Dear {{name}}, about {{topic}}",
            "isTemplate": True,
        })
        result = await service.apply_template(prompt.id, {"name": "Ada", "unused": 1})

        assert result.content == "Dear Ada, about {{topic}}"
        assert result.missing_variables == ["topic"]
        assert result.applied_variables == {"name": "Ada", "unused": "1"}

    @pytest.mark.asyncio
    async def test_apply_other_style(self, service):
        """Test a non-default delimiter style."""
        prompt = await service.add_prompt({"name": "Shell", "content": "ls ${dir}", "isTemplate": True})
        result = await service.apply_template(prompt.id, {"dir": "/tmp"}, DelimiterStyle.DOLLAR)
        assert result.content == "ls /tmp"

    @pytest.mark.asyncio
    async def test_apply_on_plain_prompt(self, service):
        """Test non-templates are returned unchanged."""
        prompt = await service.add_prompt({"name": "Plain", "content": "Hello {{name}}"})
        result = await service.apply_template(prompt.id, {"name": "Ada"})

        assert result.content == "Hello {{name}}"
        assert result.applied_variables == {}
        assert result.missing_variables == []

    @pytest.mark.asyncio
    async def test_apply_missing_prompt(self, service):
        """Test unknown ids propagate PromptNotFoundError."""
        with pytest.raises(PromptNotFoundError):
            await service.apply_template("missing", {})

    @pytest.mark.asyncio
    async def test_list_templates(self, service, code_review_data):
        """Test list_templates returns only templates."""
        template = await service.add_prompt(code_review_data)
        await service.add_prompt({"name": "Plain", "content": "x"})

        assert [p.id for p in await service.list_templates()] == [template.id]

    @pytest.mark.asyncio
    async def test_list_prompts_accepts_dict(self, service, code_review_data):
        """Test camelCase option dicts are accepted."""
        await service.add_prompt(code_review_data)
        await service.add_prompt({"name": "Plain", "content": "x"})

        result = await service.list_prompts({"isTemplate": False})
        assert [p.name for p in result] == ["Plain"]

    @pytest.mark.asyncio
    async def test_delete(self, service, code_review_data):
        """Test delete through the service."""
        prompt = await service.add_prompt(code_review_data)
        await service.delete_prompt(prompt.id)
        with pytest.raises(PromptNotFoundError):
            await service.get_prompt(prompt.id)

    @pytest.mark.asyncio
    async def test_backups_delegate(self, service):
        """Test backup operations are forwarded to storage."""
        backup_id = await service.backup()
        assert await service.list_backups() == [backup_id]
        await service.restore(backup_id)
