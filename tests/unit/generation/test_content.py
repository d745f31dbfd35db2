"""
Tests for viral ideas, scripts and metadata generation.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from vlogstudio.core.errors import AuthError, MalformedResponse, RateLimited, ValidationError
from vlogstudio.core.models import ProviderId
from vlogstudio.generation.content import DEFAULT_VIRAL_IDEAS, ContentGenerator, default_metadata

from utils import RecordingSleep


@pytest.fixture
def llm():
    """Mock Gemini text provider."""
    mock = MagicMock()
    mock.provider_id = ProviderId.GEMINI
    mock.model_name = "gemini-2.5-flash"
    mock.is_configured.return_value = True
    mock.get_provider_name.return_value = "gemini"
    mock.generate_json = AsyncMock()
    return mock


@pytest.fixture
def content(settings, llm):
    return ContentGenerator(settings, llm=llm, sleep=RecordingSleep())


class TestViralIdeas:
    """Tests for idea generation."""

    @pytest.mark.asyncio
    async def test_generated_ideas(self, content, llm):
        llm.generate_json.return_value = [{"title": "Village mornings"}]
        assert await content.viral_ideas("village life", 1) == [{"title": "Village mornings"}]
        prompt = llm.generate_json.call_args[0][0]
        assert '"village life"' in prompt

    @pytest.mark.asyncio
    async def test_defaults_without_key(self, content, llm):
        llm.is_configured.return_value = False
        assert await content.viral_ideas() == DEFAULT_VIRAL_IDEAS
        llm.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_defaults_after_retries(self, content, llm):
        llm.generate_json.side_effect = RateLimited("quota")
        assert await content.viral_ideas() == DEFAULT_VIRAL_IDEAS
        assert llm.generate_json.call_count == 2

    @pytest.mark.asyncio
    async def test_defaults_on_wrong_shape(self, content, llm):
        llm.generate_json.return_value = {"ideas": []}
        assert await content.viral_ideas() == DEFAULT_VIRAL_IDEAS


class TestViralScript:
    """Tests for script generation."""

    @pytest.mark.asyncio
    async def test_script(self, content, llm):
        llm.generate_json.return_value = {"scenes": [{"sceneNumber": 1}], "overallTitle": "Harvest"}
        script = await content.viral_script("harvest festival", "short", 8)

        assert script["overallTitle"] == "Harvest"
        prompt = llm.generate_json.call_args[0][0]
        assert "Number of scenes/images: 8" in prompt
        assert "~7 seconds" in prompt

    @pytest.mark.asyncio
    async def test_validation(self, content):
        with pytest.raises(ValidationError):
            await content.viral_script("  ")
        with pytest.raises(ValidationError):
            await content.viral_script("harvest", image_count=0)

    @pytest.mark.asyncio
    async def test_requires_key(self, content, llm):
        llm.is_configured.return_value = False
        with pytest.raises(AuthError) as exc_info:
            await content.viral_script("harvest festival")
        assert exc_info.value.message == "Gemini API key required for script generation"

    @pytest.mark.asyncio
    async def test_non_object_result(self, content, llm):
        llm.generate_json.return_value = ["scene one"]
        with pytest.raises(MalformedResponse):
            await content.viral_script("harvest festival")


class TestMetadata:
    """Tests for metadata generation."""

    @pytest.mark.asyncio
    async def test_generated(self, content, llm):
        llm.generate_json.return_value = {"title_en": "Bonalu", "tags": ["telugu"]}
        assert (await content.metadata("Bonalu festival"))["title_en"] == "Bonalu"

    @pytest.mark.asyncio
    async def test_defaults(self, content, llm):
        llm.is_configured.return_value = False
        metadata = await content.metadata("Bonalu festival", "long")
        assert metadata == default_metadata("Bonalu festival", "long")
        assert metadata["title_en"].startswith("Bonalu festival")
        assert "#Bonalufestival" in metadata["description_en"]

    @pytest.mark.asyncio
    async def test_defaults_on_error(self, content, llm):
        llm.generate_json.side_effect = MalformedResponse("not json")
        assert (await content.metadata("Bonalu"))["category"] == "Entertainment"

    @pytest.mark.asyncio
    async def test_topic_required(self, content):
        with pytest.raises(ValidationError):
            await content.metadata("")
