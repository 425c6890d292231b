"""Tests for the summarizer services and the chat model factory."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from pensive.exceptions import ModelConfigurationError, SummarizerError, TransientNetworkError
from pensive.llm import CachedModelFactory, ModelConfig, ModelProvider, ProviderCredentials, ProviderRegistry
from pensive.models.digest import DigestTimeframe
from pensive.services.ai.analyzer import ContentAnalyzer
from pensive.services.ai.digest_writer import DigestItem, DigestWriter, format_digest_items

VALID_ANALYSIS = json.dumps({
    "summary": {"short": "A primer on transformers.", "paragraph": "Covers attention and training."},
    "entities": [{"name": "Transformer", "type": "technology"}, {"name": "Google", "type": "organization"}],
    "tags": ["ml", "nlp"],
    "priority": "deep-dive",
    "confidence": 0.85,
})

MODEL_CONFIG = ModelConfig(provider="gemini", model="fake-model")


def analyzer_with(*responses: str) -> ContentAnalyzer:
    return ContentAnalyzer(llm=FakeListChatModel(responses=list(responses)), model_config=MODEL_CONFIG)


class TestContentAnalyzer:
    """Tests for ContentAnalyzer.analyze."""

    async def test_parses_valid_output(self):
        result = await analyzer_with(VALID_ANALYSIS).analyze("Transformers", "Attention is all you need")

        assert result.summary.short == "A primer on transformers."
        assert [entity.name for entity in result.entities] == ["Transformer", "Google"]
        assert result.priority == "deep-dive"

    async def test_accepts_output_wrapped_in_code_fence(self):
        fenced = f"```json\n{VALID_ANALYSIS}\n```"
        result = await analyzer_with(fenced).analyze("Transformers", "body")
        assert result.confidence == 0.85

    async def test_falls_back_once_on_invalid_output(self):
        result = await analyzer_with("this is not json", VALID_ANALYSIS).analyze("Transformers", "body")
        assert result.tags == ["ml", "nlp"]

    async def test_schema_violation_triggers_fallback(self):
        bad_priority = json.dumps({**json.loads(VALID_ANALYSIS), "priority": "urgent"})
        result = await analyzer_with(bad_priority, VALID_ANALYSIS).analyze("Transformers", "body")
        assert result.priority == "deep-dive"

    async def test_two_invalid_outputs_raise_summarizer_error(self):
        with pytest.raises(SummarizerError):
            await analyzer_with("nope", "still nope").analyze("Transformers", "body")

    async def test_timeout_is_transient(self):
        analyzer = analyzer_with(VALID_ANALYSIS)
        with patch.object(analyzer, "_run_chain", AsyncMock(side_effect=asyncio.TimeoutError)):
            with pytest.raises(TransientNetworkError):
                await analyzer.analyze("Transformers", "body", timeout_seconds=1)

    def test_prompt_version_is_exposed(self):
        assert analyzer_with(VALID_ANALYSIS).prompt_info["version"] == "v1.0"


class TestDigestWriter:
    """Tests for DigestWriter.write_digest."""

    async def test_writes_digest(self):
        writer = DigestWriter(
            llm=FakeListChatModel(responses=[json.dumps({"title": "Week in AI", "body": "Lots happened."})]),
            model_config=MODEL_CONFIG,
        )
        items = [DigestItem(content_id=1, title="A", url="https://example.com/a", summary="Summary A")]

        output = await writer.write_digest(DigestTimeframe.WEEKLY, items)

        assert output.title == "Week in AI"

    def test_format_digest_items(self):
        items = [
            DigestItem(content_id=1, title="A", url="https://example.com/a", summary="x" * 1000),
            DigestItem(content_id=2, title="B", url="", summary=""),
        ]
        text = format_digest_items(items, summary_chars=10)
        assert "(id:1) A\nURL: https://example.com/a\nSummary: xxxxxxxxxx" in text
        assert text.endswith("(id:2) B")


class FakeProvider(ModelProvider):
    name = "fake"
    built = 0

    def build(self, config, api_key):
        FakeProvider.built += 1
        return FakeListChatModel(responses=["{}"])


class TestCachedModelFactory:
    """Tests for model creation and caching."""

    def _factory(self) -> CachedModelFactory:
        registry = ProviderRegistry()
        registry.register(FakeProvider)
        FakeProvider.built = 0
        return CachedModelFactory(ProviderCredentials(), registry)

    def test_same_config_reuses_model(self):
        factory = self._factory()
        config = ModelConfig.model_construct(provider="fake", model="m", temperature=0.2, base_url=None, max_retries=1)

        first = factory.create_model(config)
        second = factory.create_model(config)

        assert first is second
        assert FakeProvider.built == 1
        assert factory.cache_size() == 1

        factory.clear_cache()
        assert factory.cache_size() == 0

    def test_unknown_provider_is_a_configuration_error(self):
        factory = self._factory()
        with pytest.raises(ModelConfigurationError):
            factory.create_model(MODEL_CONFIG)

    def test_credentials_by_provider(self):
        credentials = ProviderCredentials(google_api_key="g-key", openai_api_key="")
        assert credentials.for_provider("gemini") == "g-key"
        assert credentials.for_provider("openai") is None
