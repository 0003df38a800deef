"""Unit tests for conductor.llm.providers.base module."""

import pytest

from conductor.errors import ModelCallError
from conductor.llm.events import StreamDone, StreamError, TextDelta
from conductor.llm.providers.base import (
    ModelProvider,
    get_provider,
    register_provider,
)
from conductor.types.types import Message


class TestRegisterProvider:
    """Tests for register_provider decorator."""

    def test_register_provider(self):
        """Test register_provider decorator registers provider."""
        from conductor.llm.providers.base import _PROVIDER_REGISTRY

        original_registry = _PROVIDER_REGISTRY.copy()

        @register_provider("Test_Provider")
        class TestProvider(ModelProvider):
            def __init__(self, model=None):
                self.model = model

            async def stream(self, messages, tools=None, system_prompt=None, cancel_token=None):
                yield StreamDone()

        try:
            assert _PROVIDER_REGISTRY["test_provider"] is TestProvider
            provider = get_provider("TEST_PROVIDER", model="m-1")
            assert isinstance(provider, TestProvider)
            assert provider.model == "m-1"
        finally:
            _PROVIDER_REGISTRY.clear()
            _PROVIDER_REGISTRY.update(original_registry)

    def test_get_provider_unknown(self):
        with pytest.raises(ValueError, match="Unknown model provider: nope"):
            get_provider("nope")


class TestModelProvider:
    """Tests for ModelProvider default behavior."""

    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            ModelProvider()

    @pytest.mark.asyncio
    async def test_validate_default_is_noop(self, scripted_provider):
        await scripted_provider([]).validate()

    @pytest.mark.asyncio
    async def test_complete_collects_text(self, scripted_provider):
        provider = scripted_provider(
            [[TextDelta(content="Hello "), TextDelta(content="there"), StreamDone()]]
        )

        text = await provider.complete([Message(role="user", content="hi")], system_prompt="sys")

        assert text == "Hello there"
        assert provider.calls[0]["tools"] is None
        assert provider.calls[0]["system_prompt"] == "sys"

    @pytest.mark.asyncio
    async def test_complete_raises_on_stream_error(self, scripted_provider):
        provider = scripted_provider([[StreamError(message="bad request", status_code=400)]])

        with pytest.raises(ModelCallError, match="bad request") as exc_info:
            await provider.complete([Message(role="user", content="hi")])

        assert not exc_info.value.retryable
