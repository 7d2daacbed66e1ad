"""Tests for generative provider construction and request shapes."""

import io
import json
from types import SimpleNamespace

import pytest

from config.credentials import CredentialProvider, StaticCredentials
from config.settings import Settings
from llm.providers import BedrockProvider, OpenAIProvider, create_llm_provider


class TestFactory:
    def test_disabled(self):
        assert create_llm_provider(Settings(llm_provider="none")) is None

    def test_openai_without_key(self):
        assert create_llm_provider(Settings(llm_provider="openai", openai_api_key=None)) is None

    def test_openai(self):
        provider = create_llm_provider(Settings(
            llm_provider="openai", openai_api_key="sk-test", openai_llm_model="gpt-4o-mini", max_tokens=512,
        ))
        assert isinstance(provider, OpenAIProvider)
        assert provider.credentials.get_token() == "sk-test"
        assert provider.max_tokens == 512

    def test_bedrock(self):
        provider = create_llm_provider(Settings(llm_provider="bedrock", aws_region="us-west-2"))
        assert isinstance(provider, BedrockProvider)
        assert provider.region == "us-west-2"


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAIClient:
    def __init__(self, completions):
        self.chat = SimpleNamespace(completions=completions)
        self.closed = False

    async def close(self):
        self.closed = True


class RotatingCredentials(CredentialProvider):
    def __init__(self, token):
        self.token = token

    def get_token(self):
        return self.token


class TestOpenAIProvider:
    def _provider(self, content, credentials=None):
        completions = FakeCompletions(content)
        seen = {}
        built = []

        def client_class(**kwargs):
            seen.update(kwargs)
            client = FakeOpenAIClient(completions)
            built.append(client)
            return client

        provider = OpenAIProvider(
            credentials=credentials or StaticCredentials("sk-test"), client_factory=client_class
        )
        provider.built = built
        return provider, completions, seen

    @pytest.mark.asyncio
    async def test_request_shape(self):
        provider, completions, seen = self._provider(' {"leadScore": 70} ')
        content = await provider.agenerate("Analyze", system="You are", temperature=0.1, json_mode=True)

        assert content == '{"leadScore": 70}'
        assert seen == {"api_key": "sk-test"}
        assert completions.kwargs["messages"] == [
            {"role": "system", "content": "You are"},
            {"role": "user", "content": "Analyze"},
        ]
        assert completions.kwargs["temperature"] == 0.1
        assert completions.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        provider, _, _ = self._provider("")
        with pytest.raises(ValueError):
            await provider.agenerate("Analyze")

    @pytest.mark.asyncio
    async def test_client_reused_across_calls(self):
        provider, _, _ = self._provider("ok")
        await provider.agenerate("one")
        await provider.agenerate("two")
        assert len(provider.built) == 1

    @pytest.mark.asyncio
    async def test_rotated_key_rebuilds_client(self):
        credentials = RotatingCredentials("sk-old")
        provider, _, seen = self._provider("ok", credentials=credentials)
        await provider.agenerate("one")

        credentials.token = "sk-new"
        await provider.agenerate("two")

        assert len(provider.built) == 2
        assert provider.built[0].closed is True
        assert provider.built[1].closed is False
        assert seen == {"api_key": "sk-new"}

    @pytest.mark.asyncio
    async def test_aclose(self):
        provider, _, _ = self._provider("ok")
        await provider.agenerate("one")
        await provider.aclose()
        assert provider.built[0].closed is True


class FakeBedrockClient:
    def __init__(self, text):
        self.text = text
        self.request = None

    def invoke_model(self, **kwargs):
        self.request = kwargs
        body = json.dumps({"content": [{"type": "text", "text": self.text}]}).encode()
        return {"body": io.BytesIO(body)}


class TestBedrockProvider:
    @pytest.mark.asyncio
    async def test_agenerate(self):
        client = FakeBedrockClient(' "body": "Hi"} ')
        provider = BedrockProvider(max_tokens=256, client=client)

        content = await provider.agenerate("Write", system="Be brief", temperature=0.7, json_mode=True)

        assert content == '{"body": "Hi"}'
        body = json.loads(client.request["body"])
        assert body["anthropic_version"] == "bedrock-2023-05-31"
        assert body["system"] == "Be brief"
        assert body["max_tokens"] == 256
        assert body["temperature"] == 0.7
        assert body["messages"][-1] == {"role": "assistant", "content": [{"type": "text", "text": "{"}]}

    def test_plain_text_has_no_prefill(self):
        client = FakeBedrockClient("Hello there")
        provider = BedrockProvider(client=client)
        assert provider.generate("Write") == "Hello there"
        assert len(json.loads(client.request["body"])["messages"]) == 1

    def test_empty_response(self):
        provider = BedrockProvider(client=FakeBedrockClient(""))
        with pytest.raises(ValueError):
            provider.generate("Write")
