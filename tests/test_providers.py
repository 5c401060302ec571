"""Tests for model providers."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from codepair.config import ChatSettings, LocalSettings, OpenAISettings, settings_from_env
from codepair.providers import (
    ChatProvider,
    LocalModelProvider,
    MockProvider,
    OpenAIProvider,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderError,
    RateLimiter,
    RateLimitExceeded,
    UnrecognizedResponseError,
    UpstreamRateLimitError,
    create_provider,
)
from codepair.providers.base import GenerationOptions
from codepair.providers.chat import decode_chat_payload
from codepair.providers.local import decode_generate_payload


class Ticker:
    def __init__(self):
        self.t = 1000.0

    def __call__(self):
        return self.t


def client_for(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestRateLimiter:
    def test_blocks_after_max(self):
        ticker = Ticker()
        limiter = RateLimiter(max_requests=2, clock=ticker)
        limiter.check()
        limiter.check()
        with pytest.raises(RateLimitExceeded):
            limiter.check()

    def test_resets_after_window(self):
        ticker = Ticker()
        limiter = RateLimiter(max_requests=1, clock=ticker)
        limiter.check()
        ticker.t += 61
        limiter.check()
        assert limiter.requests == 1

    def test_checked_before_backend(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"response": "x;"})

        provider = LocalModelProvider(
            client=client_for(handler), rate_limiter=RateLimiter(max_requests=1)
        )
        provider.generate_completion("p")
        with pytest.raises(RateLimitExceeded) as exc:
            provider.generate_completion("p")
        assert exc.value.provider == "local"
        assert len(calls) == 1


class TestDecoders:
    def test_gpt_message(self):
        payload = {"index": 0, "message": {"role": "assistant", "content": "```cpp\nint x;\n```"}}
        assert decode_chat_payload(payload) == ["int x;"]

    def test_claude_content_parts(self):
        payload = {"message": {"role": "assistant", "content": [{"type": "text", "text": "class A {};"}]}}
        assert decode_chat_payload(payload) == ["class A {};"]

    def test_choices(self):
        payload = {"choices": [{"message": {"content": "a;"}}, {"text": "b;"}]}
        assert decode_chat_payload(payload) == ["a;", "b;"]

    def test_plain_string(self):
        assert decode_chat_payload("Here's the completion: x = 1") == ["x = 1"]

    def test_empty_choices(self):
        assert decode_chat_payload({"choices": []}) == []

    @pytest.mark.parametrize("payload", [42, None, {"data": "x"}, {"message": {"content": 7}}])
    def test_unrecognized(self, payload):
        with pytest.raises(UnrecognizedResponseError):
            decode_chat_payload(payload)

    def test_generate_payload(self):
        assert decode_generate_payload({"response": "<PRE> return 1; <MID>"}) == ["return 1;"]
        assert decode_generate_payload({"response": "  "}) == []
        with pytest.raises(UnrecognizedResponseError):
            decode_generate_payload({"error": "model not found"})


class TestLocalProvider:
    def test_generate(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "return a + b;"})

        provider = LocalModelProvider(LocalSettings(model="starcoder"), client=client_for(handler))
        result = provider.generate_completion(
            "complete me", GenerationOptions(completion_type="function", max_tokens=64)
        )
        assert result == ["return a + b;"]
        assert seen["url"] == "http://localhost:11434/api/generate"
        assert seen["body"]["model"] == "starcoder"
        assert seen["body"]["prompt"] == "<PRE> complete me <SUF> <MID>"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"]["num_predict"] == 64

    @pytest.mark.parametrize(
        "status,error",
        [(401, ProviderAuthError), (429, UpstreamRateLimitError)],
    )
    def test_status_errors(self, status, error):
        provider = LocalModelProvider(client=client_for(lambda r: httpx.Response(status)))
        with pytest.raises(error):
            provider.generate_completion("p")

    def test_generic_failure(self):
        provider = LocalModelProvider(client=client_for(lambda r: httpx.Response(500)))
        with pytest.raises(ProviderError) as exc:
            provider.generate_completion("p")
        assert type(exc.value) is ProviderError

    def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        provider = LocalModelProvider(client=client_for(handler))
        with pytest.raises(ProviderConnectionError):
            provider.generate_completion("p")

    def test_health(self):
        def handler(request):
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": []})

        assert LocalModelProvider(client=client_for(handler)).check_health()

    def test_health_down(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        assert not LocalModelProvider(client=client_for(handler)).check_health()


class TestChatProvider:
    def test_without_key_answers_offline(self):
        def handler(request):
            raise AssertionError("network should not be used")

        provider = ChatProvider(ChatSettings(api_key=None), client=client_for(handler))
        prompt = 'Convert this English description to python code:\n"function that adds two numbers"'
        result = provider.generate_completion(prompt, GenerationOptions(language="python"))
        assert result == ['def add(a, b):\n    """Add two numbers"""\n    return a + b']

    def test_with_key(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"content": "```ts\nlet a: number;\n```"}})

        provider = ChatProvider(
            ChatSettings(api_key="secret", model="gpt-4o-mini"), client=client_for(handler)
        )
        result = provider.generate_completion("p", GenerationOptions(language="typescript"))
        assert result == ["let a: number;"]
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["model"] == "gpt-4o-mini"
        user = seen["body"]["messages"][1]["content"]
        assert user.startswith("p\n\n")
        assert "TypeScript types" in user

    def test_auth_error(self):
        provider = ChatProvider(
            ChatSettings(api_key="bad"), client=client_for(lambda r: httpx.Response(401))
        )
        with pytest.raises(ProviderAuthError):
            provider.generate_completion("p")


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.response


def fake_openai(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def chat_response(*contents):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=c)) for c in contents]
    )


class TestOpenAIProvider:
    def test_generate(self):
        completions = FakeCompletions(chat_response("```python\nreturn a + b\n```", "pass"))
        provider = OpenAIProvider(OpenAISettings(model="gpt-4o"), client=fake_openai(completions))
        result = provider.generate_completion("p", GenerationOptions(language="python", n=2))
        assert result == ["return a + b", "pass"]
        assert completions.kwargs["model"] == "gpt-4o"
        assert completions.kwargs["n"] == 2
        assert "PEP 8" in completions.kwargs["messages"][1]["content"]

    def test_auth_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=request), body=None
        )
        provider = OpenAIProvider(client=fake_openai(FakeCompletions(error=error)))
        with pytest.raises(ProviderAuthError):
            provider.generate_completion("p")

    def test_connection_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.APIConnectionError(request=request)
        provider = OpenAIProvider(client=fake_openai(FakeCompletions(error=error)))
        with pytest.raises(ProviderConnectionError):
            provider.generate_completion("p")

    def test_health_needs_key(self):
        assert not OpenAIProvider(OpenAISettings(api_key=None)).check_health()
        assert OpenAIProvider(OpenAISettings(api_key="sk-test")).check_health()


class TestMockProvider:
    def test_queued_response_first(self):
        provider = MockProvider()
        provider.add_mock_response("javascript", "let queued = true;")
        assert provider.generate_completion("anything") == ["let queued = true;"]

    def test_completion_cue(self):
        result = MockProvider().generate_completion(
            "try to handle the error", GenerationOptions(language="python")
        )
        assert result[0].startswith("try:")

    def test_english_default(self):
        prompt = 'Convert this English description to python code:\n"summon dragons"'
        result = MockProvider().generate_completion(prompt, GenerationOptions(language="python"))
        assert result[0].startswith("# Generated from English description")


class TestRegistry:
    def test_create_each(self):
        settings = settings_from_env({})
        assert isinstance(create_provider("mock", settings), MockProvider)
        assert isinstance(create_provider("local", settings), LocalModelProvider)
        assert isinstance(create_provider("chat", settings), ChatProvider)
        assert isinstance(create_provider("openai", settings), OpenAIProvider)

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_provider("nope", settings_from_env({}))

    def test_settings_limits_passed(self):
        settings = settings_from_env(
            {"CODEPAIR_MAX_REQUESTS_PER_MINUTE": "5", "CODEPAIR_REQUEST_TIMEOUT": "12"}
        )
        provider = create_provider("mock", settings)
        assert provider.rate_limiter.max_requests == 5
        assert provider.timeout == 12.0


class TestSettings:
    def test_defaults(self):
        settings = settings_from_env({})
        assert settings.provider == "mock"
        assert settings.fallback_provider is None
        assert settings.local.endpoint == "http://localhost:11434/api/generate"

    def test_chat_defaults_to_mock_fallback(self):
        assert settings_from_env({"CODEPAIR_PROVIDER": "chat"}).fallback_provider == "mock"
        settings = settings_from_env({"CODEPAIR_PROVIDER": "chat", "CODEPAIR_FALLBACK_PROVIDER": "none"})
        assert settings.fallback_provider is None

    def test_invalid_provider(self):
        with pytest.raises(ValueError):
            settings_from_env({"CODEPAIR_PROVIDER": "skynet"})

    def test_provider_keys(self):
        settings = settings_from_env(
            {"CODEPAIR_PROVIDER": "openai", "OPENAI_API_KEY": "sk-1", "OPENAI_MODEL": "gpt-4o"}
        )
        assert settings.openai.api_key == "sk-1"
        assert settings.openai.model == "gpt-4o"
