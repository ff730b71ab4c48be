"""Tests for the bundled generation backends."""

import json
from unittest.mock import MagicMock

import anthropic
import httpx
import openai
import pytest

from gessage.llm import anthropic_provider, ollama_provider, openai_provider, openrouter_provider
from gessage.llm.base import GenerationContext, get_api_key, setting_float, setting_int
from gessage.llm.exceptions import (
    GenerationCancelledError,
    GenerationError,
    MissingAPIKeyError,
    RequestRejectedError,
    RuntimeUnreachableError,
)

REQUEST = httpx.Request("POST", "https://example.invalid/v1")


def status_error(module, status):
    response = httpx.Response(status, request=REQUEST)
    return module.APIStatusError(f"status {status}", response=response, body=None)


def json_reply(status, body):
    """Transport handler answering every request with body as JSON."""
    def handler(request):
        return httpx.Response(status, content=body, headers={"content-type": "application/json"})
    return handler


def route_sdk(mocker, target, sdk_class, handler):
    """Patch target so the real SDK client is built over an httpx.MockTransport."""
    def build(**kwargs):
        return sdk_class(http_client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)
    return mocker.patch(target, side_effect=build)


class TestGetApiKey:
    """Tests for get_api_key function."""

    def test_settings_win(self, mocker):
        """Test that a stored key beats the environment."""
        mocker.patch.dict("os.environ", {"OPENAI_API_KEY": "env-key"})

        assert get_api_key({"api_key": "stored"}, "gpt4-o", "OpenAI") == "stored"

    def test_environment_fallback(self, mocker):
        """Test that the environment variable is used when nothing is stored."""
        mocker.patch.dict("os.environ", {"ANTHROPIC_API_KEY": " env-key "})

        assert get_api_key({}, "claude", "Anthropic") == "env-key"

    def test_missing_key_names_variable(self, mocker):
        """Test that the error says how to provide the key."""
        mocker.patch.dict("os.environ", {}, clear=True)

        with pytest.raises(MissingAPIKeyError) as exc_info:
            get_api_key({"api_key": "  "}, "gpt4-o", "OpenAI")

        assert "OPENAI_API_KEY" in str(exc_info.value)
        assert "gessage setup --backend gpt4-o" in str(exc_info.value)


class TestSettingParsers:
    """Tests for setting_float and setting_int functions."""

    def test_valid_values(self):
        """Test that numbers are parsed."""
        assert setting_float({"t": "2.5"}, "t", 1.0) == 2.5
        assert setting_int({"n": "10"}, "n", 1) == 10

    @pytest.mark.parametrize("value", ["", "abc", "0", "-3"])
    def test_bad_values_use_default(self, value):
        """Test that unusable values fall back to the default."""
        assert setting_float({"t": value}, "t", 7.0) == 7.0
        assert setting_int({"n": value}, "n", 7) == 7


class TestOpenAIProvider:
    """Tests for the gpt4-o backend."""

    @pytest.fixture
    def mock_openai(self, mocker):
        return mocker.patch("gessage.llm.openai_provider.OpenAI")

    def reply(self, mock_openai, content):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        mock_openai.return_value.chat.completions.create.return_value = response

    def test_construct_defaults(self):
        """Test settings defaults."""
        generator = openai_provider.construct({"api_key": "k"})

        assert generator.model == "gpt-4o"
        assert generator.base_url == openai_provider.OPENAI_BASE_URL
        assert generator.timeout_seconds == 40.0

    def test_construct_reads_settings(self):
        """Test that model and timeout come from settings."""
        generator = openai_provider.construct({"api_key": "k", "model": "gpt-4o-mini", "timeout_seconds": "5"})

        assert generator.model == "gpt-4o-mini"
        assert generator.timeout_seconds == 5.0

    def test_generate_success(self, mock_openai):
        """Test a successful completion."""
        self.reply(mock_openai, "feat: add x")
        generator = openai_provider.construct({"api_key": "k"})

        result = generator.generate(GenerationContext(timeout=5), "PROMPT", 100)

        assert result == "feat: add x"
        mock_openai.assert_called_once_with(
            api_key="k",
            base_url=openai_provider.OPENAI_BASE_URL,
            timeout=5,
            max_retries=0,
        )
        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"][1] == {"role": "user", "content": "PROMPT"}

    def test_empty_content_is_empty_string(self, mock_openai):
        """Test that missing content becomes an empty string."""
        self.reply(mock_openai, None)

        result = openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        assert result == ""

    def test_no_choices_is_an_error(self, mock_openai):
        """Test that a response without choices fails."""
        mock_openai.return_value.chat.completions.create.return_value = MagicMock(choices=[])

        with pytest.raises(GenerationError):
            openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

    def test_status_error_carries_status(self, mock_openai):
        """Test that a non-success status is reported with its code."""
        mock_openai.return_value.chat.completions.create.side_effect = status_error(openai, 429)

        with pytest.raises(GenerationError) as exc_info:
            openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        assert exc_info.value.status_code == 429

    def test_timeout_is_generation_error(self, mock_openai):
        """Test that a timeout becomes a GenerationError."""
        mock_openai.return_value.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)

        with pytest.raises(GenerationError) as exc_info:
            openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        assert "timed out" in str(exc_info.value)

    def test_cancelled_context_makes_no_call(self, mock_openai):
        """Test that a cancelled run never builds a client."""
        ctx = GenerationContext()
        ctx.cancel()

        with pytest.raises(GenerationCancelledError):
            openai_provider.construct({"api_key": "k"}).generate(ctx, "P", 10)

        mock_openai.assert_not_called()


class TestOpenRouterProvider:
    """Tests for the openrouter backend."""

    def test_construct_uses_openrouter(self):
        """Test base URL, default model and attribution headers."""
        generator = openrouter_provider.construct({"api_key": "k"})

        assert generator.base_url == openrouter_provider.OPENROUTER_BASE_URL
        assert generator.model == "qwen/qwen3-coder:free"
        assert generator.extra_headers["X-Title"] == "gessage"

    def test_missing_key_points_to_keys_page(self, mocker):
        """Test that the error tells where to create a key."""
        mocker.patch.dict("os.environ", {}, clear=True)

        with pytest.raises(MissingAPIKeyError) as exc_info:
            openrouter_provider.construct({})

        assert openrouter_provider.OPENROUTER_KEYS_URL in str(exc_info.value)
        assert "OPENROUTER_API_KEY" in str(exc_info.value)

    def test_sends_extra_headers(self, mocker):
        """Test that the attribution headers reach the request."""
        mock_openai = mocker.patch("gessage.llm.openai_provider.OpenAI")
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "fix: y"
        mock_openai.return_value.chat.completions.create.return_value = response

        openrouter_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["extra_headers"]["HTTP-Referer"] == "https://github.com/gessage"


class TestOpenAIResponses:
    """Tests for the gpt4-o backend against the real SDK over a mock transport."""

    COMPLETION = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4o",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": "feat: add x"}, "finish_reason": "stop"},
        ],
    }

    def test_request_and_reply(self, mocker):
        """Test the request the SDK sends and the parsed reply."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return httpx.Response(200, json=self.COMPLETION)

        route_sdk(mocker, "gessage.llm.openai_provider.OpenAI", openai.OpenAI, handler)

        result = openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "PROMPT", 100)

        assert result == "feat: add x"
        assert sent[0]["model"] == "gpt-4o"
        assert sent[0]["max_tokens"] == 100
        assert sent[0]["temperature"] == 0.2

    @pytest.mark.parametrize("body", [b'{"choices":[{}]}', b'{"choices":[]}', b"[]", b"not json"])
    def test_malformed_body_is_generation_error(self, mocker, body):
        """Test that an unusable 200 reply becomes a GenerationError."""
        route_sdk(mocker, "gessage.llm.openai_provider.OpenAI", openai.OpenAI, json_reply(200, body))

        with pytest.raises(GenerationError):
            openai_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)


class TestAnthropicProvider:
    """Tests for the claude backend against the real SDK over a mock transport."""

    MESSAGE = {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": "claude-3-5-haiku-latest",
        "content": [
            {"type": "text", "text": "docs: "},
            {"type": "tool_use", "id": "toolu_01", "name": "lookup", "input": {}},
            {"type": "text", "text": "update readme"},
        ],
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 1, "output_tokens": 1},
    }

    def test_joins_text_blocks(self, mocker):
        """Test that only text blocks are returned, joined."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return httpx.Response(200, json=self.MESSAGE)

        route_sdk(mocker, "gessage.llm.anthropic_provider.Anthropic", anthropic.Anthropic, handler)

        result = anthropic_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        assert result == "docs: update readme"
        assert sent[0]["model"] == "claude-3-5-haiku-latest"
        assert sent[0]["max_tokens"] == 10
        assert sent[0]["messages"] == [{"role": "user", "content": "P"}]
        assert "temperature" not in sent[0]

    def test_no_blocks_is_empty_string(self, mocker):
        """Test that a reply without content blocks becomes an empty string."""
        body = json.dumps(dict(self.MESSAGE, content=[])).encode()
        route_sdk(mocker, "gessage.llm.anthropic_provider.Anthropic", anthropic.Anthropic, json_reply(200, body))

        assert anthropic_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10) == ""

    def test_status_error_carries_status(self, mocker):
        """Test that a non-success status is reported with its code."""
        body = b'{"type":"error","error":{"type":"overloaded_error","message":"Overloaded"}}'
        route_sdk(mocker, "gessage.llm.anthropic_provider.Anthropic", anthropic.Anthropic, json_reply(529, body))

        with pytest.raises(GenerationError) as exc_info:
            anthropic_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

        assert exc_info.value.status_code == 529

    @pytest.mark.parametrize("body", [b"[]", b"not json"])
    def test_malformed_body_is_generation_error(self, mocker, body):
        """Test that an unusable 200 reply becomes a GenerationError."""
        route_sdk(mocker, "gessage.llm.anthropic_provider.Anthropic", anthropic.Anthropic, json_reply(200, body))

        with pytest.raises(GenerationError):
            anthropic_provider.construct({"api_key": "k"}).generate(GenerationContext(), "P", 10)

    def test_missing_key(self, mocker):
        """Test that construct fails without a key."""
        mocker.patch.dict("os.environ", {}, clear=True)

        with pytest.raises(MissingAPIKeyError):
            anthropic_provider.construct({})


class TestOllamaProvider:
    """Tests for the ollama backend."""

    @pytest.fixture
    def mock_client(self, mocker):
        client_cls = mocker.patch("gessage.llm.ollama_provider.httpx.Client")
        return client_cls.return_value.__enter__.return_value

    def test_construct_defaults(self):
        """Test that every setting is optional."""
        generator = ollama_provider.construct({})

        assert generator.host == "http://localhost:11434"
        assert generator.model == "qwen2.5-coder:3b"
        assert generator.max_prompt_bytes == 3800

    def test_build_request(self):
        """Test the request body, prompt prefix included."""
        generator = ollama_provider.OllamaGenerator(model="m")

        body = generator.build_request("PROMPT", 64)

        assert body == {
            "model": "m",
            "prompt": ollama_provider.PROMPT_PREFIX + "PROMPT",
            "stream": False,
            "options": {"num_predict": 64, "temperature": 0.2},
        }

    def test_prompt_is_clamped(self):
        """Test that long prompts are cut to max_prompt_bytes plus the marker."""
        generator = ollama_provider.OllamaGenerator(max_prompt_bytes=50)

        body = generator.build_request("x" * 500, 64)

        assert body["prompt"].endswith("[TRUNCATED]\n")
        assert len(body["prompt"].encode("utf-8")) <= 50 + len("\n... [TRUNCATED]\n")

    def test_generate_success(self, mock_client):
        """Test that the response field is returned."""
        mock_client.post.return_value = httpx.Response(200, json={"response": "perf: faster"}, request=REQUEST)

        result = ollama_provider.OllamaGenerator(host="http://h:1/").generate(GenerationContext(), "P", 10)

        assert result == "perf: faster"
        assert mock_client.post.call_args.args[0] == "http://h:1/api/generate"

    def test_missing_response_field(self, mock_client):
        """Test that a decodable reply without text is an empty string."""
        mock_client.post.return_value = httpx.Response(200, json={"done": True}, request=REQUEST)

        assert ollama_provider.OllamaGenerator().generate(GenerationContext(), "P", 10) == ""

    def test_unreachable(self, mock_client):
        """Test that a refused connection is RuntimeUnreachableError."""
        mock_client.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(RuntimeUnreachableError):
            ollama_provider.OllamaGenerator().generate(GenerationContext(), "P", 10)

    def test_model_not_found(self, mock_client):
        """Test that a 404 is rejected with a pull hint."""
        mock_client.post.return_value = httpx.Response(404, text="model not found", request=REQUEST)

        with pytest.raises(RequestRejectedError) as exc_info:
            ollama_provider.OllamaGenerator(model="m").generate(GenerationContext(), "P", 10)

        assert exc_info.value.status_code == 404
        assert "ollama pull m" in str(exc_info.value)

    def test_non_json_reply(self, mock_client):
        """Test that an undecodable reply is a GenerationError."""
        mock_client.post.return_value = httpx.Response(200, text="<html>", request=REQUEST)

        with pytest.raises(GenerationError):
            ollama_provider.OllamaGenerator().generate(GenerationContext(), "P", 10)

    def test_timeout(self, mock_client):
        """Test that a read timeout is a GenerationError, not unreachable."""
        mock_client.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(GenerationError) as exc_info:
            ollama_provider.OllamaGenerator().generate(GenerationContext(timeout=1), "P", 10)

        assert not isinstance(exc_info.value, RuntimeUnreachableError)

    def test_ping(self, mocker):
        """Test ping against up, erroring and unreachable servers."""
        get = mocker.patch("gessage.llm.ollama_provider.httpx.get")

        get.return_value = httpx.Response(200, request=REQUEST)
        assert ollama_provider.ping("http://localhost:11434") is True

        get.return_value = httpx.Response(500, request=REQUEST)
        assert ollama_provider.ping("http://localhost:11434") is False

        get.side_effect = httpx.ConnectError("refused")
        assert ollama_provider.ping("http://localhost:11434") is False

    def test_teardown_skips_remote_hosts(self, mocker):
        """Test that a remote server is never stopped."""
        run = mocker.patch("gessage.llm.ollama_provider._run")

        ollama_provider.teardown({"host": "http://gpu-box:11434", "model": "m"})

        run.assert_not_called()

    def test_teardown_stops_local_model(self, mocker):
        """Test that the local model is stopped."""
        mocker.patch("gessage.llm.ollama_provider.shutil.which", return_value="/usr/bin/ollama")
        mocker.patch("gessage.llm.ollama_provider.sys.platform", "linux")
        run = mocker.patch("gessage.llm.ollama_provider._run", return_value=True)

        ollama_provider.teardown({"model": "m"})

        run.assert_called_once_with(["ollama", "stop", "m"])
