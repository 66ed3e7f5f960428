import httpx
import pytest
from unittest.mock import MagicMock
from openai import APIStatusError, APIConnectionError, APITimeoutError
from backend.vision_service.clients import (
    ResponsesClient, ChatCompletionsClient, build_client, make_openai_client,
)
from backend.vision_service.config import load_settings
from backend.vision_service.errors import UpstreamError, TransportError, ConfigurationError

IMAGE_URL = "https://example.test/temp_uploads/img_abc.jpg"
RESPONSES_URL = "https://api.openai.com/v1/responses"

def raw_response(status_code=200, body=None, text=""):
    raw = MagicMock()
    raw.http_response.status_code = status_code
    raw.http_response.text = text
    raw.http_response.json.return_value = body if body is not None else {}
    return raw

@pytest.fixture
def openai_client():
    return MagicMock()

def test_responses_client_builds_prompt_template_request(openai_client):
    reply = {"output": [{"content": [{"text": "pasta"}]}]}
    create = openai_client.responses.with_raw_response.create
    create.return_value = raw_response(body=reply)

    client = ResponsesClient(openai_client, model="gpt-5", prompt_id="pmpt_123")
    assert client.analyze(IMAGE_URL, "What can I cook?") == reply

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "gpt-5"
    assert kwargs["prompt"] == {"id": "pmpt_123"}
    assert kwargs["input"] == [{
        "role": "user",
        "content": [
            {"type": "input_text", "text": "What can I cook?"},
            {"type": "input_image", "image_url": IMAGE_URL},
        ],
    }]

def test_responses_client_uses_default_question(openai_client):
    create = openai_client.responses.with_raw_response.create
    create.return_value = raw_response(body={"output": []})

    ResponsesClient(openai_client, model="gpt-5", prompt_id="pmpt_123").analyze(IMAGE_URL)

    content = create.call_args.kwargs["input"][0]["content"]
    assert content[0]["text"] == "What is in this image?"

def test_chat_client_builds_messages(openai_client):
    reply = {"choices": [{"message": {"content": "a sandwich"}}]}
    create = openai_client.chat.completions.with_raw_response.create
    create.return_value = raw_response(body=reply)

    client = ChatCompletionsClient(openai_client, model="gpt-4-vision-preview", max_tokens=300, prompt_id="pmpt_123")
    assert client.analyze(IMAGE_URL) == reply

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "gpt-4-vision-preview"
    assert kwargs["max_tokens"] == 300
    assert kwargs["extra_body"] == {"prompt": {"id": "pmpt_123"}}
    assert kwargs["messages"][0]["content"] == [
        {"type": "text", "text": "What is in this image?"},
        {"type": "image_url", "image_url": {"url": IMAGE_URL}},
    ]

def test_chat_client_without_prompt_id_sends_no_extra_body(openai_client):
    create = openai_client.chat.completions.with_raw_response.create
    create.return_value = raw_response(body={"choices": []})

    ChatCompletionsClient(openai_client, model="gpt-4o-mini").analyze(IMAGE_URL, "hi")
    assert create.call_args.kwargs["extra_body"] is None

def test_status_error_becomes_upstream_error(openai_client):
    response = httpx.Response(401, text="invalid api key", request=httpx.Request("POST", RESPONSES_URL))
    openai_client.responses.with_raw_response.create.side_effect = APIStatusError(
        "Unauthorized", response=response, body=None
    )

    with pytest.raises(UpstreamError) as exc:
        ResponsesClient(openai_client, model="gpt-5", prompt_id="p").analyze(IMAGE_URL)
    assert exc.value.status == 401
    assert exc.value.body == "invalid api key"
    assert exc.value.message == "OpenAI API error: HTTP 401 - invalid api key"

def test_non_200_success_status_is_an_error(openai_client):
    openai_client.responses.with_raw_response.create.return_value = raw_response(202, text="queued")

    with pytest.raises(UpstreamError) as exc:
        ResponsesClient(openai_client, model="gpt-5", prompt_id="p").analyze(IMAGE_URL)
    assert exc.value.status == 202

def test_undecodable_body_is_an_error(openai_client):
    raw = raw_response(200, text="<html>")
    raw.http_response.json.side_effect = ValueError("not json")
    openai_client.responses.with_raw_response.create.return_value = raw

    with pytest.raises(UpstreamError):
        ResponsesClient(openai_client, model="gpt-5", prompt_id="p").analyze(IMAGE_URL)

@pytest.mark.parametrize("error_cls", [APIConnectionError, APITimeoutError])
def test_connection_failure_becomes_transport_error(openai_client, error_cls):
    openai_client.chat.completions.with_raw_response.create.side_effect = error_cls(
        request=httpx.Request("POST", RESPONSES_URL)
    )

    with pytest.raises(TransportError) as exc:
        ChatCompletionsClient(openai_client, model="gpt-4o-mini").analyze(IMAGE_URL)
    assert exc.value.message.startswith("Connection error")

@pytest.mark.parametrize("api_key", [None, "", "your_openai_api_key_here"])
def test_missing_api_key_is_a_configuration_error(api_key):
    config = load_settings({})
    config["OPENAI_API_KEY"] = api_key

    with pytest.raises(ConfigurationError):
        make_openai_client(config)

def test_build_client_versions():
    config = load_settings({"OPENAI_API_KEY": "sk-test", "OPENAI_VERIFY_TLS": "false"})

    analyze_client = build_client(config, "responses")
    assert isinstance(analyze_client, ResponsesClient)
    assert analyze_client.model == "gpt-5"
    assert analyze_client.prompt_id == config["OPENAI_PROMPT_ID"]
    assert analyze_client.openai_client.max_retries == 0

    chat_client = build_client(config, "chat")
    assert isinstance(chat_client, ChatCompletionsClient)
    assert chat_client.model == "gpt-4-vision-preview"
    assert chat_client.max_tokens == 300

    with pytest.raises(ValueError):
        build_client(config, "v0")
