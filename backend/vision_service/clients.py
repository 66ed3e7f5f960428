"""
OpenAI adapters for image analysis.

Two upstream shapes are supported, one adapter each:
- ResponsesClient: /v1/responses with a stored prompt template id.
- ChatCompletionsClient: /v1/chat/completions (legacy handler).

Both return the provider JSON body as a plain dict so the formatter can read
either envelope.
"""

import logging
from typing import Dict, Any, Optional, List

from openai import OpenAI, DefaultHttpxClient, APIStatusError, APIConnectionError

from backend.vision_service.config import DEFAULT_QUESTION, api_key_is_set
from backend.vision_service.errors import ConfigurationError, UpstreamError, TransportError


class VisionClient:
    """
    Base adapter. Subclasses build the request in `_create`.

    Args:
        openai_client (OpenAI): Configured SDK client.
        model (str): Model name sent upstream and echoed in responses.
        default_prompt (str): Question used when the caller sends none.
    """

    def __init__(self, openai_client: OpenAI, model: str, default_prompt: str = DEFAULT_QUESTION):
        self.openai_client = openai_client
        self.model = model
        self.default_prompt = default_prompt

    def _create(self, image_url: str, prompt: str):
        raise NotImplementedError

    def analyze(self, image_url: str, prompt: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask the model about the image at `image_url`.

        Args:
            image_url (str): Publicly reachable URL of the image.
            prompt (str, optional): Caller question. Defaults to `default_prompt`.

        Returns:
            dict: Decoded JSON body of the provider response.

        Raises:
            UpstreamError: OpenAI answered with a status other than 200.
            TransportError: The request could not be completed.
        """
        try:
            raw = self._create(image_url, prompt or self.default_prompt)
        except APIStatusError as e:
            raise UpstreamError(e.status_code, e.response.text)
        except APIConnectionError as e:
            raise TransportError(f"Connection error: {e}")

        http_response = raw.http_response
        if http_response.status_code != 200:
            raise UpstreamError(http_response.status_code, http_response.text)

        try:
            return http_response.json()
        except ValueError:
            raise UpstreamError(http_response.status_code, http_response.text)


class ResponsesClient(VisionClient):
    """Calls the Responses API with a provider-side prompt template."""

    def __init__(self, openai_client: OpenAI, model: str, prompt_id: str,
                 default_prompt: str = DEFAULT_QUESTION):
        super().__init__(openai_client, model, default_prompt)
        self.prompt_id = prompt_id

    def build_input(self, image_url: str, prompt: str) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": prompt},
                    {"type": "input_image", "image_url": image_url},
                ],
            }
        ]

    def _create(self, image_url: str, prompt: str):
        return self.openai_client.responses.with_raw_response.create(
            model=self.model,
            prompt={"id": self.prompt_id},
            input=self.build_input(image_url, prompt),
        )


class ChatCompletionsClient(VisionClient):
    """Calls Chat Completions with an image_url content part."""

    def __init__(self, openai_client: OpenAI, model: str, max_tokens: int = 300,
                 prompt_id: Optional[str] = None, default_prompt: str = DEFAULT_QUESTION):
        super().__init__(openai_client, model, default_prompt)
        self.max_tokens = max_tokens
        self.prompt_id = prompt_id

    def build_messages(self, image_url: str, prompt: str) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]

    def _create(self, image_url: str, prompt: str):
        # `prompt` is not a chat.completions parameter, so it travels in the raw body
        extra_body = {"prompt": {"id": self.prompt_id}} if self.prompt_id else None
        return self.openai_client.chat.completions.with_raw_response.create(
            model=self.model,
            messages=self.build_messages(image_url, prompt),
            max_tokens=self.max_tokens,
            extra_body=extra_body,
        )


# --- CLIENT FACTORY ---
def make_openai_client(config: Dict[str, Any]) -> OpenAI:
    """
    Build the SDK client from app config.

    Retries are disabled; a failed call is reported to the caller as is.
    """
    api_key = config.get("OPENAI_API_KEY")
    if not api_key_is_set(api_key):
        raise ConfigurationError("OpenAI API key not found or not set in .env file")

    verify_tls = config.get("OPENAI_VERIFY_TLS", True)
    if not verify_tls:
        logging.warning("TLS certificate verification is disabled for OpenAI requests.")

    return OpenAI(
        api_key=api_key,
        base_url=config.get("OPENAI_BASE_URL"),
        timeout=config.get("OPENAI_TIMEOUT", 60),
        max_retries=0,
        http_client=DefaultHttpxClient(verify=verify_tls),
    )


def build_client(config: Dict[str, Any], version: str) -> VisionClient:
    """
    Construct the adapter used by a handler.

    Args:
        config (dict): The Flask app config.
        version (str): "responses" for the analyze handler, "chat" for the legacy one.

    Raises:
        ConfigurationError: The API key is missing.
        ValueError: Unknown adapter version.
    """
    openai_client = make_openai_client(config)
    default_prompt = config.get("DEFAULT_PROMPT", DEFAULT_QUESTION)

    if version == "responses":
        return ResponsesClient(
            openai_client,
            model=config["OPENAI_MODEL"],
            prompt_id=config["OPENAI_PROMPT_ID"],
            default_prompt=default_prompt,
        )
    if version == "chat":
        return ChatCompletionsClient(
            openai_client,
            model=config["OPENAI_LEGACY_MODEL"],
            max_tokens=config.get("OPENAI_LEGACY_MAX_TOKENS", 300),
            prompt_id=config.get("OPENAI_PROMPT_ID"),
            default_prompt=default_prompt,
        )
    raise ValueError(f"Unknown client version: {version}")
