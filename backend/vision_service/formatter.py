"""
Shapes provider replies into the JSON envelopes returned to callers.
"""

import json
from datetime import datetime
from typing import Dict, Any, Union


def timestamp() -> str:
    """Current local time as ISO 8601 with UTC offset, e.g. 2025-08-10T14:03:11+02:00."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def extract_answer(response: Any) -> Union[str, Dict[str, Any], Any]:
    """
    Pull the model answer out of a provider reply.

    Tries, in order:
    1. Responses API shape: output[0].content[0].text. Text that is valid JSON
       is decoded, otherwise returned as is.
    2. Chat Completions shape: choices[0].message.content.
    3. Anything else is returned whole so the caller can inspect it.
    """
    if not isinstance(response, dict):
        return response

    output = response.get("output")
    if output:
        first = output[0] if isinstance(output, list) else None
        content = first.get("content") if isinstance(first, dict) else None
        item = content[0] if isinstance(content, list) and content else None
        if isinstance(item, dict) and "text" in item:
            text = item["text"]
            try:
                return json.loads(text)
            except (TypeError, ValueError):
                return text
        return ""

    choices = response.get("choices")
    if choices:
        choice = choices[0] if isinstance(choices, list) else None
        message = choice.get("message") if isinstance(choice, dict) else None
        return message.get("content") if isinstance(message, dict) else None

    return response


def success_envelope(response: Dict[str, Any], model: str) -> Dict[str, Any]:
    """Envelope for the analyze handler."""
    usage = response.get("usage") if isinstance(response, dict) else None
    return {
        "success": True,
        "message": "Image analyzed successfully",
        "ai_response": extract_answer(response),
        "usage": usage,
        "model": model,
        "timestamp": timestamp(),
    }


def legacy_envelope(response: Dict[str, Any], model: str) -> Dict[str, Any]:
    """Envelope for the legacy chat handler: the provider reply is passed through."""
    return {
        "success": True,
        "message": "Image processed successfully",
        "response": response,
        "model": model,
        "timestamp": timestamp(),
    }


def error_envelope(message: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "timestamp": timestamp(),
    }
