"""OpenAI chat-completions client used for batch headline classification."""

import json
import logging
import re
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data.http_client import (
    ClassifierUnavailableError,
    MalformedUpstreamPayloadError,
    post_json,
)

logger = logging.getLogger(__name__)

SOURCE = "openai"

SYSTEM_PROMPT = (
    "Label each headline bullish or bearish. Respond with JSON array of objects "
    "{sentiment, score:-1..1} in the same order as input."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _message_content(body: Any) -> str:
    """Pull the first choice's message text out of a completions response."""
    if not isinstance(body, dict):
        raise MalformedUpstreamPayloadError("Completion response is not an object")
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedUpstreamPayloadError("Completion response without choices")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise MalformedUpstreamPayloadError("Completion response without message payload")
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise MalformedUpstreamPayloadError("Completion returned empty content")
    return content.strip()


def parse_labels(content: str) -> list[Any]:
    """
    Decode the model's JSON array, tolerating a markdown code fence.

    Raises:
        MalformedUpstreamPayloadError: Content is not a JSON array
    """
    cleaned = _FENCE_RE.sub("", content.strip())
    try:
        parsed = json.loads(cleaned)
    except ValueError as e:
        raise MalformedUpstreamPayloadError(f"Classifier content is not JSON: {e}") from e
    if isinstance(parsed, dict):
        # Some models wrap the array in an object
        parsed = next((v for v in parsed.values() if isinstance(v, list)), None)
    if not isinstance(parsed, list):
        raise MalformedUpstreamPayloadError("Classifier content is not a JSON array")
    return parsed


async def classify_texts(texts: list[str], config: ProviderConfig) -> list[Any]:
    """
    Ask the model to label headlines in one batched call.

    Args:
        texts: Headlines, in order
        config: Provider configuration

    Returns:
        Raw label objects as returned by the model (order matches ``texts``)

    Raises:
        ClassifierUnavailableError: No API key configured
        ProviderUnavailableError: Transport failure, timeout or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    if not config.openai_api_key:
        raise ClassifierUnavailableError("OPENAI_API_KEY is not configured")

    body = await post_json(
        f"{config.openai_base_url}/chat/completions",
        {
            "model": config.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(texts)},
            ],
            "temperature": 0,
        },
        headers={"Authorization": f"Bearer {config.openai_api_key}"},
        timeout=config.classifier_timeout,
        max_retries=config.max_retries,
    )
    labels = parse_labels(_message_content(body))
    logger.debug(f"Classifier returned {len(labels)} labels for {len(texts)} headlines")
    return labels
