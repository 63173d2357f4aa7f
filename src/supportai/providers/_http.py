"""Shared HTTP plumbing for provider adapters."""

import json
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from supportai.errors import NetworkError, ResponseFormatError
from supportai.redaction import redact_secrets

logger = logging.getLogger(__name__)


async def post_json(
    url: str,
    *,
    provider: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
    secrets: Iterable[str] = (),
) -> dict[str, Any]:
    """POST ``payload`` and return the decoded JSON object.

    Transport failures and non-2xx statuses raise NetworkError; a body that
    is not a JSON object raises ResponseFormatError.
    """
    secret_values = tuple(secrets)
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        raise NetworkError(
            f"{provider} request timed out after {timeout:g}s", provider=provider
        ) from exc
    except httpx.TransportError as exc:
        message = redact_secrets(f"{type(exc).__name__}: {exc}", secret_values)
        raise NetworkError(f"{provider} connection failed: {message}", provider=provider) from exc

    if not response.is_success:
        body = redact_secrets(response.text, secret_values)
        raise NetworkError(
            f"{provider} API error: {response.status_code} {response.reason_phrase} - {body}",
            provider=provider,
            status_code=response.status_code,
            body=body,
        )
    try:
        decoded = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResponseFormatError(
            f"Invalid response format from {provider}: body is not JSON", provider=provider
        ) from exc
    if not isinstance(decoded, dict):
        raise ResponseFormatError(
            f"Invalid response format from {provider}: expected a JSON object", provider=provider
        )
    return decoded


def coerce_text(value: object) -> str | None:
    """Flatten string or content-part list values; None when neither."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        chunks: list[str] = []
        for item in value:
            if isinstance(item, str):
                chunks.append(item)
            elif isinstance(item, dict):
                text = item.get("text")
                if isinstance(text, str):
                    chunks.append(text)
        return "".join(chunks)
    return None


def chat_completion_text(payload: dict[str, Any], *, provider: str) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ResponseFormatError(
            f"Invalid response format from {provider}: missing choices", provider=provider
        )
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise ResponseFormatError(
            f"Invalid response format from {provider}: missing message", provider=provider
        )
    text = coerce_text(message.get("content"))
    if text is None:
        raise ResponseFormatError(
            f"Invalid response format from {provider}: missing message content",
            provider=provider,
        )
    return text


async def probe(
    url: str,
    *,
    provider: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Send a minimal request; True on any 2xx, False on any other outcome."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers)
    except Exception as exc:
        logger.warning("%s health probe failed: %s", provider, type(exc).__name__)
        return False
    if not response.is_success:
        logger.warning("%s health probe returned HTTP %s", provider, response.status_code)
    return response.is_success
