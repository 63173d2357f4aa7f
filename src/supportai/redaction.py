"""Scrubbing of credentials from text bound for exceptions and log lines."""

import re
from collections.abc import Iterable

REDACTED = "[REDACTED]"
MAX_REDACTED_CHARS = 500
_SECRET_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._\-~+/]+=*"),
    re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"),
    re.compile(r'(?i)("?(?:api[-_]?key|authorization|access_token)"?\s*[:=]\s*"?)[^",\s}]+'),
)


def redact_secrets(
    text: str, secrets: Iterable[str] = (), *, max_chars: int | None = MAX_REDACTED_CHARS
) -> str:
    redacted = text
    for secret in secrets:
        if secret and len(secret) >= 4:
            redacted = redacted.replace(secret, REDACTED)
    for pattern in _SECRET_PATTERNS:
        if pattern.groups:
            redacted = pattern.sub(lambda m: f"{m.group(1)}{REDACTED}", redacted)
        else:
            redacted = pattern.sub(REDACTED, redacted)
    if max_chars is not None and len(redacted) > max_chars:
        redacted = redacted[:max_chars] + "..."
    return redacted
