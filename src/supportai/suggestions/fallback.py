"""Canned replies used when no provider answer is available."""

FALLBACK_RESPONSES: tuple[str, ...] = (
    "Thank you for your message. Our AI assistant is experiencing technical difficulties "
    "right now, but we will make sure to get back to you as soon as possible.",
    "Sorry for the inconvenience. Our AI system is temporarily unavailable, but we have "
    "received your message and will reply shortly.",
    "Thanks for reaching out! Our AI assistant is temporarily unavailable; your request "
    "has been noted and an answer will follow soon.",
    "Thank you for your patience. Our AI support system is down for maintenance, but your "
    "message will be reviewed personally and answered promptly.",
    "Thank you for contacting us. Because of a temporary technical issue we cannot provide "
    "an AI answer immediately, but we will resolve your question as quickly as we can.",
)


def select_fallback_response(transcript: str) -> str:
    """Pick by transcript length so identical inputs always get the same reply."""
    return FALLBACK_RESPONSES[len(transcript) % len(FALLBACK_RESPONSES)]
