"""SupportAI exception hierarchy.

All SupportAI-specific exceptions inherit from SupportAIError, which carries
a ``retryable`` flag consulted by the retry executor.
"""


class SupportAIError(Exception):
    """Base exception for all SupportAI errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ConfigurationError(SupportAIError):
    """Invalid or missing provider configuration."""


class UnsupportedProviderError(ConfigurationError):
    """Provider name does not match any registered variant."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported AI provider: {provider}")
        self.provider = provider


class ProviderError(SupportAIError):
    """Error communicating with an upstream model provider."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class NetworkError(ProviderError):
    """Timeout, connection failure, or non-2xx status from a provider."""

    def __init__(
        self,
        message: str = "",
        *,
        provider: str = "",
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message, retryable=True)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ResponseFormatError(ProviderError):
    """Provider answered but the payload carried no usable text."""

    def __init__(self, message: str = "", *, provider: str = "") -> None:
        super().__init__(message, retryable=False)
        self.provider = provider
