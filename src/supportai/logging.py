"""Structured logging for the suggestion pipeline.

Records from ``logging.getLogger(__name__)`` and structlog loggers share one
processor chain: request context from contextvars, then secret redaction,
then a JSON (prod) or console renderer.
"""

import logging
import os
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from supportai.redaction import redact_secrets


class RedactSecrets:
    """structlog processor that scrubs credentials from every string value.

    Runs after ``format_exc_info`` in JSON mode, so formatted tracebacks are
    scrubbed too. Values are not truncated.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        self.secrets = tuple(secret for secret in secrets if secret)

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = redact_secrets(value, self.secrets, max_chars=None)
        return event_dict


def configure_logging(
    level: str, json_output: bool | None = None, *, secrets: Iterable[str] = ()
) -> None:
    """Install the structlog formatter on the root handler.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output. If None, JSON when ``APP_ENV=prod``.
        secrets: Configured credentials to mask in addition to the
            Bearer / ``sk-`` / ``api_key`` patterns.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json_output is None:
        json_output = os.environ.get("APP_ENV", "dev") == "prod"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    render_chain: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_output:
        render_chain += [
            structlog.processors.format_exc_info,
            RedactSecrets(secrets),
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_chain += [RedactSecrets(secrets), structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=render_chain,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)


@contextmanager
def request_context(**kwargs: object) -> Iterator[None]:
    """Bind keys for the duration of the block.

    On exit each key goes back to the value the caller had bound, or is
    removed; keys this block did not bind are left alone.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
