"""Click CLI group: suggest, health, and providers commands."""

from __future__ import annotations

import asyncio
import json
import uuid

import click

from supportai.config import Settings, get_settings, validate_settings_for_env
from supportai.errors import ConfigurationError
from supportai.logging import configure_logging
from supportai.providers.factory import supported_providers
from supportai.suggestions.orchestrator import SuggestionOrchestrator, build_orchestrator


def _secrets(settings: Settings) -> tuple[str, ...]:
    return (
        settings.flowise_api_key,
        settings.openrouter_api_key,
        settings.azure_openai_api_key,
    )


def _orchestrator(settings: Settings) -> SuggestionOrchestrator:
    try:
        return build_orchestrator(settings)
    except (ConfigurationError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Support reply-suggestion CLI."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, secrets=_secrets(settings))


@cli.command()
@click.argument("transcript")
@click.option("--conversation-id", type=str, default=None, help="Upstream session id.")
@click.option("--no-rag", is_flag=True, help="Skip retrieval-augmented prompting.")
@click.option("--json", "json_output", is_flag=True, help="Print the full result as JSON.")
def suggest(
    transcript: str, conversation_id: str | None, no_rag: bool, json_output: bool
) -> None:
    """Generate a reply suggestion for TRANSCRIPT (``Customer:``/``Agent:`` lines)."""
    settings = get_settings()
    try:
        validate_settings_for_env(settings)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    orchestrator = _orchestrator(settings)
    result = asyncio.run(
        orchestrator.generate_suggestion(
            conversation_id or f"cli-{uuid.uuid4().hex[:12]}",
            transcript,
            enable_rag=not no_rag,
        )
    )
    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    click.echo(result.response_text)
    if result.used_fallback:
        click.echo(f"(fallback response; provider={result.provider})", err=True)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON.")
def health(json_output: bool) -> None:
    """Probe the configured provider and report whether it is reachable."""
    orchestrator = _orchestrator(get_settings())
    report = asyncio.run(orchestrator.provider_health())
    if json_output:
        click.echo(json.dumps(report, indent=2))
    else:
        status = "healthy" if report["healthy"] else "unhealthy"
        click.echo(f"{report['provider']}: {status}")
        if "error" in report:
            click.echo(f"error: {report['error']}")
    if not report["healthy"]:
        raise SystemExit(1)


@cli.command()
def providers() -> None:
    """List supported provider names and the configured ones."""
    settings = get_settings()
    for name in supported_providers():
        markers = []
        if name == settings.ai_provider.strip().lower():
            markers.append("active")
        if name == settings.fallback_provider.strip().lower():
            markers.append("fallback")
        suffix = f" ({', '.join(markers)})" if markers else ""
        click.echo(f"{name}{suffix}")
