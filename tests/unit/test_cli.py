import json

import pytest
from click.testing import CliRunner

from supportai.cli import main as cli_main
from supportai.suggestions.orchestrator import SuggestionResult, TraceStep


class _FakeOrchestrator:
    def __init__(self, result: SuggestionResult | None = None, healthy: bool = True) -> None:
        self.result = result
        self.healthy = healthy
        self.calls: list[tuple[str, str, bool]] = []

    async def generate_suggestion(self, conversation_id, transcript, enable_rag=True):
        self.calls.append((conversation_id, transcript, enable_rag))
        return self.result

    async def provider_health(self):
        return {"provider": "openrouter", "configured": True, "healthy": self.healthy}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_main, "configure_logging", lambda *args, **kwargs: None)


def _result(used_fallback: bool = False) -> SuggestionResult:
    return SuggestionResult(
        response_text="Try resetting your password.",
        used_rag=False,
        used_fallback=used_fallback,
        provider="openrouter",
        diagnostic_trace=(TraceStep("generate", "openrouter"), TraceStep("finalize")),
        attempts=1,
    )


def test_providers_marks_active_and_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_PROVIDER", "openrouter")
    result = CliRunner().invoke(cli_main.cli, ["providers"])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "flowise (fallback)",
        "openrouter (active)",
        "azure",
    ]


def test_suggest_prints_response(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeOrchestrator(_result())
    monkeypatch.setattr(cli_main, "build_orchestrator", lambda settings: fake)

    result = CliRunner().invoke(
        cli_main.cli, ["suggest", "Customer: locked out", "--conversation-id", "c-1", "--no-rag"]
    )

    assert result.exit_code == 0
    assert result.output.strip() == "Try resetting your password."
    assert fake.calls == [("c-1", "Customer: locked out", False)]


def test_suggest_json_output(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeOrchestrator(_result(used_fallback=True))
    monkeypatch.setattr(cli_main, "build_orchestrator", lambda settings: fake)

    result = CliRunner().invoke(cli_main.cli, ["suggest", "hi", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["used_fallback"] is True
    assert [step["name"] for step in payload["diagnostic_trace"]] == ["generate", "finalize"]
    assert fake.calls[0][0].startswith("cli-")


def test_suggest_rejects_invalid_prod_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    result = CliRunner().invoke(cli_main.cli, ["suggest", "hi"])
    assert result.exit_code == 1
    assert "invalid production configuration" in result.output


def test_health_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_main, "build_orchestrator", lambda settings: _FakeOrchestrator())
    ok = CliRunner().invoke(cli_main.cli, ["health"])
    assert ok.exit_code == 0
    assert ok.output.strip() == "openrouter: healthy"

    monkeypatch.setattr(
        cli_main, "build_orchestrator", lambda settings: _FakeOrchestrator(healthy=False)
    )
    bad = CliRunner().invoke(cli_main.cli, ["health", "--json"])
    assert bad.exit_code == 1
    assert json.loads(bad.output)["healthy"] is False


def test_unknown_fallback_provider_is_a_clean_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FALLBACK_PROVIDER", "bogus")
    result = CliRunner().invoke(cli_main.cli, ["health"])
    assert result.exit_code == 1
    assert "Unsupported AI provider: bogus" in result.output
    assert "Traceback" not in result.output


def test_zero_retry_budget_is_a_clean_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "0")
    result = CliRunner().invoke(cli_main.cli, ["suggest", "Customer: hi"])
    assert result.exit_code == 1
    assert "max_retries" in result.output
