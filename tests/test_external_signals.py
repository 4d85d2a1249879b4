"""Tests for external signal parsing, fetching and merging."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from model_roster.external_signals import (
    fetch_external_model_signals,
    fetch_openrouter_signals,
    merge_signal,
    parse_artificial_analysis_payload,
    parse_openrouter_payload,
    provider_prefix_from_creator,
)
from model_roster.metadata.types import ExternalSignal, SignalSource
from model_roster.scoring.signals import find_signal

AA_PAYLOAD = {
    "data": [
        {
            "id": "3f1c9d2e",
            "slug": "gpt-5-3-codex",
            "name": "GPT-5.3 Codex",
            "model_creator": {"slug": "openai"},
            "evaluations": {
                "artificial_analysis_intelligence_index": 70,
                "artificial_analysis_coding_index": 65,
            },
            "median_time_to_first_token_seconds": 1.5,
            "pricing": {"price_1m_input_tokens": 1.25, "price_1m_output_tokens": 10},
        },
        {
            "slug": "deepseek-v3",
            "name": "DeepSeek V3",
            "model_creator": {"slug": "deepseek"},
            "evaluations": {"livecodebench": 40},
            "pricing": {"price_1m_blended_3_to_1": 0.5},
        },
    ]
}

OPENROUTER_PAYLOAD = {
    "data": [
        {
            "id": "openai/gpt-5.3-codex",
            "pricing": {"prompt": "0.00000125", "completion": "0.00001"},
        },
        {"id": "acme/mystery", "pricing": {"prompt": "n/a", "completion": ""}},
        {"pricing": {"prompt": "0.000001"}},
    ]
}


class TestParseArtificialAnalysis:
    """Artificial Analysis payload parsing."""

    def test_creator_scoped_aliases(self):
        signals = parse_artificial_analysis_payload(AA_PAYLOAD)

        signal = signals["openai/gpt-5.3-codex"]
        assert signal.quality_score == 70
        assert signal.coding_score == 65
        assert signal.latency_seconds == 1.5
        assert signal.input_price_per_1m == 1.25
        assert signal.output_price_per_1m == 10
        assert signal.source == SignalSource.ARTIFICIAL_ANALYSIS
        # Bare aliases are only stored for creators without a known provider
        assert "gpt-5.3-codex" not in signals

    def test_unknown_creator_uses_bare_aliases(self):
        signals = parse_artificial_analysis_payload(AA_PAYLOAD)

        signal = signals["deepseek-v3"]
        assert signal.coding_score == 40
        assert signal.input_price_per_1m == 0.5
        assert signal.output_price_per_1m == 0.5

    def test_signal_reaches_catalog_model(self, make_model):
        signals = parse_artificial_analysis_payload(AA_PAYLOAD)
        assert find_signal(make_model("openai/gpt-5.3-codex"), signals).quality_score == 70

    def test_empty_payload(self):
        assert parse_artificial_analysis_payload({}) == {}
        assert parse_artificial_analysis_payload({"data": None}) == {}


class TestParseOpenRouter:
    """OpenRouter payload parsing."""

    def test_prices_converted_to_per_million(self):
        signals = parse_openrouter_payload(OPENROUTER_PAYLOAD)

        signal = signals["openai/gpt-5.3-codex"]
        assert signal.input_price_per_1m == pytest.approx(1.25)
        assert signal.output_price_per_1m == pytest.approx(10)
        assert signal.quality_score is None
        assert signal.source == SignalSource.OPENROUTER

    def test_invalid_prices_become_missing(self):
        signal = parse_openrouter_payload(OPENROUTER_PAYLOAD)["acme/mystery"]
        assert signal.input_price_per_1m is None
        assert signal.output_price_per_1m is None


class TestMergeSignal:
    def test_incoming_fields_win(self):
        existing = ExternalSignal(
            quality_score=70,
            input_price_per_1m=1,
            source=SignalSource.ARTIFICIAL_ANALYSIS,
        )
        incoming = ExternalSignal(input_price_per_1m=2, source=SignalSource.OPENROUTER)

        merged = merge_signal(existing, incoming)

        assert merged.quality_score == 70
        assert merged.input_price_per_1m == 2
        assert merged.source == SignalSource.MERGED

    def test_without_existing_signal(self):
        incoming = ExternalSignal(quality_score=50, source=SignalSource.OPENROUTER)
        assert merge_signal(None, incoming) is incoming


class TestProviderPrefixFromCreator:
    @pytest.mark.parametrize(
        "slug,expected",
        [
            ("openai", "openai"),
            ("Anthropic", "anthropic"),
            ("z-ai", "zai-coding-plan"),
            ("github", "github-copilot"),
            ("moonshot-kimi", "kimi-for-coding"),
            ("deepseek", None),
            (None, None),
        ],
    )
    def test_mapping(self, slug, expected):
        assert provider_prefix_from_creator(slug) == expected


class TestFetchExternalModelSignals:
    """Concurrent fetching with per-source failure isolation."""

    @pytest.mark.asyncio
    async def test_merges_both_sources(self):
        aa = {"openai/gpt-5.3-codex": ExternalSignal(quality_score=70, input_price_per_1m=1)}
        router = {"openai/gpt-5.3-codex": ExternalSignal(input_price_per_1m=2)}

        with patch(
            "model_roster.external_signals.fetch_artificial_analysis_signals",
            new=AsyncMock(return_value=aa),
        ), patch(
            "model_roster.external_signals.fetch_openrouter_signals",
            new=AsyncMock(return_value=router),
        ):
            result = await fetch_external_model_signals("aa-key", "or-key")

        signal = result.signals["openai/gpt-5.3-codex"]
        assert signal.quality_score == 70
        assert signal.input_price_per_1m == 2
        assert signal.source == SignalSource.MERGED
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_failing_source_adds_warning(self):
        router = {"openai/gpt-5.3-codex": ExternalSignal(input_price_per_1m=2)}

        with patch(
            "model_roster.external_signals.fetch_artificial_analysis_signals",
            new=AsyncMock(side_effect=RuntimeError("Artificial Analysis request failed (500 Internal Server Error)")),
        ), patch(
            "model_roster.external_signals.fetch_openrouter_signals",
            new=AsyncMock(return_value=router),
        ):
            result = await fetch_external_model_signals("aa-key", "or-key")

        assert result.signals == router
        assert result.warnings == [
            "Artificial Analysis unavailable: "
            "Artificial Analysis request failed (500 Internal Server Error)"
        ]

    @pytest.mark.asyncio
    async def test_timeout_warning(self):
        with patch(
            "model_roster.external_signals.fetch_openrouter_signals",
            new=AsyncMock(side_effect=httpx.ReadTimeout("timed out")),
        ):
            result = await fetch_external_model_signals(openrouter_api_key="or-key")

        assert result.signals == {}
        assert result.warnings == ["OpenRouter unavailable: Timeout after 8.0s"]

    @pytest.mark.asyncio
    async def test_sources_without_keys_are_skipped(self):
        aa_mock = AsyncMock(return_value={})
        router_mock = AsyncMock(return_value={})
        with patch(
            "model_roster.external_signals.fetch_artificial_analysis_signals", new=aa_mock
        ), patch("model_roster.external_signals.fetch_openrouter_signals", new=router_mock):
            result = await fetch_external_model_signals()

        aa_mock.assert_not_called()
        router_mock.assert_not_called()
        assert result.signals == {}
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_keys_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test")
        router_mock = AsyncMock(return_value={})
        with patch("model_roster.external_signals.fetch_openrouter_signals", new=router_mock):
            await fetch_external_model_signals()

        router_mock.assert_awaited_once_with("sk-or-test")


class TestFetchOpenRouterSignals:
    """HTTP layer of a single source."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        with patch(
            "model_roster.external_signals._get_json",
            new=AsyncMock(return_value=OPENROUTER_PAYLOAD),
        ) as mock_get:
            signals = await fetch_openrouter_signals("sk-or-test")

        assert "openai/gpt-5.3-codex" in signals
        assert mock_get.call_args.kwargs["headers"] == {"Authorization": "Bearer sk-or-test"}

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        response = httpx.Response(
            503, request=httpx.Request("GET", "https://openrouter.ai/api/v1/models")
        )
        with patch.object(httpx.AsyncClient, "get", new=AsyncMock(return_value=response)):
            with pytest.raises(RuntimeError, match=r"OpenRouter request failed \(503 Service Unavailable\)"):
                await fetch_openrouter_signals("sk-or-test")
