"""External quality, latency and price signals for catalog models.

Two optional sources are queried concurrently:
- Artificial Analysis: intelligence/coding indices, time to first token, prices
- OpenRouter: per-token prices

Either source may be missing a key or fail; the planner always receives a
(possibly empty) signal map plus human-readable warnings. Signals are keyed
by every normalized alias of the upstream id, slug and name, and, where the
upstream creator maps to a known provider, by provider-scoped aliases too.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .config import (
    ARTIFICIAL_ANALYSIS_MODELS_URL,
    OPENROUTER_MODELS_URL,
    SIGNAL_FETCH_TIMEOUT_SECONDS,
    get_api_key,
)
from .metadata.aliases import build_model_key_aliases
from .metadata.types import ExternalSignal, SignalMap, SignalSource

logger = logging.getLogger(__name__)

# Creator slug fragment -> catalog provider id (first match wins)
_CREATOR_PROVIDER_PREFIXES = (
    (("openai",), "openai"),
    (("anthropic",), "anthropic"),
    (("google",), "google"),
    (("chutes",), "chutes"),
    (("copilot", "github"), "github-copilot"),
    (("zai", "z-ai"), "zai-coding-plan"),
    (("kimi",), "kimi-for-coding"),
    (("opencode",), "opencode"),
)


@dataclass
class ExternalSignalFetchResult:
    """Merged signals plus warnings for sources that failed."""

    signals: SignalMap = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def merge_signal(existing: Optional[ExternalSignal], incoming: ExternalSignal) -> ExternalSignal:
    """Merge two signals for the same alias.

    Incoming fields win where present; the result is marked as merged.
    Without an existing signal the incoming one is returned unchanged.
    """
    if existing is None:
        return incoming

    def pick(name: str) -> Optional[float]:
        value = getattr(incoming, name)
        return value if value is not None else getattr(existing, name)

    return ExternalSignal(
        quality_score=pick("quality_score"),
        coding_score=pick("coding_score"),
        latency_seconds=pick("latency_seconds"),
        input_price_per_1m=pick("input_price_per_1m"),
        output_price_per_1m=pick("output_price_per_1m"),
        source=SignalSource.MERGED,
    )


def provider_prefix_from_creator(creator_slug: Optional[str]) -> Optional[str]:
    """Map an upstream model-creator slug to a catalog provider id."""
    if not creator_slug:
        return None
    slug = creator_slug.lower()
    for fragments, provider in _CREATOR_PROVIDER_PREFIXES:
        if any(fragment in slug for fragment in fragments):
            return provider
    return None


def _normalize_key(value: str) -> str:
    return value.strip().lower()


def _provider_scoped_alias(alias: str, provider_prefix: Optional[str]) -> str:
    if not provider_prefix or "/" in alias:
        return alias
    return f"{provider_prefix}/{alias}"


def _first_present(*values: Any) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


def _parse_openrouter_price(value: Any) -> Optional[float]:
    """OpenRouter prices are per-token strings; convert to per million."""
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed * 1_000_000


def _store(signals: SignalMap, alias: str, signal: ExternalSignal) -> None:
    signals[alias] = merge_signal(signals.get(alias), signal)


def parse_artificial_analysis_payload(payload: Dict[str, Any]) -> SignalMap:
    """Convert an Artificial Analysis models payload into a signal map.

    Args:
        payload: Decoded JSON body with a "data" list

    Returns:
        Signals keyed by normalized alias
    """
    signals: SignalMap = {}

    for entry in payload.get("data") or []:
        evaluations = entry.get("evaluations") or {}
        pricing = entry.get("pricing") or {}
        blended = pricing.get("price_1m_blended_3_to_1")

        signal = ExternalSignal(
            quality_score=evaluations.get("artificial_analysis_intelligence_index"),
            coding_score=_first_present(
                evaluations.get("artificial_analysis_coding_index"),
                evaluations.get("livecodebench"),
            ),
            latency_seconds=entry.get("median_time_to_first_token_seconds"),
            input_price_per_1m=_first_present(pricing.get("price_1m_input_tokens"), blended),
            output_price_per_1m=_first_present(pricing.get("price_1m_output_tokens"), blended),
            source=SignalSource.ARTIFICIAL_ANALYSIS,
        )

        creator = entry.get("model_creator") or {}
        provider_prefix = provider_prefix_from_creator(creator.get("slug"))

        for raw_key in (entry.get("id"), entry.get("slug"), entry.get("name")):
            if not raw_key:
                continue
            for alias in build_model_key_aliases(_normalize_key(raw_key)):
                if not provider_prefix or "/" in alias:
                    _store(signals, alias, signal)
                _store(signals, _provider_scoped_alias(alias, provider_prefix), signal)

    return signals


def parse_openrouter_payload(payload: Dict[str, Any]) -> SignalMap:
    """Convert an OpenRouter models payload into a price-only signal map."""
    signals: SignalMap = {}

    for entry in payload.get("data") or []:
        model_id = entry.get("id")
        if not model_id:
            continue
        key = _normalize_key(model_id)
        provider_prefix = key.split("/")[0]
        pricing = entry.get("pricing") or {}

        signal = ExternalSignal(
            input_price_per_1m=_parse_openrouter_price(pricing.get("prompt")),
            output_price_per_1m=_parse_openrouter_price(pricing.get("completion")),
            source=SignalSource.OPENROUTER,
        )

        for alias in build_model_key_aliases(key):
            if "/" in alias:
                _store(signals, alias, signal)
            _store(signals, _provider_scoped_alias(alias, provider_prefix), signal)

    return signals


async def _get_json(url: str, headers: Dict[str, str], source: str) -> Dict[str, Any]:
    async with httpx.AsyncClient(timeout=SIGNAL_FETCH_TIMEOUT_SECONDS) as client:
        response = await client.get(url, headers=headers)
        if response.is_error:
            raise RuntimeError(
                f"{source} request failed ({response.status_code} {response.reason_phrase})"
            )
        return response.json()


async def fetch_artificial_analysis_signals(api_key: str) -> SignalMap:
    """Fetch and parse Artificial Analysis model signals."""
    payload = await _get_json(
        ARTIFICIAL_ANALYSIS_MODELS_URL,
        headers={"x-api-key": api_key},
        source="Artificial Analysis",
    )
    signals = parse_artificial_analysis_payload(payload)
    logger.debug(f"Artificial Analysis returned {len(signals)} signal aliases")
    return signals


async def fetch_openrouter_signals(api_key: str) -> SignalMap:
    """Fetch and parse OpenRouter price signals."""
    payload = await _get_json(
        OPENROUTER_MODELS_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        source="OpenRouter",
    )
    signals = parse_openrouter_payload(payload)
    logger.debug(f"OpenRouter returned {len(signals)} signal aliases")
    return signals


async def _no_signals() -> SignalMap:
    return {}


def _describe(error: BaseException) -> str:
    if isinstance(error, httpx.TimeoutException):
        return f"Timeout after {SIGNAL_FETCH_TIMEOUT_SECONDS}s"
    return str(error) or type(error).__name__


async def fetch_external_model_signals(
    artificial_analysis_api_key: Optional[str] = None,
    openrouter_api_key: Optional[str] = None,
) -> ExternalSignalFetchResult:
    """Fetch signals from every configured source and merge them.

    Keys default to ARTIFICIAL_ANALYSIS_API_KEY / OPENROUTER_API_KEY. A source
    without a key is skipped silently; a failing source adds a warning.
    OpenRouter values are merged last, so its prices win on shared aliases.

    Returns:
        ExternalSignalFetchResult with merged signals and warnings
    """
    aa_key = artificial_analysis_api_key or get_api_key("artificial_analysis")
    or_key = openrouter_api_key or get_api_key("openrouter")

    sources = (
        ("Artificial Analysis", aa_key, fetch_artificial_analysis_signals),
        ("OpenRouter", or_key, fetch_openrouter_signals),
    )
    results = await asyncio.gather(
        *(fetch(key) if key else _no_signals() for _, key, fetch in sources),
        return_exceptions=True,
    )

    aggregate = ExternalSignalFetchResult()
    for (label, key, _), result in zip(sources, results):
        if isinstance(result, BaseException):
            if key:
                message = f"{label} unavailable: {_describe(result)}"
                logger.warning(message)
                aggregate.warnings.append(message)
            continue
        for alias, signal in result.items():
            _store(aggregate.signals, alias, signal)

    return aggregate


__all__ = [
    "ExternalSignalFetchResult",
    "fetch_artificial_analysis_signals",
    "fetch_external_model_signals",
    "fetch_openrouter_signals",
    "merge_signal",
    "parse_artificial_analysis_payload",
    "parse_openrouter_payload",
    "provider_prefix_from_creator",
]
