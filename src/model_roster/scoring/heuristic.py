"""Heuristic role scoring (engine v1).

This module provides the hand-tuned additive scorer:
- base_score: status, context/output magnitude, token bonuses, recency
- role_score: per-role linear combination on top of the base score
- external_signal_boost: bounded contribution of third-party signals
- rank_models_v1 / rank_models_v1_with_breakdown: deterministic rankings

Usage:
    >>> from model_roster.scoring.heuristic import rank_models_v1
    >>> ranked = rank_models_v1(catalog, "oracle", signals)
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from ..config import AGGREGATOR_PROVIDER, ZAI_PROVIDER
from ..metadata.recency import get_version_recency_map
from ..metadata.types import ModelRecord, ModelStatus, SignalMap
from ..roles import DESIGNER, EXPLORER, LIBRARIAN, ORACLE, ORCHESTRATOR
from .common import (
    DEPRECATED_FLOOR_SCORE,
    TOOLCALL_FLOOR_SCORE,
    Ineligibility,
    ranking_key,
    role_eligibility,
    round_score,
)
from .signals import blended_price, find_signal

DEEP_TOKENS = re.compile(r"(opus|pro|thinking|reason|r1|gpt-5|k2\.5)", re.IGNORECASE)
FAST_TOKENS = re.compile(r"(nano|flash|mini|lite|fast|turbo|haiku|small)", re.IGNORECASE)
CODE_TOKENS = re.compile(r"(codex|coder|code|dev|program)", re.IGNORECASE)
FLASH_TOKEN = re.compile(r"flash", re.IGNORECASE)

_ZAI_47 = re.compile(r"glm-4\.7", re.IGNORECASE)
_KIMI_K25 = re.compile(r"kimi-k2\.?5|k2\.?5", re.IGNORECASE)
_GEMINI_25_PRO = re.compile(r"gemini-2\.5-pro")
_QWEN3 = re.compile(r"qwen3")
_AGGREGATOR_KIMI_K25 = re.compile(r"kimi-k2\.5|k2\.5")
_MINIMAX_M21 = re.compile(r"minimax[-_ ]?m2\.1")

STATUS_SCORES: Dict[ModelStatus, float] = {
    ModelStatus.ACTIVE: 20,
    ModelStatus.BETA: 8,
    ModelStatus.ALPHA: -5,
    ModelStatus.DEPRECATED: -40,
}

PROVIDER_BIAS: Dict[str, float] = {
    "openai": 3,
    "anthropic": 3,
    "kimi-for-coding": 2,
    "google": 2,
    "github-copilot": 1,
    "zai-coding-plan": 0,
    "chutes": 2,
    "opencode": -2,
}

# Aggregator family priors per role
AGGREGATOR_QWEN3_PENALTY: Dict[str, float] = {
    "oracle": -12,
    "orchestrator": -10,
    "fixer": -22,
    "designer": -14,
    "librarian": -18,
    "explorer": -10,
}
AGGREGATOR_KIMI_BONUS: Dict[str, float] = {
    "oracle": 0,
    "orchestrator": 0,
    "fixer": 8,
    "designer": 6,
    "librarian": 5,
    "explorer": 4,
}
AGGREGATOR_MINIMAX_BONUS: Dict[str, float] = {
    "oracle": 0,
    "orchestrator": 0,
    "fixer": 10,
    "designer": 3,
    "librarian": 9,
    "explorer": 12,
}

GEMINI_25_PRO_PENALTY = -14

# External boost bounds
EXPLORER_BOOST_RANGE = (-90.0, 25.0)
DEFAULT_BOOST_RANGE = (-30.0, 45.0)


def _token_score(text: str, pattern: "re.Pattern[str]", points: float) -> float:
    return points if pattern.search(text) else 0


def has_flash_token(model: ModelRecord) -> bool:
    """Whether the model is a "flash" variant."""
    return bool(FLASH_TOKEN.search(model.search_text))


def is_zai_47_model(model: ModelRecord) -> bool:
    """Whether the model is a glm-4.7 build on the zai provider."""
    return model.provider_id == ZAI_PROVIDER and bool(_ZAI_47.search(model.search_text))


def is_kimi_k25_model(model: ModelRecord) -> bool:
    """Whether the model belongs to the kimi k2.5 family (any provider)."""
    return bool(_KIMI_K25.search(model.search_text))


def base_score(model: ModelRecord, version_recency_boost: float = 0.0) -> float:
    """Role-independent base score."""
    text = model.search_text
    context = min(model.context_limit, 1_000_000) / 50_000
    output = min(model.output_limit, 300_000) / 30_000
    deep = _token_score(text, DEEP_TOKENS, 12)
    fast = _token_score(text, FAST_TOKENS, 4)
    code = _token_score(text, CODE_TOKENS, 12)
    return (
        STATUS_SCORES[model.status]
        + context
        + output
        + deep
        + fast
        + code
        + version_recency_boost
        + (25 if model.toolcall else 0)
    )


def _gemini_adjustment(model: ModelRecord) -> float:
    return GEMINI_25_PRO_PENALTY if _GEMINI_25_PRO.search(model.search_text) else 0


def _aggregator_adjustment(role: str, model: ModelRecord) -> float:
    if model.provider_id != AGGREGATOR_PROVIDER:
        return 0

    text = model.search_text
    return (
        (AGGREGATOR_QWEN3_PENALTY[role] if _QWEN3.search(text) else 0)
        + (AGGREGATOR_KIMI_BONUS[role] if _AGGREGATOR_KIMI_K25.search(text) else 0)
        + (AGGREGATOR_MINIMAX_BONUS[role] if _MINIMAX_M21.search(text) else 0)
    )


def role_score(role: str, model: ModelRecord, version_recency_boost: float = 0.0) -> float:
    """Score a model for a role.

    Models lacking tool invocation score -10,000 for roles that need it;
    deprecated models score -5,000 for every role. Both stay sortable.

    Args:
        role: Role name
        model: Catalog record
        version_recency_boost: Recency bonus of the model within the catalog

    Returns:
        Unbounded real score
    """
    ineligible = role_eligibility(role, model)
    if ineligible == Ineligibility.TOOLCALL_REQUIRED:
        return TOOLCALL_FLOOR_SCORE
    if ineligible == Ineligibility.DEPRECATED:
        return DEPRECATED_FLOOR_SCORE

    text = model.search_text
    reasoning = 1 if model.reasoning else 0
    toolcall = 1 if model.toolcall else 0
    attachment = 1 if model.attachment else 0
    context = min(model.context_limit, 1_000_000) / 60_000
    output = min(model.output_limit, 300_000) / 40_000
    deep = _token_score(text, DEEP_TOKENS, 1)
    fast = _token_score(text, FAST_TOKENS, 1)
    code = _token_score(text, CODE_TOKENS, 1)

    score = base_score(model, version_recency_boost)
    flash = has_flash_token(model)
    zai_47 = is_zai_47_model(model)
    zai_47_flash = zai_47 and flash
    zai_47_full = zai_47 and not flash
    provider_bias = PROVIDER_BIAS.get(model.provider_id, 0)
    gemini_adjustment = _gemini_adjustment(model)
    aggregator_adjustment = _aggregator_adjustment(role, model)
    non_reasoning_flash_penalty = -16 if flash and not model.reasoning else 0

    if role == ORCHESTRATOR:
        return (
            score
            + reasoning * 40
            + toolcall * 25
            + deep * 10
            + code * 8
            + context
            + (-22 if flash else 0)
            + (16 if zai_47_full else -18 if zai_47_flash else 0)
            + non_reasoning_flash_penalty
            + gemini_adjustment
            + aggregator_adjustment
            + provider_bias
        )
    if role == ORACLE:
        return (
            score
            + reasoning * 55
            + deep * 18
            + context * 1.2
            + toolcall * 10
            + (-34 if flash else 0)
            + (16 if zai_47_full else -18 if zai_47_flash else 0)
            + non_reasoning_flash_penalty
            + gemini_adjustment
            + aggregator_adjustment
            + provider_bias
        )
    if role == DESIGNER:
        return (
            score
            + attachment * 25
            + reasoning * 18
            + toolcall * 15
            + context * 0.8
            + output
            + (-8 if flash else 0)
            + (10 if zai_47_full else -8 if zai_47_flash else 0)
            + gemini_adjustment
            + aggregator_adjustment
            + provider_bias
        )
    if role == EXPLORER:
        return (
            score
            + fast * 68
            + toolcall * 28
            + reasoning * 2
            + context * 0.2
            + (26 if flash else -10)
            + (2 if zai_47_full else 6 if zai_47_flash else 0)
            + deep * -18
            + gemini_adjustment
            + aggregator_adjustment
            + provider_bias
        )
    if role == LIBRARIAN:
        return (
            score
            + context * 30
            + toolcall * 22
            + reasoning * 15
            + output * 10
            + (-12 if flash else 0)
            + (16 if zai_47_full else -18 if zai_47_flash else 0)
            + gemini_adjustment
            + aggregator_adjustment
            + provider_bias
        )

    # fixer
    return (
        score
        + code * 28
        + toolcall * 24
        + fast * 18
        + reasoning * 14
        + output * 8
        + (-18 if flash else 0)
        + (16 if zai_47_full else -18 if zai_47_flash else 0)
        + non_reasoning_flash_penalty
        + gemini_adjustment
        + aggregator_adjustment
        + provider_bias
    )


def external_signal_boost(
    role: str,
    model: ModelRecord,
    signals: Optional[SignalMap],
) -> float:
    """Bounded score contribution of external quality/latency/price signals.

    The explorer role weighs latency heavily and is clamped to [-90, 25];
    every other role is clamped to [-30, 45].
    """
    signal = find_signal(model, signals)
    if signal is None:
        return 0.0

    quality = signal.quality_score or 0
    coding = signal.coding_score or 0
    latency = signal.latency_seconds
    has_latency = isinstance(latency, (int, float)) and math.isfinite(latency)
    price = blended_price(signal)

    if role == EXPLORER:
        latency_penalty = 0.0
        if has_latency:
            step = 16 if latency > 7 else 10 if latency > 4 else 0
            latency_penalty = min(latency, 12) * 3.2 + step
        quality_floor_penalty = (35 - quality) * 0.8 if 0 < quality < 35 else 0
        boost = (
            quality * 0.05
            + coding * 0.08
            - latency_penalty
            - min(price, 30) * 0.03
            - quality_floor_penalty
        )
        low, high = EXPLORER_BOOST_RANGE
        return max(low, min(high, boost))

    latency_penalty = min(latency, 25) * 0.22 if has_latency else 0
    boost = quality * 0.16 + coding * 0.24 - latency_penalty - min(price, 30) * 0.08
    low, high = DEFAULT_BOOST_RANGE
    return max(low, min(high, boost))


def combined_score(
    role: str,
    model: ModelRecord,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> float:
    """Role score plus external boost for one model."""
    recency = (version_recency or {}).get(model.full_id, 0.0)
    return role_score(role, model, recency) + external_signal_boost(role, model, signals)


def rank_models_v1(
    models: Iterable[ModelRecord],
    role: str,
    signals: Optional[SignalMap] = None,
) -> List[ModelRecord]:
    """Rank models for a role, best first.

    Ties break by provider id, then composite id; ineligible models go last.
    """
    models = list(models)
    recency = get_version_recency_map(models)
    return sorted(
        models,
        key=lambda m: ranking_key(
            m, combined_score(role, m, signals, recency), role_eligibility(role, m)
        ),
    )


@dataclass(frozen=True)
class V1RankedScore:
    """Explained v1 score of one model."""

    model: str
    total_score: float
    base_score: float
    external_signal_boost: float
    ineligible: Optional[Ineligibility] = None


def rank_models_v1_with_breakdown(
    models: Iterable[ModelRecord],
    role: str,
    signals: Optional[SignalMap] = None,
) -> List[V1RankedScore]:
    """Rank models for a role with the role score and boost split out.

    Values are rounded to 3 decimals; ties break by composite id.
    """
    models = list(models)
    recency = get_version_recency_map(models)
    scored = []
    for model in models:
        base = role_score(role, model, recency.get(model.full_id, 0.0))
        boost = external_signal_boost(role, model, signals)
        scored.append(
            V1RankedScore(
                model=model.full_id,
                total_score=round_score(base + boost),
                base_score=round_score(base),
                external_signal_boost=round_score(boost),
                ineligible=role_eligibility(role, model),
            )
        )
    return sorted(
        scored,
        key=lambda s: (s.ineligible is not None, -s.total_score, s.model),
    )


__all__ = [
    "PROVIDER_BIAS",
    "STATUS_SCORES",
    "V1RankedScore",
    "base_score",
    "combined_score",
    "external_signal_boost",
    "has_flash_token",
    "is_kimi_k25_model",
    "is_zai_47_model",
    "rank_models_v1",
    "rank_models_v1_with_breakdown",
    "role_score",
]
