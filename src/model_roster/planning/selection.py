"""Candidate reduction, diversity-aware primary selection and chain building.

The selector is greedy: roles are processed in PRIMARY_ASSIGNMENT_ORDER and
each pick updates the running per-provider usage that biases later roles.
Every tie is broken explicitly so that identical inputs give identical plans.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..config import AGGREGATOR_PROVIDER, DEFAULT_FREE_MODEL, FREE_PROVIDER, MAX_CHAIN_LENGTH
from ..metadata.types import ModelRecord, SignalMap
from ..roles import DESIGNER, EXPLORER, FIXER, LIBRARIAN, ORACLE, ORCHESTRATOR, ROLES
from ..scoring.common import role_eligibility, round_score
from ..scoring.engine import score_candidate_v2
from ..scoring.heuristic import combined_score, has_flash_token, is_kimi_k25_model, is_zai_47_model
from .precedence import dedupe
from .types import ScoringEngineVersion

logger = logging.getLogger(__name__)

# Providers whose models are primaries only when nothing paid is enabled
FREE_BIASED_PROVIDERS = frozenset({FREE_PROVIDER})

# Models kept per provider after reduction
MAX_MODELS_PER_PROVIDER = 2

# Diversity adjustment
DEFICIT_BONUS = 14.0
SOFT_OVERFLOW_PENALTY = 18.0
HARD_OVERFLOW_PENALTY = 100.0
HARD_CAP_LIMIT = 4

# A provider already holding this many roles yields to an unused one
REPEAT_USAGE_THRESHOLD = 2
UNUSED_PROVIDER_TOLERANCE = 9.0

# glm-4.7 flash yields to a kimi-k2.5 candidate within this raw-score gap
KIMI_SWAP_TOLERANCE = 2.0

# Raw-score distance from the best candidate that stays selectable
QUALITY_WINDOWS: Dict[str, float] = {
    ORACLE: 12.0,
    ORCHESTRATOR: 12.0,
    FIXER: 15.0,
    DESIGNER: 16.0,
    LIBRARIAN: 18.0,
    EXPLORER: 22.0,
}

# How far a flash variant must out-score the non-flash one to represent a provider
FLASH_REPRESENTATIVE_MARGIN = 12.0
EXPLORER_FLASH_REPRESENTATIVE_MARGIN = -6.0

# Maximum score gap for a provider's second model to join the bundle
BUNDLE_SECOND_GAP: Dict[str, float] = {
    ORACLE: 8.0,
    ORCHESTRATOR: 8.0,
    DESIGNER: 12.0,
    LIBRARIAN: 12.0,
    FIXER: 15.0,
    EXPLORER: 18.0,
}

SYNTHETIC_CONTEXT_LIMIT = 200_000
SYNTHETIC_OUTPUT_LIMIT = 32_000


def effective_engine(engine_version: ScoringEngineVersion) -> str:
    """Engine whose scores are applied ("v2-shadow" applies v1)."""
    return "v2" if engine_version == "v2" else "v1"


def score_for_engine(
    engine_version: ScoringEngineVersion,
    role: str,
    model: ModelRecord,
    signals: Optional[SignalMap],
    version_recency: Mapping[str, float],
) -> float:
    """Score a model with whichever engine is applied."""
    if effective_engine(engine_version) == "v2":
        return score_candidate_v2(model, role, signals).total_score
    return combined_score(role, model, signals, version_recency)


def ensure_synthetic_model(models: List[ModelRecord], full_id: Optional[str]) -> List[ModelRecord]:
    """Add a placeholder record for a pinned id missing from the catalog."""
    if not full_id:
        return models
    if any(model.full_id == full_id for model in models):
        return models

    segments = full_id.split("/")
    if len(segments) < 2 or not segments[0] or not segments[1]:
        return models

    logger.debug(f"Adding synthetic catalog entry for pinned model {full_id}")
    return models + [
        ModelRecord.from_full_id(
            full_id,
            name=segments[1],
            context_limit=SYNTHETIC_CONTEXT_LIMIT,
            output_limit=SYNTHETIC_OUTPUT_LIMIT,
            reasoning=True,
            toolcall=True,
            attachment=False,
        )
    ]


def select_top_models_per_provider(
    models: Iterable[ModelRecord],
    engine_version: ScoringEngineVersion,
    signals: Optional[SignalMap],
    version_recency: Mapping[str, float],
) -> List[ModelRecord]:
    """Keep at most two models per provider.

    Providers with more than two models keep the two that are ineligible for
    the fewest roles, then the best mean score across all roles (ties broken
    by composite id). Providers appear in the order they first occur in the
    input.
    """
    by_provider: Dict[str, List[ModelRecord]] = {}
    for model in models:
        by_provider.setdefault(model.provider_id, []).append(model)

    selected: List[ModelRecord] = []
    for provider_id, provider_models in by_provider.items():
        if len(provider_models) <= MAX_MODELS_PER_PROVIDER:
            selected.extend(provider_models)
            continue

        averaged = []
        for model in provider_models:
            total = 0.0
            ineligible_roles = 0
            for role in ROLES:
                total += score_for_engine(engine_version, role, model, signals, version_recency)
                if role_eligibility(role, model) is not None:
                    ineligible_roles += 1
            averaged.append((ineligible_roles, total / len(ROLES), model))

        averaged.sort(key=lambda item: (item[0], -item[1], item[2].full_id))
        kept = [model for _, _, model in averaged[:MAX_MODELS_PER_PROVIDER]]
        logger.debug(
            f"Reduced {provider_id} from {len(provider_models)} to "
            f"{[m.full_id for m in kept]}"
        )
        selected.extend(kept)

    return selected


def provider_targets(paid_providers: Sequence[str], slots: int = len(ROLES)) -> Dict[str, int]:
    """Split role slots evenly; the remainder goes to the earliest providers.

    Example:
        >>> provider_targets(["anthropic", "google", "openai", "zai-coding-plan"])
        {'anthropic': 2, 'google': 2, 'openai': 1, 'zai-coding-plan': 1}
    """
    if not paid_providers:
        return {}
    base, extra = divmod(slots, len(paid_providers))
    return {
        provider_id: base + (1 if index < extra else 0)
        for index, provider_id in enumerate(paid_providers)
    }


def quality_window(role: str) -> float:
    return QUALITY_WINDOWS.get(role, QUALITY_WINDOWS[EXPLORER])


def choose_provider_representative(
    provider_models: Sequence[ModelRecord],
    role: str,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> Optional[ModelRecord]:
    """Pick the model that represents a provider in a role's chain.

    The best non-flash model wins unless the best flash model beats it by a
    role-specific margin (negative for the explorer, which favors speed).
    """
    if not provider_models:
        return None

    flash_best = next((m for m in provider_models if has_flash_token(m)), None)
    non_flash_best = next((m for m in provider_models if not has_flash_token(m)), None)

    if non_flash_best is None:
        return provider_models[0]
    if flash_best is None:
        return non_flash_best

    recency = version_recency or {}
    flash_score = combined_score(role, flash_best, signals, recency)
    non_flash_score = combined_score(role, non_flash_best, signals, recency)
    margin = (
        EXPLORER_FLASH_REPRESENTATIVE_MARGIN if role == EXPLORER else FLASH_REPRESENTATIVE_MARGIN
    )
    return flash_best if flash_score >= non_flash_score + margin else non_flash_best


def get_provider_bundle(
    provider_models: Sequence[ModelRecord],
    role: str,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> List[str]:
    """Representative model of a provider, plus a close second if any.

    The aggregator always contributes its second model because it hosts
    unrelated model families.
    """
    representative = choose_provider_representative(
        provider_models, role, signals, version_recency
    )
    if representative is None:
        return []

    second = next((m for m in provider_models if m.full_id != representative.full_id), None)
    if second is None:
        return [representative.full_id]

    recency = version_recency or {}
    gap = abs(
        combined_score(role, representative, signals, recency)
        - combined_score(role, second, signals, recency)
    )
    include_second = (
        representative.provider_id == AGGREGATOR_PROVIDER
        or gap <= BUNDLE_SECOND_GAP.get(role, BUNDLE_SECOND_GAP[EXPLORER])
    )
    if include_second:
        return [representative.full_id, second.full_id]
    return [representative.full_id]


@dataclass(frozen=True)
class _DiversityCandidate:
    model: ModelRecord
    usage: int
    target: int
    raw_score: float
    adjusted_score: float

    @property
    def usage_ratio(self) -> float:
        return self.usage / self.target if self.target > 0 else float(self.usage)


def _diversity_candidate(
    model: ModelRecord,
    role: str,
    provider_usage: Mapping[str, int],
    target_by_provider: Mapping[str, int],
    signals: Optional[SignalMap],
    version_recency: Mapping[str, float],
) -> _DiversityCandidate:
    usage = provider_usage.get(model.provider_id, 0)
    target = target_by_provider.get(model.provider_id, 1)
    hard_cap = min(target + 1, HARD_CAP_LIMIT)
    deficit = max(0, target - usage)
    soft_overflow = max(0, usage + 1 - target)
    hard_overflow = max(0, usage + 1 - hard_cap)
    raw = combined_score(role, model, signals, version_recency)
    adjusted = (
        raw
        + deficit * DEFICIT_BONUS
        - soft_overflow * SOFT_OVERFLOW_PENALTY
        - hard_overflow * HARD_OVERFLOW_PENALTY
    )
    return _DiversityCandidate(
        model=model,
        usage=usage,
        target=target,
        raw_score=raw,
        adjusted_score=round_score(adjusted),
    )


def select_primary_with_diversity(
    candidates: Sequence[ModelRecord],
    role: str,
    provider_usage: Counter,
    target_by_provider: Mapping[str, int],
    remaining_slots: int,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> Optional[ModelRecord]:
    """Pick a role's primary model, balancing quality against provider spread.

    Args:
        candidates: Ranked candidates for the role, best first
        role: Role being assigned
        provider_usage: Roles already assigned per provider (not mutated)
        target_by_provider: Even share of roles per paid provider
        remaining_slots: Roles still to assign, this one included
        signals: Optional external signals
        version_recency: Recency bonus per composite id

    Returns:
        Chosen model, or None when there are no candidates
    """
    if not candidates:
        return None

    recency = version_recency or {}
    scored = [
        _diversity_candidate(model, role, provider_usage, target_by_provider, signals, recency)
        for model in candidates
    ]

    best_raw = max(item.raw_score for item in scored)
    window = quality_window(role)
    eligible = [item for item in scored if item.raw_score >= best_raw - window]

    must_fill = {
        provider_id
        for provider_id, target in target_by_provider.items()
        if max(0, target - provider_usage.get(provider_id, 0)) >= remaining_slots
    }
    if must_fill:
        forced = [item for item in eligible if item.model.provider_id in must_fill]
        if forced:
            eligible = forced

    eligible.sort(
        key=lambda item: (
            -item.adjusted_score,
            item.usage_ratio,
            -item.raw_score,
            item.model.provider_id,
            item.model.full_id,
        )
    )

    chosen = eligible[0] if eligible else scored[0]

    if chosen.usage >= REPEAT_USAGE_THRESHOLD:
        best_unused = next((item for item in scored if item.usage == 0), None)
        if (
            best_unused is not None
            and best_unused.adjusted_score >= chosen.adjusted_score - UNUSED_PROVIDER_TOLERANCE
        ):
            logger.debug(
                f"{role}: {chosen.model.full_id} provider already used "
                f"{chosen.usage}x, switching to {best_unused.model.full_id}"
            )
            chosen = best_unused

    if role != EXPLORER and is_zai_47_model(chosen.model) and has_flash_token(chosen.model):
        kimi = next((item for item in scored if is_kimi_k25_model(item.model)), None)
        if kimi is not None and kimi.raw_score >= chosen.raw_score - KIMI_SWAP_TOLERANCE:
            logger.debug(f"{role}: preferring {kimi.model.full_id} over {chosen.model.full_id}")
            chosen = kimi

    return chosen.model


def finalize_chain_with_tail(prefix: Sequence[str], preferred_tail: Optional[str]) -> List[str]:
    """End a chain with a deterministic free-tier model.

    With a preferred tail, the rest of the chain is capped so the tail is
    always kept; otherwise the universal default is appended and the whole
    chain is capped.
    """
    if not preferred_tail:
        return dedupe(list(prefix) + [DEFAULT_FREE_MODEL])[:MAX_CHAIN_LENGTH]

    without_tail = [model for model in prefix if model != preferred_tail]
    return without_tail[: MAX_CHAIN_LENGTH - 1] + [preferred_tail]


__all__ = [
    "FREE_BIASED_PROVIDERS",
    "choose_provider_representative",
    "effective_engine",
    "ensure_synthetic_model",
    "finalize_chain_with_tail",
    "get_provider_bundle",
    "provider_targets",
    "quality_window",
    "score_for_engine",
    "select_primary_with_diversity",
    "select_top_models_per_provider",
]
