"""Post-selection passes that trade a little score for provider coverage.

- Rescue: every paid provider left without a role takes the role where
  switching to it costs the least score. Loss is not bounded.
- Balancer: while some paid provider is under its target and another is
  over, move the cheapest role from an over-target provider to an
  under-target one, as long as the loss stays within MAX_SWAP_SCORE_LOSS.

Both passes only touch roles whose model came from the dynamic or fallback
layers; explicit user decisions are locked. Neither pass moves a role from an
eligible model onto an ineligible one.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..metadata.types import ModelRecord, SignalMap, provider_of
from ..roles import PRIMARY_ASSIGNMENT_ORDER
from ..scoring.common import role_eligibility
from ..scoring.heuristic import combined_score
from .precedence import terminate_chain
from .selection import score_for_engine
from .types import ResolutionLayer, ScoringEngineVersion

logger = logging.getLogger(__name__)

MAX_SWAP_SCORE_LOSS = 20.0

RankedModelsFn = Callable[[str], List[ModelRecord]]
PinnedModelFn = Callable[[str, str], Optional[str]]


@dataclass
class WorkingAssignment:
    """Mutable per-role state while a plan is being built."""

    model: str
    chain: List[str]
    winner_layer: ResolutionLayer
    system_default: List[str] = field(default_factory=list)
    locked: bool = False

    @property
    def provider_id(self) -> str:
        return provider_of(self.model)

    def swap_to(self, model_id: str) -> None:
        """Reassign the role, keeping the previous chain as fallbacks."""
        self.model = model_id
        self.chain = terminate_chain([model_id] + self.chain, self.system_default)
        self.winner_layer = ResolutionLayer.PROVIDER_FALLBACK_POLICY


@dataclass(frozen=True)
class _Swap:
    role: str
    candidate: ModelRecord
    loss: float


def count_provider_usage(assignments: Mapping[str, WorkingAssignment]) -> Counter:
    """Number of roles currently assigned to each provider."""
    return Counter(assignment.provider_id for assignment in assignments.values())


def _provider_candidate(
    ranked: Sequence[ModelRecord],
    pinned: Optional[str],
    provider_id: str,
) -> Optional[ModelRecord]:
    """The pinned model when ranked, else the provider's best ranked model."""
    if pinned:
        for model in ranked:
            if model.full_id == pinned and model.provider_id == provider_id:
                return model
    return next((model for model in ranked if model.provider_id == provider_id), None)


def _loses_eligibility(role: str, current: ModelRecord, candidate: ModelRecord) -> bool:
    """True when swapping would move an eligible role onto an ineligible model."""
    return role_eligibility(role, current) is None and role_eligibility(role, candidate) is not None


def rescue_unused_providers(
    assignments: Dict[str, WorkingAssignment],
    paid_providers: Sequence[str],
    provider_usage: Counter,
    ranked_models: RankedModelsFn,
    pinned_model_for_provider: PinnedModelFn,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> List[str]:
    """Give every unused paid provider at least one role.

    Args:
        assignments: Working assignments, updated in place
        paid_providers: Paid provider ids, sorted
        provider_usage: Roles per provider, updated in place
        ranked_models: Role -> ranked candidates
        pinned_model_for_provider: (role, provider) -> pinned id or None
        signals: Optional external signals
        version_recency: Recency bonus per composite id

    Returns:
        Providers that received a role
    """
    rescued = []

    for provider_id in paid_providers:
        if provider_usage.get(provider_id, 0) > 0:
            continue

        best: Optional[_Swap] = None
        for role in PRIMARY_ASSIGNMENT_ORDER:
            assignment = assignments.get(role)
            if assignment is None or assignment.locked:
                continue

            ranked = ranked_models(role)
            candidate = _provider_candidate(
                ranked, pinned_model_for_provider(role, provider_id), provider_id
            )
            current = next((m for m in ranked if m.full_id == assignment.model), None)
            if candidate is None or current is None:
                continue
            if _loses_eligibility(role, current, candidate):
                continue

            loss = combined_score(role, current, signals, version_recency) - combined_score(
                role, candidate, signals, version_recency
            )
            if best is None or loss < best.loss:
                best = _Swap(role=role, candidate=candidate, loss=loss)

        if best is None:
            continue

        assignment = assignments[best.role]
        previous_provider = assignment.provider_id
        logger.debug(
            f"Rescue: {best.role} {assignment.model} -> {best.candidate.full_id} "
            f"(loss {best.loss:.3f})"
        )
        assignment.swap_to(best.candidate.full_id)
        provider_usage[provider_id] += 1
        provider_usage[previous_provider] = max(0, provider_usage[previous_provider] - 1)
        rescued.append(provider_id)

    return rescued


def rebalance_for_subscription_mode(
    assignments: Dict[str, WorkingAssignment],
    paid_providers: Sequence[str],
    ranked_models: RankedModelsFn,
    pinned_model_for_provider: PinnedModelFn,
    target_by_provider: Mapping[str, int],
    engine_version: ScoringEngineVersion,
    signals: Optional[SignalMap] = None,
    version_recency: Optional[Mapping[str, float]] = None,
) -> int:
    """Move roles toward each paid provider's even share.

    Returns:
        Number of swaps applied
    """
    if len(paid_providers) <= 1:
        return 0

    recency = version_recency or {}
    swaps = 0

    while True:
        usage = count_provider_usage(assignments)
        under = [p for p in paid_providers if usage.get(p, 0) < target_by_provider.get(p, 0)]
        over = [p for p in paid_providers if usage.get(p, 0) > target_by_provider.get(p, 0)]
        if not under or not over:
            break

        best: Optional[_Swap] = None
        for role in PRIMARY_ASSIGNMENT_ORDER:
            assignment = assignments.get(role)
            if assignment is None or assignment.locked:
                continue
            current_provider = assignment.provider_id
            if current_provider not in over:
                continue

            ranked = ranked_models(role)
            current = next((m for m in ranked if m.full_id == assignment.model), None) or next(
                (m for m in ranked if m.provider_id == current_provider), None
            )
            if current is None:
                continue
            current_score = score_for_engine(engine_version, role, current, signals, recency)

            for provider_id in under:
                candidate = _provider_candidate(
                    ranked, pinned_model_for_provider(role, provider_id), provider_id
                )
                if candidate is None:
                    continue
                if _loses_eligibility(role, current, candidate):
                    continue
                loss = current_score - score_for_engine(
                    engine_version, role, candidate, signals, recency
                )
                if loss > MAX_SWAP_SCORE_LOSS:
                    continue
                if best is None or loss < best.loss:
                    best = _Swap(role=role, candidate=candidate, loss=loss)

        if best is None:
            break

        logger.debug(
            f"Balance: {best.role} {assignments[best.role].model} -> "
            f"{best.candidate.full_id} (loss {best.loss:.3f})"
        )
        assignments[best.role].swap_to(best.candidate.full_id)
        swaps += 1

    return swaps


__all__ = [
    "MAX_SWAP_SCORE_LOSS",
    "WorkingAssignment",
    "count_provider_usage",
    "rebalance_for_subscription_mode",
    "rescue_unused_providers",
]
