"""Feature-vector scoring engine (engine v2).

Scores are a weighted linear sum over an explicit feature vector. Every
score carries its raw and weighted features so it can be audited.

Usage:
    >>> from model_roster.scoring.engine import score_candidate_v2
    >>> scored = score_candidate_v2(model, "designer", signals)
    >>> scored.breakdown.weighted["output"]
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..metadata.types import ModelRecord, SignalMap
from .common import Ineligibility, ranking_key, role_eligibility, round_score
from .features import FeatureVector, extract_feature_vector
from .weights import FEATURE_NAMES, get_feature_weights


@dataclass(frozen=True)
class ScoreBreakdown:
    """Raw and weighted features behind a v2 score."""

    features: FeatureVector
    weighted: FeatureVector


@dataclass(frozen=True)
class ScoredCandidate:
    """A model scored for one role by engine v2."""

    model: ModelRecord
    total_score: float
    breakdown: ScoreBreakdown
    ineligible: Optional[Ineligibility] = None

    def to_dict(self) -> Dict[str, object]:
        """Serialize for logging or offline comparison."""
        return {
            "model": self.model.full_id,
            "total_score": self.total_score,
            "features": dict(self.breakdown.features),
            "weighted": dict(self.breakdown.weighted),
            "ineligible": self.ineligible.value if self.ineligible else None,
        }


def weighted_features(features: FeatureVector, weights: Dict[str, float]) -> FeatureVector:
    """Multiply each feature by its weight."""
    return {name: features[name] * weights[name] for name in FEATURE_NAMES}


def score_candidate_v2(
    model: ModelRecord,
    role: str,
    signals: Optional[SignalMap] = None,
) -> ScoredCandidate:
    """Score one model for a role.

    The total is rounded to 3 decimals so repeated runs compare equal.
    """
    features = extract_feature_vector(model, role, signals)
    weighted = weighted_features(features, get_feature_weights(role))
    total = 0.0
    for name in FEATURE_NAMES:
        total += weighted[name]

    return ScoredCandidate(
        model=model,
        total_score=round_score(total),
        breakdown=ScoreBreakdown(features=features, weighted=weighted),
        ineligible=role_eligibility(role, model),
    )


def rank_models_v2(
    models: Iterable[ModelRecord],
    role: str,
    signals: Optional[SignalMap] = None,
) -> List[ScoredCandidate]:
    """Rank models for a role, best first.

    Ties break by provider id, then composite id; ineligible models go last.
    """
    scored = [score_candidate_v2(model, role, signals) for model in models]
    return sorted(
        scored,
        key=lambda c: ranking_key(c.model, c.total_score, c.ineligible),
    )


__all__ = [
    "ScoreBreakdown",
    "ScoredCandidate",
    "rank_models_v2",
    "score_candidate_v2",
    "weighted_features",
]
