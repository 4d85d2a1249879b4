"""Scoring engines for model roster planning.

Two interchangeable engines score a catalog model for a role:
- v1 (heuristic): hand-tuned additive score plus bounded external boost
- v2 (feature vector): weighted linear sum with an explainable breakdown

Example usage:
    from model_roster.scoring import rank_models_v1, rank_models_v2

    best_v1 = rank_models_v1(catalog, "oracle", signals)[0]
    best_v2 = rank_models_v2(catalog, "oracle", signals)[0].model
"""

from .common import Ineligibility, role_eligibility, round_score
from .engine import ScoreBreakdown, ScoredCandidate, rank_models_v2, score_candidate_v2
from .features import extract_feature_vector
from .heuristic import (
    V1RankedScore,
    combined_score,
    external_signal_boost,
    rank_models_v1,
    rank_models_v1_with_breakdown,
    role_score,
)
from .signals import blended_price, find_signal
from .weights import FEATURE_NAMES, get_feature_weights

__all__ = [
    # Eligibility
    "Ineligibility",
    "role_eligibility",
    "round_score",
    # Engine v1
    "V1RankedScore",
    "combined_score",
    "external_signal_boost",
    "rank_models_v1",
    "rank_models_v1_with_breakdown",
    "role_score",
    # Engine v2
    "FEATURE_NAMES",
    "ScoreBreakdown",
    "ScoredCandidate",
    "extract_feature_vector",
    "get_feature_weights",
    "rank_models_v2",
    "score_candidate_v2",
    # Signals
    "blended_price",
    "find_signal",
]
