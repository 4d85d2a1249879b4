"""Feature extraction for the feature-vector scorer (engine v2).

Features are normalized to roughly 0..1 (or small integers) so that the
weights in weights.py read as points per unit of feature.
"""

import re
from typing import Dict, Optional

from ..config import AGGREGATOR_PROVIDER
from ..metadata.types import ModelRecord, ModelStatus, SignalMap
from ..roles import DESIGNER, EXPLORER
from .signals import blended_price, find_signal

FeatureVector = Dict[str, float]

# Designer output below this size is penalized instead of scored by magnitude
DESIGNER_OUTPUT_THRESHOLD = 64_000

EXPLORER_LATENCY_MULTIPLIER = 1.4

STATUS_VALUES: Dict[ModelStatus, float] = {
    ModelStatus.ACTIVE: 1,
    ModelStatus.BETA: 0.4,
    ModelStatus.ALPHA: -0.25,
    ModelStatus.DEPRECATED: -1,
}

_QWEN3 = re.compile(r"qwen3")
_KIMI_K25 = re.compile(r"kimi-k2\.5|k2\.5")
_MINIMAX_M21 = re.compile(r"minimax[-_ ]?m2\.1")

# Family priors, smaller than their v1 counterparts
QWEN3_PENALTY: Dict[str, float] = {
    "orchestrator": -6,
    "oracle": -6,
    "designer": -8,
    "explorer": -6,
    "librarian": -12,
    "fixer": -12,
}
KIMI_K25_BONUS: Dict[str, float] = {
    "orchestrator": 1,
    "oracle": 1,
    "designer": 3,
    "explorer": 2,
    "librarian": 2,
    "fixer": 3,
}
MINIMAX_M21_BONUS: Dict[str, float] = {
    "orchestrator": 1,
    "oracle": 1,
    "designer": 2,
    "explorer": 4,
    "librarian": 4,
    "fixer": 4,
}


def family_version_bonus(role: str, model: ModelRecord) -> float:
    """Role-specific family prior; the first matching family wins."""
    text = model.search_text
    on_aggregator = model.provider_id == AGGREGATOR_PROVIDER

    if on_aggregator and _QWEN3.search(text):
        return QWEN3_PENALTY[role]
    if _KIMI_K25.search(text):
        return KIMI_K25_BONUS[role]
    if on_aggregator and _MINIMAX_M21.search(text):
        return MINIMAX_M21_BONUS[role]
    return 0


def extract_feature_vector(
    model: ModelRecord,
    role: str,
    signals: Optional[SignalMap] = None,
) -> FeatureVector:
    """Extract the normalized feature vector of a model for a role.

    Args:
        model: Catalog record
        role: Role name
        signals: Optional external signal map

    Returns:
        Dict keyed by FEATURE_NAMES, in that order
    """
    signal = find_signal(model, signals)
    latency = signal.latency_seconds if signal and signal.latency_seconds is not None else 0
    quality = signal.quality_score if signal and signal.quality_score is not None else 0
    coding = signal.coding_score if signal and signal.coding_score is not None else 0

    if role == DESIGNER:
        output = -1 if model.output_limit < DESIGNER_OUTPUT_THRESHOLD else 0
    else:
        output = min(model.output_limit, 300_000) / 30_000

    latency_multiplier = EXPLORER_LATENCY_MULTIPLIER if role == EXPLORER else 1

    return {
        "status": STATUS_VALUES[model.status],
        "context": min(model.context_limit, 1_000_000) / 100_000,
        "output": output,
        "version_bonus": family_version_bonus(role, model),
        "reasoning": 1 if model.reasoning else 0,
        "toolcall": 1 if model.toolcall else 0,
        "attachment": 1 if model.attachment else 0,
        "quality": quality / 100,
        "coding": coding / 100,
        "latency_penalty": min(latency, 20) * latency_multiplier,
        "price_penalty": min(blended_price(signal), 50) / 10,
    }
