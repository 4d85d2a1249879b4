"""Version recency analysis.

Infers a (family, version) pair from a model's id and display name and turns
the model's position among its family siblings into a bonus in [-3, 12].
Newer siblings get larger bonuses; pre-release builds are docked 2 points.

The generic word-number fallback can group unrelated models that share a
naming pattern. Its matches carry reduced confidence (0.7) and are otherwise
accepted as is.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .types import ModelRecord

VersionTuple = Tuple[int, int, int]

MIN_RECENCY_BONUS = -3.0
MAX_RECENCY_BONUS = 12.0
PRERELEASE_PENALTY = -2.0
GENERIC_CONFIDENCE = 0.7

_PRERELEASE_MARKER = re.compile(r"preview|experimental|exp|\brc\b")

# Known families, most specific first
_FAMILY_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("gpt", re.compile(r"\bgpt[-_ ]?(\d+)(?:[.-](\d+))?(?:[.-](\d+))?\b")),
    ("gemini", re.compile(r"\bgemini[-_ ]?(\d+)(?:[.-](\d+))?(?:[.-](\d+))?\b")),
    ("kimi-k", re.compile(r"\bkimi[-_ ]?k(\d+)(?:[.-]?(\d+))?(?:[.-](\d+))?\b")),
)

_GENERIC_PATTERN = re.compile(
    r"\b([a-z][a-z0-9-]{1,20})[-_ ](\d+)(?:[.-](\d+))?(?:[.-](\d+))?\b"
)


@dataclass(frozen=True)
class VersionFamilyInfo:
    """Family and version inferred from a model's text."""

    family: str
    version: VersionTuple
    confidence: float
    prerelease_penalty: float


def _to_version_tuple(
    major: Optional[str],
    minor: Optional[str] = None,
    patch: Optional[str] = None,
) -> VersionTuple:
    return (int(major or 0), int(minor or 0), int(patch or 0))


def extract_version_family(model: ModelRecord) -> Optional[VersionFamilyInfo]:
    """Infer the version family of a model.

    Args:
        model: Catalog record

    Returns:
        VersionFamilyInfo, or None when no pattern matches
    """
    text = model.search_text
    penalty = PRERELEASE_PENALTY if _PRERELEASE_MARKER.search(text) else 0.0

    for family, pattern in _FAMILY_PATTERNS:
        match = pattern.search(text)
        if match:
            return VersionFamilyInfo(
                family=family,
                version=_to_version_tuple(*match.groups()),
                confidence=1.0,
                prerelease_penalty=penalty,
            )

    generic = _GENERIC_PATTERN.search(text)
    if generic:
        return VersionFamilyInfo(
            family=generic.group(1),
            version=_to_version_tuple(generic.group(2), generic.group(3), generic.group(4)),
            confidence=GENERIC_CONFIDENCE,
            prerelease_penalty=penalty,
        )

    return None


def get_version_recency_map(models: Iterable[ModelRecord]) -> Dict[str, float]:
    """Compute the recency bonus of every model against its siblings.

    Versions are ranked among the distinct version tuples of a family; models
    sharing a tuple share a rank and a family with one distinct version sits
    at the 0.5 percentile. The percentile maps linearly onto [-3, 12], is
    scaled by confidence, shifted by the pre-release penalty and clamped.

    Args:
        models: Catalog records to compare

    Returns:
        Dict of composite id -> bonus (0.0 for models without a family)
    """
    models = list(models)
    family_versions: Dict[str, List[VersionTuple]] = {}
    infos: Dict[str, VersionFamilyInfo] = {}

    for model in models:
        info = extract_version_family(model)
        if info is None:
            continue
        infos[model.full_id] = info
        family_versions.setdefault(info.family, []).append(info.version)

    recency: Dict[str, float] = {}
    for model in models:
        info = infos.get(model.full_id)
        if info is None:
            recency[model.full_id] = 0.0
            continue

        unique = sorted(set(family_versions.get(info.family, [])))
        if not unique:
            recency[model.full_id] = 0.0
            continue

        if len(unique) == 1:
            percentile = 0.5
        else:
            percentile = unique.index(info.version) / (len(unique) - 1)

        raw = MIN_RECENCY_BONUS + percentile * (MAX_RECENCY_BONUS - MIN_RECENCY_BONUS)
        adjusted = raw * info.confidence + info.prerelease_penalty
        recency[model.full_id] = max(MIN_RECENCY_BONUS, min(MAX_RECENCY_BONUS, adjusted))

    return recency


def recency_bonus(model: ModelRecord, models: Iterable[ModelRecord]) -> float:
    """Recency bonus of one model relative to a catalog."""
    return get_version_recency_map(models).get(model.full_id, 0.0)


__all__ = [
    "VersionFamilyInfo",
    "VersionTuple",
    "extract_version_family",
    "get_version_recency_map",
    "recency_bonus",
]
