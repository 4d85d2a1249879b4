"""Catalog metadata for model roster planning.

Example usage:
    from model_roster.metadata import (
        ModelRecord,
        build_model_key_aliases,
        get_version_recency_map,
    )

    record = ModelRecord.from_full_id("openai/gpt-5.3-codex", toolcall=True)
    aliases = build_model_key_aliases(record.full_id)
"""

from .aliases import build_model_key_aliases
from .catalog import CatalogDiscoveryResult, discover_model_catalog, parse_models_verbose_output
from .recency import (
    VersionFamilyInfo,
    extract_version_family,
    get_version_recency_map,
    recency_bonus,
)
from .types import (
    ExternalSignal,
    ModelRecord,
    ModelStatus,
    SignalMap,
    SignalSource,
    is_well_formed_model_id,
    provider_of,
)

__all__ = [
    # Types
    "ExternalSignal",
    "ModelRecord",
    "ModelStatus",
    "SignalMap",
    "SignalSource",
    "is_well_formed_model_id",
    "provider_of",
    # Normalization
    "build_model_key_aliases",
    # Recency
    "VersionFamilyInfo",
    "extract_version_family",
    "get_version_recency_map",
    "recency_bonus",
    # Discovery
    "CatalogDiscoveryResult",
    "discover_model_catalog",
    "parse_models_verbose_output",
]
