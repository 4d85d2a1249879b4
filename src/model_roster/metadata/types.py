"""Model Metadata Types for model roster planning.

This module defines the core data structures for catalog metadata:
- ModelRecord: Frozen dataclass describing one assignable model
- ModelStatus: Lifecycle status reported by the catalog
- ExternalSignal: Third-party quality/latency/price signal for a model

Records are immutable once discovered. A record's identity is the
(provider_id, model_id) pair, surfaced as the composite "provider/id".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class ModelStatus(str, Enum):
    """Lifecycle status of a catalog model."""

    ACTIVE = "active"
    BETA = "beta"
    ALPHA = "alpha"
    DEPRECATED = "deprecated"


class SignalSource(str, Enum):
    """Origin of an external signal."""

    ARTIFICIAL_ANALYSIS = "artificial-analysis"
    OPENROUTER = "openrouter"
    MERGED = "merged"


@dataclass(frozen=True)
class ModelRecord:
    """Immutable catalog entry for one model.

    Attributes:
        provider_id: Upstream provider (e.g., "openai")
        model_id: Model id within the provider; may itself contain slashes
            (e.g., "Qwen/Qwen3-Coder-480B-A35B-Instruct-FP8-TEE")
        name: Human-readable display name
        status: Lifecycle status
        context_limit: Maximum context length in tokens
        output_limit: Maximum output length in tokens
        reasoning: Whether the model supports extended reasoning
        toolcall: Whether the model supports tool invocation
        attachment: Whether the model accepts attachments
        input_cost: Optional input price reported by the catalog
        output_cost: Optional output price reported by the catalog
        daily_request_limit: Optional free-tier request quota

    Example:
        >>> record = ModelRecord(
        ...     provider_id="openai",
        ...     model_id="gpt-5.3-codex",
        ...     name="GPT-5.3 Codex",
        ...     context_limit=400000,
        ...     output_limit=128000,
        ...     reasoning=True,
        ...     toolcall=True,
        ... )
        >>> record.full_id
        'openai/gpt-5.3-codex'
    """

    provider_id: str
    model_id: str
    name: str = ""
    status: ModelStatus = ModelStatus.ACTIVE
    context_limit: int = 0
    output_limit: int = 0
    reasoning: bool = False
    toolcall: bool = False
    attachment: bool = False
    input_cost: Optional[float] = None
    output_cost: Optional[float] = None
    daily_request_limit: Optional[int] = None

    def __post_init__(self):
        """Validate identity fields."""
        if not self.provider_id:
            raise ValueError("ModelRecord.provider_id cannot be empty")
        if not self.model_id:
            raise ValueError("ModelRecord.model_id cannot be empty")
        if not isinstance(self.status, ModelStatus):
            object.__setattr__(self, "status", ModelStatus(self.status))
        if not self.name:
            object.__setattr__(self, "name", self.model_id)

    @property
    def full_id(self) -> str:
        """Composite identifier "provider/id"."""
        return f"{self.provider_id}/{self.model_id}"

    @property
    def search_text(self) -> str:
        """Lower-cased id and display name used by token heuristics."""
        return f"{self.full_id} {self.name}".lower()

    @classmethod
    def from_full_id(cls, full_id: str, **kwargs) -> "ModelRecord":
        """Build a record from a composite "provider/id" string."""
        provider_id, _, model_id = full_id.partition("/")
        return cls(provider_id=provider_id, model_id=model_id, **kwargs)


@dataclass(frozen=True)
class ExternalSignal:
    """Third-party signal attached to a model.

    Every field is optional; a missing field contributes nothing to scores.
    Scores are on a 0-100 scale, prices are per one million tokens.
    """

    quality_score: Optional[float] = None
    coding_score: Optional[float] = None
    latency_seconds: Optional[float] = None
    input_price_per_1m: Optional[float] = None
    output_price_per_1m: Optional[float] = None
    source: SignalSource = SignalSource.MERGED


# Signals keyed by normalized alias (many aliases may share one signal)
SignalMap = Dict[str, ExternalSignal]


def is_well_formed_model_id(value: str) -> bool:
    """Check that a composite id has a non-empty provider and model part."""
    provider_id, sep, model_id = value.partition("/")
    return bool(provider_id and sep and model_id)


def provider_of(full_id: str) -> str:
    """Return the provider part of a composite id."""
    return full_id.split("/", 1)[0]
