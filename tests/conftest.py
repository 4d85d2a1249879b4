"""Shared test configuration and fixtures."""

import pytest

from model_roster.metadata.types import ModelRecord

# =============================================================================
# Environment Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    """Clear environment variables before each test."""
    for name in (
        "MODEL_ROSTER_CONFIG",
        "MODEL_ROSTER_SCORING_ENGINE",
        "MODEL_ROSTER_BALANCE_PROVIDERS",
        "MODEL_ROSTER_FREE_MODELS",
        "MODEL_ROSTER_OPENCODE_PATH",
        "ARTIFICIAL_ANALYSIS_API_KEY",
        "OPENROUTER_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Catalog Fixtures
# =============================================================================


def build_model(full_id: str, **overrides) -> ModelRecord:
    """Catalog record with capable defaults; display name mirrors the id."""
    fields = {
        "name": full_id,
        "context_limit": 200000,
        "output_limit": 32000,
        "reasoning": True,
        "toolcall": True,
        "attachment": False,
    }
    fields.update(overrides)
    return ModelRecord.from_full_id(full_id, **fields)


@pytest.fixture
def make_model():
    """Factory for catalog records (see build_model)."""
    return build_model
