"""Configuration constants for model roster planning."""

import os
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


# =============================================================================
# Providers
# =============================================================================

# Free-tier provider; its models are only primaries when nothing paid is enabled
FREE_PROVIDER = "opencode"

# Multi-tenant aggregator hosting structurally distinct model families
AGGREGATOR_PROVIDER = "chutes"

# Subscription provider of the glm-4.7 family
ZAI_PROVIDER = "zai-coding-plan"

# Universal last-resort model appended to every chain
DEFAULT_FREE_MODEL = "opencode/big-pickle"

# Maximum length of a role's fallback chain
MAX_CHAIN_LENGTH = 10


# =============================================================================
# Collaborators
# =============================================================================

# Host tool command that prints the verbose model catalog
DISCOVERY_COMMAND: Tuple[str, ...] = ("opencode", "models", "--refresh", "--verbose")
DISCOVERY_TIMEOUT_SECONDS = 60.0

ARTIFICIAL_ANALYSIS_MODELS_URL = "https://artificialanalysis.ai/api/v2/data/llms/models"
OPENROUTER_MODELS_URL = "https://openrouter.ai/api/v1/models"

# Per-source timeout for external signal fetches
SIGNAL_FETCH_TIMEOUT_SECONDS = 8.0


def get_host_tool_path() -> str:
    """Path or name of the host tool binary (MODEL_ROSTER_OPENCODE_PATH)."""
    return os.getenv("MODEL_ROSTER_OPENCODE_PATH") or DISCOVERY_COMMAND[0]


def get_api_key(name: str) -> Optional[str]:
    """Resolve an API key from the environment (after .env loading).

    Args:
        name: "artificial_analysis" or "openrouter"

    Returns:
        Key string, or None if unset or blank
    """
    env_var = f"{name.upper()}_API_KEY"
    value = os.getenv(env_var, "").strip()
    return value or None
