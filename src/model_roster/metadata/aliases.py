"""Model key normalization.

Builds the ordered list of lookup aliases for a model identifier so that
third-party signals keyed on loose names ("Qwen3 Coder 480B", "qwen/qwen3-coder")
match catalog ids ("chutes/Qwen/Qwen3-Coder-480B-A35B-Instruct-FP8-TEE").

Alias order matters: signal lookup takes the first alias with an entry.
"""

import re
from typing import List

_QUANTIZATION_TOKEN = re.compile(r"\bfp[a-z0-9.-]*\b")
_DEPLOYMENT_TOKEN = re.compile(r"\btee\b")
_VARIANT_SUFFIX = re.compile(r"-(free|flash)$", re.IGNORECASE)


def _cleanup_alias(value: str, preserve_slash: bool) -> str:
    value = value.lower().strip()
    value = _QUANTIZATION_TOKEN.sub(" ", value)
    value = _DEPLOYMENT_TOKEN.sub(" ", value)

    if preserve_slash:
        value = re.sub(r"[_\s]+", "-", value)
        value = re.sub(r"-+", "-", value)
        value = re.sub(r"/+", "/", value)
        value = re.sub(r"/-+", "/", value)
        value = re.sub(r"-+/", "/", value)
        return value.strip("/").strip("-")

    value = re.sub(r"[/_\s]+", "-", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def _add(aliases: List[str], alias: str) -> None:
    if alias and alias not in aliases:
        aliases.append(alias)


def _add_derived_aliases(seed: str, aliases: List[str]) -> None:
    slash_alias = _cleanup_alias(seed, preserve_slash=True)
    flat_alias = _cleanup_alias(seed, preserve_slash=False)

    _add(aliases, slash_alias)
    _add(aliases, flat_alias)
    _add(aliases, _VARIANT_SUFFIX.sub("", slash_alias))
    _add(aliases, _VARIANT_SUFFIX.sub("", flat_alias))

    if "/" in slash_alias:
        _add(aliases, _cleanup_alias(slash_alias.replace("/", " "), preserve_slash=False))
        _add(aliases, _cleanup_alias(slash_alias.replace("/", "-"), preserve_slash=False))
        last_part = slash_alias.split("/")[-1]
        if last_part:
            _add_derived_aliases(last_part, aliases)


def build_model_key_aliases(model_key: str) -> List[str]:
    """Build lookup aliases for a model identifier.

    Both the full key and the part after the provider prefix are expanded
    into a slash-preserving alias, a flattened alias, the same two with a
    trailing "-free"/"-flash" removed, and (for multi-segment ids) the
    flattened variants plus the aliases of the last path segment.

    Args:
        model_key: Model identifier, usually a composite "provider/id"

    Returns:
        Ordered, de-duplicated list of non-empty aliases; empty for blank input

    Example:
        >>> aliases = build_model_key_aliases("chutes/Qwen/Qwen3-Coder-FP8-TEE")
        >>> "qwen/qwen3-coder" in aliases and "qwen3-coder" in aliases
        True
    """
    normalized = model_key.strip().lower()
    if not normalized:
        return []

    aliases: List[str] = []
    after_provider = normalized.split("/", 1)[1] if "/" in normalized else normalized

    _add_derived_aliases(normalized, aliases)
    _add_derived_aliases(after_provider, aliases)

    return aliases


__all__ = ["build_model_key_aliases"]
