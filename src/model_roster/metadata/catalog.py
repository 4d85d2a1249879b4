"""Catalog discovery from the host tool's verbose model listing.

The host tool prints each model as a "provider/id" header line followed by a
JSON block, interleaved with arbitrary log lines. This module parses that
output into ModelRecord instances and runs the listing command.

Malformed blocks are skipped. Process failures are reported through
CatalogDiscoveryResult.error and never raised.
"""

import asyncio
import json
import logging
import math
import re
import shutil
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import DISCOVERY_COMMAND, DISCOVERY_TIMEOUT_SECONDS, get_host_tool_path
from .types import ModelRecord, ModelStatus

logger = logging.getLogger(__name__)

_MODEL_HEADER = re.compile(r"^[a-z0-9-]+/.+$", re.IGNORECASE)
_DAILY_LIMIT_HINT = re.compile(r"\b(300|2000|5000)\b(?:\s*(?:req|requests|rpd|/day))?")


@dataclass
class CatalogDiscoveryResult:
    """Outcome of a catalog discovery run."""

    models: List[ModelRecord] = field(default_factory=list)
    error: Optional[str] = None


def _section(record: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = record.get(key)
    return value if isinstance(value, dict) else {}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def _is_free_record(record: Dict[str, Any]) -> bool:
    cost = _section(record, "cost")
    cache = _section(cost, "cache")
    return (
        (_number(cost.get("input")) or 0) == 0
        and (_number(cost.get("output")) or 0) == 0
        and (_number(cache.get("read")) or 0) == 0
        and (_number(cache.get("write")) or 0) == 0
    )


def _parse_daily_request_limit(record: Dict[str, Any]) -> Optional[int]:
    quota = _section(record, "quota")
    meta = _section(record, "meta")
    for explicit in (quota.get("requestsPerDay"), meta.get("requestsPerDay"), meta.get("dailyLimit")):
        if _number(explicit) is not None:
            return int(explicit)

    source = f"{record.get('id') or ''} {record.get('name') or ''}".lower()
    match = _DAILY_LIMIT_HINT.search(source)
    return int(match.group(1)) if match else None


def _to_model_record(
    record: Dict[str, Any],
    provider_filter: Optional[str] = None,
) -> Optional[ModelRecord]:
    provider_id = record.get("providerID")
    model_id = record.get("id")
    if not isinstance(provider_id, str) or not isinstance(model_id, str):
        return None
    if not provider_id or not model_id:
        return None
    if provider_filter and provider_id != provider_filter:
        return None

    limit = _section(record, "limit")
    capabilities = _section(record, "capabilities")
    cost = _section(record, "cost")
    name = record.get("name")

    try:
        status = ModelStatus(record.get("status") or "active")
    except (TypeError, ValueError):
        return None

    return ModelRecord(
        provider_id=provider_id,
        model_id=model_id,
        name=name if isinstance(name, str) and name else model_id,
        status=status,
        context_limit=int(_number(limit.get("context")) or 0),
        output_limit=int(_number(limit.get("output")) or 0),
        reasoning=capabilities.get("reasoning") is True,
        toolcall=capabilities.get("toolcall") is True,
        attachment=capabilities.get("attachment") is True,
        input_cost=_number(cost.get("input")),
        output_cost=_number(cost.get("output")),
        daily_request_limit=_parse_daily_request_limit(record),
    )


def parse_models_verbose_output(
    output: str,
    provider_filter: Optional[str] = None,
    free_only: bool = True,
) -> List[ModelRecord]:
    """Parse the verbose model listing into catalog records.

    Args:
        output: Raw stdout of the listing command
        provider_filter: Keep only models of this provider
        free_only: Keep only models whose every cost component is zero

    Returns:
        Parsed records in output order
    """
    lines = output.splitlines()
    models: List[ModelRecord] = []
    index = 0

    while index < len(lines):
        line = lines[index].strip()
        if not line or "/" not in line or not _MODEL_HEADER.match(line):
            index += 1
            continue

        json_start = -1
        for search in range(index + 1, len(lines)):
            candidate = lines[search].strip()
            if candidate.startswith("{"):
                json_start = search
                break
            if _MODEL_HEADER.match(candidate):
                break

        if json_start == -1:
            index += 1
            continue

        depth = 0
        json_end = -1
        for cursor in range(json_start, len(lines)):
            depth += lines[cursor].count("{") - lines[cursor].count("}")
            if depth == 0:
                json_end = cursor
                break

        if json_end == -1:
            index += 1
            continue

        block = "\n".join(lines[json_start:json_end + 1])
        try:
            parsed = json.loads(block)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed model block after '{line}'")
            parsed = None

        if isinstance(parsed, dict):
            try:
                record = _to_model_record(parsed, provider_filter)
            except ValueError as e:
                logger.debug(f"Skipping invalid model block after '{line}': {e}")
                record = None
            if record is not None and (not free_only or _is_free_record(parsed)):
                models.append(record)

        index = json_end + 1

    return models


async def discover_model_catalog(
    provider_filter: Optional[str] = None,
    free_only: bool = False,
    timeout: float = DISCOVERY_TIMEOUT_SECONDS,
) -> CatalogDiscoveryResult:
    """Run the host tool's listing command and parse its output.

    Args:
        provider_filter: Keep only models of this provider
        free_only: Keep only zero-cost models
        timeout: Seconds to wait for the command before giving up

    Returns:
        CatalogDiscoveryResult with models, or an empty list and an error
    """
    executable = shutil.which(get_host_tool_path())
    if executable is None:
        logger.warning("Model listing tool not found on PATH")
        return CatalogDiscoveryResult(error=f"Unable to run `{' '.join(DISCOVERY_COMMAND)}`.")

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *DISCOVERY_COMMAND[1:],
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.warning(f"Failed to start model listing: {e}")
        return CatalogDiscoveryResult(error=f"Unable to run `{' '.join(DISCOVERY_COMMAND)}`.")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning(f"Model listing timed out after {timeout}s")
        return CatalogDiscoveryResult(error=f"Model listing timed out after {timeout}s.")

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="ignore").strip()
        logger.warning(f"Model listing exited with code {proc.returncode}")
        return CatalogDiscoveryResult(error=message or "Failed to fetch models.")

    models = parse_models_verbose_output(
        stdout.decode("utf-8", errors="ignore"),
        provider_filter=provider_filter,
        free_only=free_only,
    )
    logger.info(f"Discovered {len(models)} models")
    return CatalogDiscoveryResult(models=models)


__all__ = [
    "CatalogDiscoveryResult",
    "parse_models_verbose_output",
    "discover_model_catalog",
]
