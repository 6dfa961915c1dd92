"""Prompt and constraint normalisation used to derive cache keys."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Optional

from solplan.plan_types import Constraints, Mode

CACHE_KEY_PREFIX = "nlplan:"

_WHITESPACE_RUN = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")


def normalize_prompt(prompt: str) -> str:
    """Lower-case, collapse whitespace, trim and drop trailing ``.!?``."""
    collapsed = _WHITESPACE_RUN.sub(" ", prompt.lower()).strip()
    return _TRAILING_PUNCTUATION.sub("", collapsed)


def normalize_constraints(constraints: Optional[Constraints]) -> str:
    """Serialise the caller-supplied constraint fields with sorted keys."""
    if constraints is None:
        return "{}"
    return json.dumps(
        constraints.model_dump(exclude_unset=True),
        sort_keys=True,
        separators=(",", ":"),
    )


def cache_key(prompt: str, mode: Mode, constraints: Optional[Constraints]) -> str:
    material = "|".join(
        (normalize_prompt(prompt), mode.value, normalize_constraints(constraints))
    )
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


__all__ = ["CACHE_KEY_PREFIX", "cache_key", "normalize_constraints", "normalize_prompt"]
