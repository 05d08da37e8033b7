"""Model alias table — short names to concrete Claude model identifiers."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ModelAlias(str, Enum):
    """Concrete model identifiers, keyed by short alias."""

    HAIKU = "claude-haiku-4-5-20251001"
    SONNET = "claude-sonnet-4-5-20250929"
    OPUS = "claude-opus-4-5-20251101"


DEFAULT_MODEL = ModelAlias.HAIKU

# Lower-cased synonyms accepted in ``arguments.model``.
_SYNONYMS: dict[str, ModelAlias] = {
    "haiku": ModelAlias.HAIKU,
    "sonnet": ModelAlias.SONNET,
    "opus": ModelAlias.OPUS,
    "opus 4.5": ModelAlias.OPUS,
}


def resolve_model(name: str | None) -> str:
    """Map a case-insensitive alias to a model identifier.

    Unknown names resolve to :data:`DEFAULT_MODEL` and log a warning.
    """
    key = (name or "").strip().lower()
    alias = _SYNONYMS.get(key)
    if alias is None:
        logger.warning("Unknown model '%s', using %s as default", name, DEFAULT_MODEL.name.lower())
        return DEFAULT_MODEL.value
    return alias.value


def alias_table() -> dict[str, str]:
    """Return every accepted alias with the identifier it resolves to."""
    return {name: alias.value for name, alias in _SYNONYMS.items()}
