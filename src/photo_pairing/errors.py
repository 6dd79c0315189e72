from __future__ import annotations


class PairingError(Exception):
    """Base class for errors raised at the edges of the pairing engine."""


class FeatureRowError(PairingError, ValueError):
    """An upstream feature record failed boundary validation."""


class ConfigError(PairingError, ValueError):
    """A threshold or boost could not be parsed."""


class EmbeddingError(PairingError):
    """Embedding vectors are unusable (ragged or non-finite)."""
