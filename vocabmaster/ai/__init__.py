"""AI providers and the translation oracle built on them."""
from .base import AIProvider
from .oracle import TranslationOracle

__all__ = ["AIProvider", "TranslationOracle"]
