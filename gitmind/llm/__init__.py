"""Generative model adapters."""

from .runner import LLMRunner
from .tasks import AIClient

__all__ = ["AIClient", "LLMRunner"]
