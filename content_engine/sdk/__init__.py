"""
SDK for the content engine.

Provides the budgeted, rate-limited client for upstream text generation.
"""

from .backends import AnthropicBackend, OpenAIBackend, build_backend
from .client import GenerationClient

__all__ = ["AnthropicBackend", "GenerationClient", "OpenAIBackend", "build_backend"]
