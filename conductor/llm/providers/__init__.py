"""Model provider interface."""

from .base import ModelProvider, get_provider, register_provider

__all__ = ["ModelProvider", "get_provider", "register_provider"]
