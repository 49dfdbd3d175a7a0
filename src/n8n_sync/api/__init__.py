"""Async client for the n8n public REST API."""

from .client import N8NClient

__all__ = ["N8NClient"]
