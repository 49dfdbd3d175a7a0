"""Workflow model, file codec and local file identity."""

from .models import Tag, Workflow

__all__ = ["Tag", "Workflow"]
