"""Workflow and tag models.

Field names on the wire and in files are camelCase; the dataclasses use
snake_case. ``active`` and ``tags`` are tri-state: ``None`` means the field was
absent, which is not the same as ``False`` / ``[]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def coerce_id(value: Any) -> str | None:
    """Normalize an identifier that may arrive as a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class Tag:
    """Workflow tag. ``name`` is the portable key, ``id`` is instance-specific."""

    name: str = ""
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.id is not None:
            data["id"] = self.id
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "Tag":
        # Hand-written files may list tags by name only.
        if isinstance(data, str):
            return cls(name=data)
        return cls(
            name=str(data.get("name") or ""),
            id=coerce_id(data.get("id")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class Workflow:
    """An n8n workflow definition.

    ``nodes``, ``connections``, ``settings``, ``static_data`` and ``shared`` are
    opaque payloads and are never interpreted.
    """

    name: str = ""
    id: str | None = None
    active: bool | None = None
    nodes: list[Any] | None = None
    connections: dict[str, Any] | None = None
    settings: dict[str, Any] | None = None
    static_data: Any = None
    tags: list[Tag] | None = None
    shared: Any = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def label(self) -> str:
        return f"'{self.name}' (ID: {self.id})"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "nodes": self.nodes,
            "connections": self.connections,
            "settings": self.settings,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.active is not None:
            data["active"] = self.active
        if self.static_data is not None:
            data["staticData"] = self.static_data
        if self.tags is not None:
            data["tags"] = [t.to_dict() for t in self.tags]
        if self.shared is not None:
            data["shared"] = self.shared
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workflow":
        active = data.get("active")
        tags = data.get("tags")
        return cls(
            name=str(data.get("name") or ""),
            id=coerce_id(data.get("id")),
            active=active if isinstance(active, bool) else None,
            nodes=data.get("nodes"),
            connections=data.get("connections"),
            settings=data.get("settings"),
            static_data=data.get("staticData"),
            tags=[Tag.from_dict(t) for t in tags if isinstance(t, (dict, str))]
            if isinstance(tags, list)
            else None,
            shared=data.get("shared"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )
