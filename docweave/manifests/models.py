"""Pydantic models describing manifest structures."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCALAR_FIELDS: tuple[str, ...] = ("id", "path", "name", "has_content")


class ManifestNode(BaseModel):
    """Navigation node exchanged between independently built modules.

    Every scalar is optional: ``None`` means the value has not been populated
    yet, which is different from a legitimately empty string such as the id
    of the synthetic root.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(default=None)
    path: Optional[str] = Field(default=None, description="Local URL of the rendered page.")
    name: Optional[str] = Field(default=None)
    has_content: Optional[bool] = Field(default=None, alias="hasContent")
    children: list[ManifestNode] = Field(default_factory=list)

    @field_validator("children", mode="before")
    def _default_children(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    def scalar_items(self) -> list[tuple[str, Any]]:
        """Return declared and extra scalar fields as ``(name, value)`` pairs."""
        items = [(name, getattr(self, name)) for name in SCALAR_FIELDS]
        items.extend((self.model_extra or {}).items())
        return items

    def iter_nodes(self) -> list[ManifestNode]:
        """Flatten the subtree depth-first, starting with this node."""
        nodes: list[ManifestNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes

    def find(self, node_id: str) -> ManifestNode | None:
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None
