"""Access to the worker sources bundled with the package."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

HTTP_ENTRYPOINT = "entrypoint-http.js"


@runtime_checkable
class ResourceProvider(Protocol):
    def read(self, logical_path: str) -> str: ...


class EmbeddedResourceProvider:
    """Reads text resources from the package's content/ directory."""

    def __init__(self, root: Path | None = None):
        self.root = root or Path(__file__).resolve().parents[1] / "content"

    def path_for(self, logical_path: str) -> Path:
        resolved = (self.root / logical_path.lstrip("/")).resolve()
        if self.root.resolve() not in resolved.parents:
            raise FileNotFoundError(f"resource outside content root: {logical_path}")
        return resolved

    def read(self, logical_path: str) -> str:
        return self.path_for(logical_path).read_text(encoding="utf-8")
