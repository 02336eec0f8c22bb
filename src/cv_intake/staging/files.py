from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FilePayload:
    """An in-memory file as handed over by a picker, the camera or the compositor."""

    name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix

    @classmethod
    def from_path(cls, path: str | Path, content_type: str) -> "FilePayload":
        source = Path(path)
        return cls(name=source.name, content_type=content_type, content=source.read_bytes())
