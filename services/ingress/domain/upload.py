from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ForwardedUpload:
    filename: str
    content_type: str
    content: bytes
    metadata: Mapping[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ForwardResult:
    filename: str
    data: Mapping[str, Any] | None
