from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import json


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


_IMMUTABLE_FIELDS = ("url", "type")


@dataclass
class MediaResource:
    url: str
    type: MediaType
    size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    alt: str = ""
    thumbnail: Optional[str] = None
    discovered_by: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.type, MediaType):
            object.__setattr__(self, "type", MediaType(self.type))

    def __setattr__(self, name: str, value: Any) -> None:
        # url and type are fixed by the strategy that found the resource
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"MediaResource.{name} cannot be reassigned")
        object.__setattr__(self, name, value)

    @property
    def size_or_zero(self) -> int:
        return self.size if self.size and self.size > 0 else 0

    @property
    def has_thumbnail(self) -> bool:
        return bool(self.thumbnail)

    @property
    def is_video(self) -> bool:
        return self.type is MediaType.VIDEO

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "url": self.url,
            "type": self.type.value,
            "size": self.size,
            "width": self.width,
            "height": self.height,
            "alt": self.alt,
            "thumbnail": self.thumbnail,
            "discovered_by": self.discovered_by,
        }
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_tsv(self) -> str:
        fields = [
            self.type.value,
            str(self.size_or_zero),
            f"{self.width or 0}x{self.height or 0}",
            self.url,
            self.alt or "-",
            self.discovered_by or "-",
        ]
        safe = []
        for f in fields:
            s = str(f)
            s = s.replace("\t", "\\t").replace("\n", "\\n").replace("\r", "\\r")
            safe.append(s)
        return "\t".join(safe)

    @classmethod
    def get_tsv_header(cls) -> str:
        return "\t".join(["type", "size", "dimensions", "url", "alt", "strategy"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaResource":
        return cls(
            url=data["url"],
            type=MediaType(data["type"]),
            size=data.get("size"),
            width=data.get("width"),
            height=data.get("height"),
            alt=data.get("alt") or "",
            thumbnail=data.get("thumbnail"),
            discovered_by=data.get("discovered_by"),
        )


def sort_by_size(resources: List[MediaResource]) -> List[MediaResource]:
    """Largest first; unknown sizes last, ties keep discovery order."""
    return sorted(resources, key=lambda r: r.size_or_zero, reverse=True)


def count_by_type(resources: List[MediaResource]) -> Dict[str, int]:
    counts = {t.value: 0 for t in MediaType}
    for r in resources:
        counts[r.type.value] += 1
    return counts
