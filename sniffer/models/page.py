from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SourceElement:
    src: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceElement":
        return cls(src=data.get("src") or "", attrs=_str_attrs(data.get("attrs")))


@dataclass
class MediaElement:
    """One <img>, <video> or <audio> element as the page exposes it.

    ``src``, ``current_src`` and ``poster`` hold resolved property values
    (what ``element.src`` returns in a browser); ``attrs`` holds the raw
    attribute strings, so lazy-load attributes may still be relative.
    """

    tag: str
    src: str = ""
    current_src: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)
    natural_width: int = 0
    natural_height: int = 0
    width: int = 0
    height: int = 0
    title: str = ""
    alt: str = ""
    poster: str = ""
    sources: List[SourceElement] = field(default_factory=list)

    def attr(self, name: str) -> str:
        return self.attrs.get(name) or ""

    @property
    def intrinsic_or_rendered(self) -> Dict[str, int]:
        return {
            "width": self.natural_width or self.width or 0,
            "height": self.natural_height or self.height or 0,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaElement":
        return cls(
            tag=str(data.get("tag") or "").lower(),
            src=data.get("src") or "",
            current_src=data.get("current_src") or data.get("currentSrc") or "",
            attrs=_str_attrs(data.get("attrs")),
            natural_width=_int(data.get("natural_width", data.get("naturalWidth"))),
            natural_height=_int(data.get("natural_height", data.get("naturalHeight"))),
            width=_int(data.get("width")),
            height=_int(data.get("height")),
            title=data.get("title") or "",
            alt=data.get("alt") or "",
            poster=data.get("poster") or "",
            sources=[SourceElement.from_dict(s) for s in data.get("sources") or [] if isinstance(s, dict)],
        )


@dataclass
class ResourceEntry:
    name: str
    transfer_size: int = 0
    encoded_body_size: int = 0
    initiator_type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceEntry":
        return cls(
            name=data.get("name") or "",
            transfer_size=_int(data.get("transfer_size", data.get("transferSize"))),
            encoded_body_size=_int(data.get("encoded_body_size", data.get("encodedBodySize"))),
            initiator_type=data.get("initiator_type") or data.get("initiatorType") or "",
        )


@dataclass
class PageSnapshot:
    url: str
    images: List[MediaElement] = field(default_factory=list)
    videos: List[MediaElement] = field(default_factory=list)
    audios: List[MediaElement] = field(default_factory=list)
    backgrounds: List[str] = field(default_factory=list)
    attributed: List[Dict[str, str]] = field(default_factory=list)
    scripts: List[str] = field(default_factory=list)
    resource_entries: List[ResourceEntry] = field(default_factory=list)
    title: str = ""

    def find_resource_entry(self, url: str) -> Optional[ResourceEntry]:
        for entry in self.resource_entries:
            if entry.name == url:
                return entry
        return None

    def to_summary(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "images": len(self.images),
            "videos": len(self.videos),
            "audios": len(self.audios),
            "backgrounds": len(self.backgrounds),
            "attributed": len(self.attributed),
            "scripts": len(self.scripts),
            "resource_entries": len(self.resource_entries),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageSnapshot":
        def elements(key: str) -> List[MediaElement]:
            return [MediaElement.from_dict(e) for e in data.get(key) or [] if isinstance(e, dict)]

        return cls(
            url=data.get("url") or "",
            title=data.get("title") or "",
            images=elements("images"),
            videos=elements("videos"),
            audios=elements("audios"),
            backgrounds=[str(b) for b in data.get("backgrounds") or [] if b],
            attributed=[_str_attrs(a) for a in data.get("attributed") or [] if isinstance(a, dict)],
            scripts=[str(s) for s in data.get("scripts") or [] if s],
            resource_entries=[
                ResourceEntry.from_dict(r) for r in data.get("resource_entries") or [] if isinstance(r, dict)
            ],
        )


def _int(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def _str_attrs(attrs: Any) -> Dict[str, str]:
    if not isinstance(attrs, dict):
        return {}
    out: Dict[str, str] = {}
    for k, v in attrs.items():
        if v is None:
            continue
        if isinstance(v, (list, tuple)):
            v = " ".join(str(x) for x in v)
        out[str(k).lower()] = str(v)
    return out
