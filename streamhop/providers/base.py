"""
Core types for the streamhop resolution pipeline.

A resolution starts from a ResolutionRequest and ends with an ordered list of
StreamVariant entries read from the HLS master playlist.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# ──────────────────────────────
#  Media kind
# ──────────────────────────────
class MediaKind(str, Enum):
    MOVIE = "movie"
    SERIES = "series"

    @classmethod
    def parse(cls, value: Union["MediaKind", str]) -> "MediaKind":
        """Accept the enum, its value, or the "tv"/"show" aliases."""
        if isinstance(value, cls):
            return value
        lowered = str(value).strip().lower()
        if lowered in ("tv", "show"):
            return cls.SERIES
        return cls(lowered)

# ──────────────────────────────
#  Request (input of a resolution)
# ──────────────────────────────
@dataclass
class ResolutionRequest:
    subject_id: str                   # external id, e.g. "tt0137523"
    kind: Union[MediaKind, str] = MediaKind.MOVIE
    season: Optional[int] = None      # series only
    episode: Optional[int] = None     # series only

    @classmethod
    def movie(cls, subject_id: str) -> "ResolutionRequest":
        return cls(subject_id=subject_id, kind=MediaKind.MOVIE)

    @classmethod
    def series(cls, subject_id: str, season: int, episode: int) -> "ResolutionRequest":
        return cls(subject_id=subject_id, kind=MediaKind.SERIES,
                   season=season, episode=episode)

# ──────────────────────────────
#  Variant (output of a resolution)
# ──────────────────────────────
@dataclass
class StreamVariant:
    url: str                          # absolute
    resolution: str = ""              # e.g. "1920x800", may be empty
    bandwidth: str = ""               # bits/s as written in the playlist

    def to_dict(self):
        return {"resolution": self.resolution, "bandwidth": self.bandwidth, "url": self.url}

# ──────────────────────────────
#  Token decoding variants
# ──────────────────────────────
class DecodeRule(str, Enum):
    REVERSE_STRIDE_BASE64 = "A"       # reverse → even positions → base64
    REVERSE_HEX_XOR = "B"             # reverse → hex pairs → repeating-key XOR

    @property
    def variant(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union["DecodeRule", str]) -> "DecodeRule":
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text.upper())
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"unknown decode rule {value!r}") from None

    def other(self) -> "DecodeRule":
        if self is DecodeRule.REVERSE_STRIDE_BASE64:
            return DecodeRule.REVERSE_HEX_XOR
        return DecodeRule.REVERSE_STRIDE_BASE64

# ──────────────────────────────
#  Per-call pipeline state
# ──────────────────────────────
@dataclass
class PipelineState:
    request: ResolutionRequest
    entry_url: str = ""
    entry_html: str = ""
    rcp_url: str = ""                 # stage-1
    rcp_html: str = ""
    prorcp_url: str = ""              # stage-2
    prorcp_html: str = ""
    token: str = ""
    token_key: Optional[str] = None   # page-supplied XOR key, if any
    decode_rule: Optional[DecodeRule] = None
    manifest_url: str = ""
    manifest_text: str = ""
    variants: list[StreamVariant] = field(default_factory=list)
