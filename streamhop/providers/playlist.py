"""
HLS master playlist parsing: #EXT-X-STREAM-INF entries → StreamVariant list.
"""
from __future__ import annotations
import logging
import re
from urllib.parse import urljoin

from .base import StreamVariant
from .errors import NoVariantsFound

log = logging.getLogger("streamhop.providers.playlist")

STREAM_INF = "#EXT-X-STREAM-INF"

# KEY=VALUE where VALUE is either "quoted, may contain commas" or bare
_ATTR_RE = re.compile(r'([A-Za-z0-9_-]+)=("[^"]*"|[^,]*)')


def parse_attributes(line: str) -> dict[str, str]:
    """Attribute list of a tag line, quotes stripped from quoted values."""
    _, sep, attr_list = line.partition(":")
    if not sep:
        return {}
    attrs = {}
    for key, value in _ATTR_RE.findall(attr_list):
        attrs[key.upper()] = value.strip().strip('"')
    return attrs


def parse(playlist_text: str, base_url: str) -> list[StreamVariant]:
    """Variants in order of appearance, URLs made absolute against `base_url`."""
    lines = [line.strip() for line in playlist_text.lstrip("\ufeff").splitlines()]
    variants: list[StreamVariant] = []

    for i, line in enumerate(lines):
        if not line.startswith(STREAM_INF):
            continue
        ref = _next_uri(lines, i + 1)
        if ref is None:
            # truncated playlist or tag without a URI
            continue
        try:
            url = urljoin(base_url, ref)
        except ValueError:
            log.warning("[playlist] skipping malformed variant URI %r", ref)
            continue
        attrs = parse_attributes(line)
        variants.append(StreamVariant(
            url=url,
            resolution=attrs.get("RESOLUTION", ""),
            bandwidth=attrs.get("BANDWIDTH", ""),
        ))

    if not variants:
        raise NoVariantsFound(base_url)
    return variants


def _next_uri(lines: list[str], start: int):
    for line in lines[start:]:
        if not line:
            continue
        if line.startswith(STREAM_INF):
            return None
        if line.startswith("#"):
            continue
        return line
    return None
