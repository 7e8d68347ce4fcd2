"""
Hidden-token decoding.

The prorcp page carries the manifest URL in an obfuscated string. Two
transforms have been seen upstream:

  A  reverse the string, keep every character at an even index (the odd ones
     are filler), base64-decode the rest
  B  reverse the string, read it as hex byte pairs, XOR each byte with a
     repeating key

Parity and byte order matter: an off-by-one gives garbage, not a partial URL.
"""
from __future__ import annotations
import base64
import binascii
import logging
import re
from typing import Callable, Iterable, Optional
from urllib.parse import urlparse

from .base import DecodeRule
from .errors import DecodeFailed

log = logging.getLogger("streamhop.providers.decoder")

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def _reverse_stride_base64(token: str) -> str:
    kept = token[::-1][::2]
    try:
        raw = base64.b64decode(kept, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeFailed("A", f"malformed base64 ({e})") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeFailed("A", "decoded bytes are not text") from e


def _reverse_hex_xor(token: str, key: Optional[str]) -> str:
    if not key:
        raise DecodeFailed("B", "empty key")
    reversed_token = token[::-1]
    if len(reversed_token) % 2:
        raise DecodeFailed("B", f"odd length {len(reversed_token)}")
    if not _HEX_RE.fullmatch(reversed_token):
        raise DecodeFailed("B", "non-hex characters")

    raw = bytes.fromhex(reversed_token)
    return "".join(
        chr(byte ^ ord(key[i % len(key)]))
        for i, byte in enumerate(raw)
    )


def decode(token: str, rule: DecodeRule, key: Optional[str] = None) -> str:
    """Apply one transform. The output is not checked for being a URL."""
    rule = DecodeRule.parse(rule)
    if rule is DecodeRule.REVERSE_STRIDE_BASE64:
        return _reverse_stride_base64(token)
    return _reverse_hex_xor(token, key)


def is_absolute_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def decode_any(
    token: str,
    rules: Iterable[DecodeRule],
    key: Optional[str] = None,
    validate: Callable[[str], bool] = is_absolute_url,
) -> tuple[str, DecodeRule]:
    """Try `rules` in order; the first output that passes `validate` wins.

    When every rule fails, the primary rule's DecodeFailed is raised.
    """
    first_error: Optional[DecodeFailed] = None
    for rule in rules:
        rule = DecodeRule.parse(rule)
        try:
            plaintext = decode(token, rule, key)
        except DecodeFailed as e:
            log.info("[decoder] variant %s failed: %s", rule.variant, e.reason)
            first_error = first_error or e
            continue
        if validate(plaintext):
            return plaintext, rule
        log.info("[decoder] variant %s produced a non-URL value", rule.variant)
        first_error = first_error or DecodeFailed(rule.variant, "result is not an absolute URL")

    if first_error is None:
        raise DecodeFailed("-", "no decode rule configured")
    raise first_error
