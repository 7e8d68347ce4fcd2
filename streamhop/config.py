"""
Runtime settings, read from the environment (and a .env file when present).

The pipeline itself never looks at the environment; the CLI and the API build
it from these settings.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from streamhop.providers.base import DecodeRule

DEFAULT_EMBED_BASE = "https://vidsrc-embed.ru"


@dataclass(frozen=True)
class Settings:
    embed_base: str = DEFAULT_EMBED_BASE
    timeout: float = 10
    primary_decode: DecodeRule = DecodeRule.REVERSE_STRIDE_BASE64
    decode_key: Optional[str] = None
    script_dir: Optional[str] = None
    verify_ssl: bool = True
    log_level: str = "INFO"

    @property
    def fallback_decode(self) -> DecodeRule:
        return self.primary_decode.other()


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"unknown log level {value!r}")
    return level


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return Settings(
        embed_base=os.getenv("STREAMHOP_EMBED_BASE", DEFAULT_EMBED_BASE).rstrip("/"),
        timeout=float(os.getenv("STREAMHOP_TIMEOUT", "10")),
        primary_decode=DecodeRule.parse(os.getenv("STREAMHOP_PRIMARY_DECODE", "A")),
        decode_key=os.getenv("STREAMHOP_DECODE_KEY") or None,
        script_dir=os.getenv("STREAMHOP_SCRIPT_DIR") or None,
        verify_ssl=_flag(os.getenv("STREAMHOP_VERIFY_SSL"), True),
        log_level=_log_level(os.getenv("STREAMHOP_LOG_LEVEL", "INFO")),
    )
