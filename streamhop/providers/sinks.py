"""
Script-asset sinks. The prorcp page loads an obfuscated player script; keeping
a copy around helps when the token format changes and the decoder has to be
re-derived. Sinks are never on the critical path.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Union

log = logging.getLogger("streamhop.providers.sinks")


class ScriptSink:
    def save(self, url: str, content: bytes) -> None:
        raise NotImplementedError


class DirectoryScriptSink(ScriptSink):
    def __init__(self, directory: Union[str, Path], filename: str = "prorcp.js"):
        self.directory = Path(directory)
        self.filename = filename

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def save(self, url: str, content: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(content)
        log.info("[sinks] saved %s (%d bytes) to %s", url, len(content), self.path)


class MemoryScriptSink(ScriptSink):
    """Keeps (url, content) pairs; handy for tests and for callers that inspect in-process."""

    def __init__(self):
        self.saved: list[tuple[str, bytes]] = []

    def save(self, url: str, content: bytes) -> None:
        self.saved.append((url, content))
