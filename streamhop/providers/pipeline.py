"""
Resolution pipeline — embed page → rcp iframe → prorcp page → hidden token →
HLS master playlist → stream variants.

Flow:
  1. {embed}/embed/movie?imdb={id}   → HTML with iframe#player_iframe (//relay/rcp/...)
  2. relay /rcp/{hash}               → script with src: '/prorcp/...'
  3. relay /prorcp/{hash}            → hidden div token (needs Referer = relay origin)
  4. decode token                    → master playlist URL
  5. master playlist                 → variants

Usage:
    async with Fetcher() as fetcher:
        pipeline = ResolutionPipeline(fetcher)
        variants = await pipeline.resolve(ResolutionRequest.movie("tt0137523"))

Stages run strictly one after another; the first error aborts the call.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urljoin, urlparse

from ..config import DEFAULT_EMBED_BASE, Settings, load_settings
from .base import DecodeRule, MediaKind, PipelineState, ResolutionRequest, StreamVariant
from .decoder import decode_any, is_absolute_url
from .errors import ExtractionFailed, InvalidRequest, ResolverError, UnsupportedMediaKind
from .extractor import (
    HIDDEN_TOKEN, HIDDEN_TOKEN_ID, PRORCP_SCRIPT, RCP_IFRAME, SCRIPT_ASSET,
    extract, extract_optional, parse_html,
)
from .fetcher import Fetcher, decode_body
from .playlist import parse as parse_playlist
from .sinks import DirectoryScriptSink, ScriptSink

log = logging.getLogger("streamhop.providers.pipeline")

Stage = Callable[[PipelineState], Awaitable[PipelineState]]


# ──────────────────────────────
#  Entry URL
# ──────────────────────────────
def _positive(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def build_entry_url(request: ResolutionRequest, base: str = DEFAULT_EMBED_BASE) -> str:
    try:
        kind = MediaKind.parse(request.kind)
    except ValueError:
        raise UnsupportedMediaKind(request.kind) from None

    subject_id = (request.subject_id or "").strip()
    if not subject_id:
        raise InvalidRequest(f"cannot build {kind.value} URL: subject id is empty")

    base = base.rstrip("/")
    if kind is MediaKind.MOVIE:
        return f"{base}/embed/movie?imdb={subject_id}"

    if not _positive(request.season) or not _positive(request.episode):
        raise InvalidRequest(
            f"cannot build series URL for {subject_id!r}: season and episode must be positive integers"
        )
    return f"{base}/embed/tv?imdb={subject_id}&season={request.season}&episode={request.episode}"


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


# ──────────────────────────────
#  Pipeline
# ──────────────────────────────
class ResolutionPipeline:
    def __init__(
        self,
        fetcher: Fetcher,
        *,
        embed_base: str = DEFAULT_EMBED_BASE,
        primary: DecodeRule = DecodeRule.REVERSE_STRIDE_BASE64,
        fallback: Optional[DecodeRule] = DecodeRule.REVERSE_HEX_XOR,
        decode_key: Optional[str] = None,
        script_sink: Optional[ScriptSink] = None,
    ):
        self.fetcher = fetcher
        self.embed_base = embed_base.rstrip("/")
        self.primary = DecodeRule.parse(primary)
        self.fallback = DecodeRule.parse(fallback) if fallback else None
        self.decode_key = decode_key
        self.script_sink = script_sink

    @classmethod
    def from_settings(cls, fetcher: Fetcher, settings: Settings) -> "ResolutionPipeline":
        sink = DirectoryScriptSink(settings.script_dir) if settings.script_dir else None
        return cls(
            fetcher,
            embed_base=settings.embed_base,
            primary=settings.primary_decode,
            fallback=settings.fallback_decode,
            decode_key=settings.decode_key,
            script_sink=sink,
        )

    @property
    def decode_rules(self) -> list[DecodeRule]:
        rules = [self.primary]
        if self.fallback and self.fallback is not self.primary:
            rules.append(self.fallback)
        return rules

    @property
    def stages(self) -> list[tuple[str, Stage]]:
        return [
            ("build-entry-url", self.build_entry),
            ("fetch-entry", self.fetch_entry),
            ("extract-rcp-url", self.extract_rcp_url),
            ("fetch-rcp", self.fetch_rcp),
            ("extract-prorcp-url", self.extract_prorcp_url),
            ("fetch-prorcp", self.fetch_prorcp),
            ("save-script", self.save_script),
            ("extract-hidden-token", self.extract_hidden_token),
            ("decode-token", self.decode_token),
            ("fetch-manifest", self.fetch_manifest),
            ("parse-manifest", self.parse_manifest),
        ]

    async def resolve(self, request: ResolutionRequest) -> list[StreamVariant]:
        """Run every stage and return the playlist variants."""
        state = await self._run(request)
        log.info("[pipeline] found %d stream variants", len(state.variants))
        return state.variants

    async def resolve_manifest(self, request: ResolutionRequest) -> str:
        """Run up to the token decode and return the master playlist URL."""
        state = await self._run(request, until="decode-token")
        return state.manifest_url

    async def _run(self, request: ResolutionRequest, until: Optional[str] = None) -> PipelineState:
        state = PipelineState(request=request)
        for name, stage in self.stages:
            log.debug("[pipeline] stage %s", name)
            try:
                state = await stage(state)
            except ResolverError as e:
                if e.stage is None:
                    e.stage = name
                log.warning("[pipeline] %s failed: %s", name, e)
                raise
            if name == until:
                break
        return state

    # ── stages ─────────────────────

    async def build_entry(self, state: PipelineState) -> PipelineState:
        state.entry_url = build_entry_url(state.request, self.embed_base)
        log.info("[pipeline] built embed URL: %s", state.entry_url)
        return state

    async def fetch_entry(self, state: PipelineState) -> PipelineState:
        state.entry_html = decode_body(await self.fetcher.get(state.entry_url))
        return state

    async def extract_rcp_url(self, state: PipelineState) -> PipelineState:
        src = extract(state.entry_html, RCP_IFRAME)
        if src.startswith("//"):
            rcp_url = f"https:{src}"
        else:
            try:
                rcp_url = urljoin(state.entry_url, src)
            except ValueError as e:
                raise ExtractionFailed(RCP_IFRAME.stage, f"unusable iframe src {src!r}") from e
        if not is_absolute_url(rcp_url):
            raise ExtractionFailed(RCP_IFRAME.stage, f"unusable iframe src {src!r}")
        state.rcp_url = rcp_url
        log.info("[pipeline] found rcp URL: %s", rcp_url)
        return state

    async def fetch_rcp(self, state: PipelineState) -> PipelineState:
        state.rcp_html = decode_body(await self.fetcher.get(state.rcp_url))
        return state

    async def extract_prorcp_url(self, state: PipelineState) -> PipelineState:
        path = extract(state.rcp_html, PRORCP_SCRIPT)
        state.prorcp_url = urljoin(state.rcp_url, path)
        log.info("[pipeline] found prorcp URL: %s", state.prorcp_url)
        return state

    async def fetch_prorcp(self, state: PipelineState) -> PipelineState:
        # the relay refuses the prorcp page without its own origin as referrer
        body = await self.fetcher.get(state.prorcp_url, referer=origin_of(state.rcp_url))
        state.prorcp_html = decode_body(body)
        return state

    async def save_script(self, state: PipelineState) -> PipelineState:
        if self.script_sink is None:
            return state
        src = extract_optional(state.prorcp_html, SCRIPT_ASSET)
        if not src:
            log.info("[pipeline] no script asset referenced by prorcp page")
            return state

        try:
            script_url = urljoin(state.prorcp_url, src)
            content = await self.fetcher.get(script_url, referer=origin_of(state.rcp_url))
            await asyncio.to_thread(self.script_sink.save, script_url, content)
        except Exception as e:
            log.warning("[pipeline] could not persist script %s: %s", src, e)
        return state

    async def extract_hidden_token(self, state: PipelineState) -> PipelineState:
        soup = parse_html(state.prorcp_html)
        state.token = extract(soup, HIDDEN_TOKEN)
        state.token_key = extract_optional(soup, HIDDEN_TOKEN_ID)
        log.info("[pipeline] hidden token found, length %d", len(state.token))
        return state

    async def decode_token(self, state: PipelineState) -> PipelineState:
        key = self.decode_key or state.token_key
        manifest_url, rule = decode_any(state.token, self.decode_rules, key)
        if rule is not self.primary:
            log.warning("[pipeline] primary variant %s failed, variant %s decoded the token",
                        self.primary.variant, rule.variant)
        state.manifest_url = manifest_url
        state.decode_rule = rule
        log.info("[pipeline] decoded HLS URL: %s", manifest_url)
        return state

    async def fetch_manifest(self, state: PipelineState) -> PipelineState:
        state.manifest_text = decode_body(await self.fetcher.get(state.manifest_url))
        return state

    async def parse_manifest(self, state: PipelineState) -> PipelineState:
        state.variants = parse_playlist(state.manifest_text, state.manifest_url)
        for v in state.variants:
            log.info("[pipeline] variant resolution=%s bandwidth=%s", v.resolution or "?", v.bandwidth or "?")
        return state


# ──────────────────────────────
#  Convenience entry point
# ──────────────────────────────
async def resolve_streams(
    request: ResolutionRequest,
    settings: Optional[Settings] = None,
) -> list[StreamVariant]:
    """Resolve with a fresh fetcher built from settings; the fetcher is closed afterwards."""
    settings = settings or load_settings()
    async with Fetcher(timeout=settings.timeout, verify_ssl=settings.verify_ssl) as fetcher:
        pipeline = ResolutionPipeline.from_settings(fetcher, settings)
        return await pipeline.resolve(request)
