"""
Error kinds raised by the resolution pipeline.

Two families matter to callers:
  - TransientError: network or HTTP status trouble, retry the whole resolution later
  - ShapeChangedError: the upstream page or token format changed, code needs updating
"""
from __future__ import annotations
from typing import Optional


class ResolverError(Exception):
    """Base class. `stage` is filled in by the pipeline when the error leaves a stage."""
    retryable = False

    def __init__(self, message: str = "", *, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self):
        msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {msg}"
        return msg


class InvalidRequest(ResolverError, ValueError):
    pass


class UnsupportedMediaKind(ResolverError, ValueError):
    def __init__(self, kind, *, stage: Optional[str] = None):
        super().__init__(f"unsupported media kind {kind!r}", stage=stage)
        self.kind = kind


# ──────────────────────────────
#  Transient
# ──────────────────────────────
class TransientError(ResolverError):
    retryable = True


class TransportError(TransientError):
    def __init__(self, url: str, cause: BaseException, *, stage: Optional[str] = None):
        detail = str(cause) or type(cause).__name__
        super().__init__(f"request to {url} failed: {detail}", stage=stage)
        self.url = url
        self.cause = cause


class UnexpectedStatus(TransientError):
    def __init__(self, url: str, status: int, *, stage: Optional[str] = None):
        super().__init__(f"unexpected status {status} for {url}", stage=stage)
        self.url = url
        self.status = status


# ──────────────────────────────
#  Upstream shape changed
# ──────────────────────────────
class ShapeChangedError(ResolverError):
    pass


class ExtractionFailed(ShapeChangedError):
    def __init__(self, stage: str, detail: str = ""):
        msg = f"expected structure not found ({stage})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg, stage=stage)


class DecodeFailed(ShapeChangedError):
    def __init__(self, variant: str, reason: str = "", *, stage: Optional[str] = None):
        msg = f"token decode failed (variant {variant})"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg, stage=stage)
        self.variant = variant
        self.reason = reason


class NoVariantsFound(ResolverError):
    def __init__(self, base_url: str, *, stage: Optional[str] = None):
        super().__init__(f"no stream variants found in master playlist {base_url}", stage=stage)
        self.base_url = base_url
