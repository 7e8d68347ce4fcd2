from fastapi import FastAPI, Depends, HTTPException

from streamhop.config import load_settings
from streamhop.providers.base import ResolutionRequest
from streamhop.providers.errors import (
    InvalidRequest, NoVariantsFound, ResolverError, ShapeChangedError,
    TransportError, UnexpectedStatus, UnsupportedMediaKind,
)
from streamhop.providers.fetcher import Fetcher
from streamhop.providers.pipeline import ResolutionPipeline

app = FastAPI(title="streamhop")


async def get_pipeline():
    # one fetcher per request, closed when the response is done
    settings = load_settings()
    async with Fetcher(timeout=settings.timeout, verify_ssl=settings.verify_ssl) as fetcher:
        yield ResolutionPipeline.from_settings(fetcher, settings)


def _status_for(error: ResolverError) -> int:
    if isinstance(error, (InvalidRequest, UnsupportedMediaKind)):
        return 400
    if isinstance(error, NoVariantsFound):
        return 404
    if isinstance(error, TransportError):
        return 504
    if isinstance(error, (ShapeChangedError, UnexpectedStatus)):
        return 502
    return 500


async def _resolve(pipeline: ResolutionPipeline, request: ResolutionRequest):
    try:
        variants = await pipeline.resolve(request)
    except ResolverError as e:
        raise HTTPException(
            status_code=_status_for(e),
            detail={
                "error": type(e).__name__,
                "message": str(e),
                "stage": e.stage,
                "retryable": e.retryable,
                "shape_changed": isinstance(e, ShapeChangedError),
            },
        )
    return {"variants": [v.to_dict() for v in variants]}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/streams/movie/{imdb_id}")
async def movie_streams(imdb_id: str, pipeline: ResolutionPipeline = Depends(get_pipeline)):
    return await _resolve(pipeline, ResolutionRequest.movie(imdb_id))


@app.get("/streams/tv/{imdb_id}/{season}/{episode}")
async def episode_streams(imdb_id: str, season: int, episode: int,
                          pipeline: ResolutionPipeline = Depends(get_pipeline)):
    return await _resolve(pipeline, ResolutionRequest.series(imdb_id, season, episode))
