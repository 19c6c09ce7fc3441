"""
Media buffer router.
Warms media chunks and posters, and serves whatever has been buffered.
"""
from fastapi import APIRouter, Depends, Query, Response

from feedcore.api.dependencies import get_prefetch_engine
from feedcore.core.exceptions import NotFoundError, ValidationError
from feedcore.models.schemas import BufferRequest, BufferResponse, ErrorResponse
from feedcore.services.prefetch import PrefetchEngine, is_fetchable_url

router = APIRouter(prefix="/v1/media", tags=["media"])


@router.post("/buffer", response_model=BufferResponse, summary="Buffer Media")
async def buffer_media(
    request: BufferRequest,
    engine: PrefetchEngine = Depends(get_prefetch_engine),
) -> BufferResponse:
    """
    Buffer the head of a media file and/or a poster image.
    Waits for the fetches; failures simply report False.
    """
    if request.source_url:
        await engine.buffer_media_chunk(request.source_url)
    if request.poster_url:
        await engine.buffer_image(request.poster_url)
    return BufferResponse(
        media_cached=bool(request.source_url) and engine.has_media_chunk(request.source_url),
        image_cached=bool(request.poster_url) and engine.has_image(request.poster_url),
    )


@router.get(
    "/cached",
    summary="Serve Buffered Bytes",
    responses={
        400: {"model": ErrorResponse, "description": "Not an http(s) URL"},
        404: {"model": ErrorResponse, "description": "Not buffered"},
    },
)
async def get_cached(
    url: str = Query(..., min_length=1, description="Original source URL"),
    kind: str = Query(default="media", pattern="^(media|image)$"),
    engine: PrefetchEngine = Depends(get_prefetch_engine),
) -> Response:
    """Return buffered bytes; 404 means the caller should use the network URL."""
    if not is_fetchable_url(url):
        raise ValidationError("Only http(s) URLs are buffered", {"url": url})

    entry = engine.read_cached_media(url) if kind == "media" else engine.read_cached_image(url)
    if entry is None:
        raise NotFoundError("Cached " + kind, url)

    return Response(
        content=entry.payload,
        media_type=entry.content_type,
        headers={
            "Content-Length": str(entry.size),
            "X-Cache": "HIT",
        },
    )
