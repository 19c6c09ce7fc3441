"""
Narration key pool admin router.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from feedcore.api.dependencies import get_key_pool_client, get_key_pool_store
from feedcore.models.interfaces import KeyPoolConfigStore
from feedcore.models.schemas import ErrorResponse, KeyPoolUpdate, KeyStatusResponse
from feedcore.services.key_pool import KeyPoolClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/keys", tags=["keys"])


@router.get("/status", response_model=List[KeyStatusResponse], summary="Probe Key Pool")
async def key_status(
    client: KeyPoolClient = Depends(get_key_pool_client),
    store: KeyPoolConfigStore = Depends(get_key_pool_store),
) -> List[KeyStatusResponse]:
    """Probe every stored key, sequentially, in pool order."""
    config = await store.load()
    records = await client.probe_all(config.keys)
    return [
        KeyStatusResponse(
            key=record.masked_key,
            used=record.used,
            limit=record.limit,
            remaining=record.remaining,
            status=record.status,
        )
        for record in records
    ]


@router.put("", summary="Replace Key Pool")
async def save_keys(
    update: KeyPoolUpdate,
    client: KeyPoolClient = Depends(get_key_pool_client),
) -> dict:
    """Store a new key list; rotation restarts from the first key."""
    keys = await client.save_keys(update.keys)
    return {"keys": len(keys)}


@router.post(
    "/optimize",
    summary="Reorder Key Pool",
    responses={503: {"model": ErrorResponse, "description": "Key pool is empty"}},
)
async def optimize_keys(
    client: KeyPoolClient = Depends(get_key_pool_client),
) -> dict:
    """Probe the pool, put the keys with the most quota first and save."""
    keys = await client.optimize()
    logger.info(f"Key pool optimized ({len(keys)} keys)")
    return {"keys": len(keys)}
