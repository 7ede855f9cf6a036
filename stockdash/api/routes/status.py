"""
Provider chain status and primary switching.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from stockdash.api.deps import get_aggregator
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator

logger = logging.getLogger(__name__)
router = APIRouter()


class PrimaryUpdate(BaseModel):
    provider: str = Field(..., min_length=1)


@router.get("")
async def provider_status(aggregator: QuoteAggregator = Depends(get_aggregator)):
    """Primary, fallbacks and per-provider request counters"""
    return aggregator.status()


@router.post("/primary")
async def switch_primary(payload: PrimaryUpdate, aggregator: QuoteAggregator = Depends(get_aggregator)):
    try:
        aggregator.set_primary(payload.provider.strip())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return aggregator.status()
