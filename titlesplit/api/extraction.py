"""
Listing extraction API endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from titlesplit.services.extraction import (
    MalformedURLError,
    get_extractor,
    to_seller_update,
    validate_listing_url,
)

router = APIRouter()


class ExtractionRequest(BaseModel):
    """A property listing URL."""

    url: str = ""


@router.post("/")
async def extract_listing(request: ExtractionRequest, extractor=Depends(get_extractor)):
    """Extract listing data and the seller update it implies."""
    try:
        url = validate_listing_url(request.url)
    except MalformedURLError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await extractor.extract(url)
    return {
        "result": result.model_dump(),
        "seller_update": to_seller_update(result),
    }
