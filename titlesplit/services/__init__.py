"""
Application services module.
"""

from titlesplit.services.extraction import (
    ExtractionResult,
    HttpListingExtractor,
    MockListingExtractor,
    get_extractor,
)

__all__ = ["ExtractionResult", "HttpListingExtractor", "MockListingExtractor", "get_extractor"]
