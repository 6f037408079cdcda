"""
Listing data extraction.

Given a property listing URL, returns the asking price, number of units and
address where they can be found. The "mock" provider returns canned data per
listing site; the "http" provider fetches the page and parses it.
"""

import asyncio
import logging
import re
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from titlesplit.calculations.inputs import round_half_up
from titlesplit.config import get_settings

logger = logging.getLogger(__name__)

HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.5",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:145.0) Gecko/20100101 Firefox/145.0",
}

UNIT_WORDS = r"(?:flats?|apartments?|units?|self[- ]contained flats?)"


class ExtractionError(Exception):
    """Listing data could not be extracted."""


class MalformedURLError(ExtractionError):
    """The input does not look like a listing URL."""


class ListingData(BaseModel):
    """Fields found on a listing. Any of them may be missing."""

    price: Optional[float] = None
    num_units: Optional[int] = None
    address: Optional[str] = None


class ExtractionResult(BaseModel):
    """Outcome of one extraction call."""

    success: bool
    data: Optional[ListingData] = None
    error: Optional[str] = None


def is_valid_url(url: str) -> bool:
    """Check that the input is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url.strip())
    except (AttributeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_listing_url(url: str) -> str:
    """
    Reject empty or malformed input before any request is made.

    Raises:
        MalformedURLError: With a message fit to show the user
    """
    if not url or not url.strip():
        raise MalformedURLError("Please enter a property listing URL")
    if not is_valid_url(url):
        raise MalformedURLError("Invalid URL format")
    return url.strip()


def clean_url(url: str) -> str:
    """Strip query string, fragment and trailing slash."""
    try:
        parsed = urlparse(url.strip())
    except (AttributeError, ValueError):
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}"


def get_domain(url: str) -> str:
    """Lower-cased host name of a URL, or "" if it has none."""
    try:
        return (urlparse(url.strip()).hostname or "").lower()
    except (AttributeError, ValueError):
        logger.error(f"Error extracting domain from {url}")
        return ""


def to_seller_update(result: ExtractionResult) -> Dict[str, Any]:
    """
    Translate listing data into a partial seller update.

    The average price per flat is only included when both the price and the
    unit count are known. Missing or zero values are left out.
    """
    if not result.success or result.data is None:
        return {}

    update: Dict[str, Any] = {}
    if result.data.price:
        update["purchase_price"] = result.data.price
    if result.data.num_units:
        update["num_flats"] = result.data.num_units
        if result.data.price:
            update["average_price_per_flat"] = round_half_up(
                result.data.price / result.data.num_units
            )
    return update


class MockListingExtractor:
    """Simulated listing service returning fixed data per listing site."""

    def __init__(self, delay_seconds: float = 1.5):
        self.delay_seconds = delay_seconds

    async def extract(self, url: str) -> ExtractionResult:
        if not is_valid_url(url):
            logger.error(f"Invalid URL format: {url}")
            return ExtractionResult(success=False, error="Invalid URL format")

        cleaned = clean_url(url)
        logger.info(f"Attempting to extract data from URL: {cleaned}")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        domain = get_domain(cleaned)
        return ExtractionResult(success=True, data=self._listing_for(domain, cleaned))

    def _listing_for(self, domain: str, url: str) -> ListingData:
        if "rightmove" in domain:
            return ListingData(
                price=685000, num_units=7, address="123 Property Street, London"
            )
        if "zoopla" in domain:
            return ListingData(
                price=725000, num_units=8, address="456 Real Estate Road, Manchester"
            )
        if "onthemarket" in domain:
            match = re.search(r"/details/(\d+)", url)
            listing_id = match.group(1) if match else "unknown"
            return ListingData(
                price=750000,
                num_units=9,
                address=f"789 Investment Avenue, Birmingham (Listing #{listing_id})",
            )

        logger.info(f"Unknown property site, using generic data for domain: {domain}")
        return ListingData(
            price=700000,
            num_units=8,
            address=f"999 Default Property, Leeds (from {domain})",
        )


def parse_price(text: str) -> Optional[float]:
    """
    Find the first asking price in page text.

    Handles "£685,000", "£1.2m" and "£650k". Returns None if no price is found.
    """
    if not text:
        return None

    match = re.search(r"£\s*([\d,]+(?:\.\d+)?)\s*([mMkK]\b)?", text)
    if not match:
        return None

    try:
        value = float(match.group(1).replace(",", ""))
    except ValueError:
        return None

    suffix = (match.group(2) or "").lower()
    if suffix == "m":
        value *= 1_000_000
    elif suffix == "k":
        value *= 1_000
    return value if value > 0 else None


def parse_unit_count(text: str) -> Optional[int]:
    """Find a unit count such as "7 flats" or "block of 8 apartments"."""
    if not text:
        return None

    match = re.search(rf"\b(\d{{1,3}})\s+(?:x\s+)?(?:[\w-]+\s+)?{UNIT_WORDS}\b", text, re.IGNORECASE)
    if not match:
        return None
    count = int(match.group(1))
    return count if count > 0 else None


def parse_page(html: str) -> Tuple[str, Optional[str]]:
    """
    Split a listing page into its visible text and its title.

    Script and style blocks are dropped so prices in inline code are not
    picked up. Entities such as &pound; are decoded.

    Returns:
        (text, title), with title None when the page has none
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    title = None
    if soup.title is not None:
        title = re.sub(r"\s+", " ", soup.title.get_text(strip=True)) or None

    return soup.get_text(" "), title


def _create_session() -> requests.Session:
    session = requests.Session()
    retry_strategy = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class HttpListingExtractor:
    """Fetches the listing page and parses price, unit count and address."""

    def __init__(self, timeout: int = 30, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or _create_session()

    async def extract(self, url: str) -> ExtractionResult:
        if not is_valid_url(url):
            return ExtractionResult(success=False, error="Invalid URL format")
        return await run_in_threadpool(self._fetch, clean_url(url))

    def _fetch(self, url: str) -> ExtractionResult:
        logger.info(f"Fetching listing page: {url}")
        try:
            response = self.session.get(url, headers=HEADERS, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Listing request failed for {url}: {e}")
            return ExtractionResult(success=False, error=f"Could not fetch listing: {e}")

        text, title = parse_page(response.text)
        data = ListingData(
            price=parse_price(text),
            num_units=parse_unit_count(text),
            address=title,
        )

        if data.price is None and data.num_units is None:
            return ExtractionResult(
                success=False, error="Could not find a price or unit count on the listing"
            )
        return ExtractionResult(success=True, data=data)


@lru_cache()
def get_extractor():
    """Extractor chosen by the extraction_provider setting, built once per process."""
    settings = get_settings()
    if settings.extraction_provider == "http":
        return HttpListingExtractor(timeout=settings.extraction_timeout)
    return MockListingExtractor(delay_seconds=settings.extraction_delay_seconds)
