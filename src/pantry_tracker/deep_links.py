"""Deep link routing: ``pantry://`` URLs to root actions."""

import logging
from urllib.parse import parse_qs, urlparse

from .models import BannerKind
from .places_reducer import BannerTapped, OpenAllItems, PlacesAction

logger = logging.getLogger(__name__)

SCHEME = "pantry"


def route(url: str) -> PlacesAction | None:
    """Map a deep link to the root action it triggers.

    ``pantry://items`` opens the list of all places and
    ``pantry://expiration?filter=expired|soon`` opens an expiration list
    (expiring soon when the filter is missing or unknown). Anything else
    is ignored and yields None.
    """
    parsed = urlparse(url.strip())
    if parsed.scheme.lower() != SCHEME:
        logger.debug("Ignoring link with foreign scheme: %s", url)
        return None

    host = parsed.netloc.lower()
    if host == "items":
        return OpenAllItems()
    if host == "expiration":
        filters = parse_qs(parsed.query).get("filter", [])
        if filters and filters[0].lower() == "expired":
            return BannerTapped(BannerKind.EXPIRED)
        return BannerTapped(BannerKind.EXPIRING_SOON)

    logger.debug("Ignoring unknown link: %s", url)
    return None
