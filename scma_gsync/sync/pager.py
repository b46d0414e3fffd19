"""Paginated listing of remote collections."""

import logging
from typing import Callable, Optional

from scma_gsync.errors import RemoteListError

logger = logging.getLogger(__name__)


def list_all(
    fetch_page: Callable[[Optional[str]], dict],
    collection: str,
    items_key: str = "items",
) -> list[dict]:
    """
    Fetch every page of a collection and flatten the items.

    fetch_page is called with the page token (None for the first page) and
    returns the decoded response. Listing stops at the first page without a
    nextPageToken. Any failure raises RemoteListError and nothing fetched so
    far is returned.
    """
    items: list[dict] = []
    page_token = None
    pages = 0

    while True:
        try:
            result = fetch_page(page_token)
        except Exception as e:
            logger.error(f"Failed to list {collection} (page {pages + 1}): {e}")
            raise RemoteListError(collection, e) from e

        pages += 1
        items.extend(result.get(items_key, []))

        page_token = result.get("nextPageToken")
        if not page_token:
            break

    logger.debug(f"Listed {len(items)} {collection} in {pages} page(s)")
    return items
