import logging
from typing import Callable, List, Optional

from aufcrawler.exceptions import TransientFetchFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 200

RUNNING = "running"
EXHAUSTED = "exhausted"   # empty page, or 404 past the first page
CAPPED = "capped"         # max_pages reached while pages were still non-empty
FAILED = "failed"         # transient fetch failure, results are partial


class Paginator:
    """Listing pagination state: page number, previews so far, terminal status.

    Pages are consumed strictly in order. The listing ends on the first page
    that yields no previews; a fetch failure is kept apart from that so a
    broken page is never mistaken for the end of the listing.
    """

    def __init__(self, url_for: Callable[[int], str], start: int = 1,
                 max_pages: int = DEFAULT_MAX_PAGES, label: str = "listing"):
        self.url_for = url_for
        self.start = start
        self.page_number = start
        self.max_pages = max_pages
        self.label = label
        self.accumulated: List = []
        self.pages_seen = 0
        self.status = RUNNING
        self.error: Optional[TransientFetchFailure] = None

    @property
    def url(self):
        return self.url_for(self.page_number)

    @property
    def done(self):
        return self.status != RUNNING

    def feed(self, previews) -> bool:
        """Record one page's previews. Returns True if the next page should be fetched."""
        if self.done:
            return False
        if not previews:
            self.status = EXHAUSTED
            logger.info("%s: page %d is empty, stopping after %d page(s)",
                        self.label, self.page_number, self.pages_seen)
            return False

        self.accumulated.extend(previews)
        self.pages_seen += 1
        if self.pages_seen >= self.max_pages:
            self.status = CAPPED
            logger.warning("%s: still non-empty after %d pages (page %d), giving up; "
                           "the listing may not terminate", self.label, self.pages_seen, self.page_number)
            return False

        self.page_number += 1
        return True

    def stop(self):
        """End a listing that is known to be a single page."""
        if not self.done:
            self.status = EXHAUSTED

    def exhaust(self):
        if self.done:
            return
        self.status = EXHAUSTED
        logger.info("%s: page %d not found, listing ends after %d page(s)",
                    self.label, self.page_number, self.pages_seen)

    def fail(self, error: TransientFetchFailure):
        self.status = FAILED
        self.error = error
        logger.error("%s: page %d failed (%s); keeping %d preview(s) from %d page(s)",
                     self.label, self.page_number, error, len(self.accumulated), self.pages_seen)

    def fetch_failed(self, error: TransientFetchFailure) -> bool:
        """Classify a failed listing fetch. Returns True if it just means 'no more pages'."""
        if error.status == 404 and self.page_number > self.start:
            self.exhaust()
            return True
        self.fail(error)
        return False


def paginate(fetch_page: Callable[[str], object], extract: Callable[[object], list],
             url_for: Callable[[int], str], start: int = 1,
             max_pages: int = DEFAULT_MAX_PAGES, label: str = "listing") -> Paginator:
    """Fetch listing pages in order until one comes back empty.

    ``fetch_page`` raises TransientFetchFailure on network errors, timeouts and
    non-2xx answers. The returned Paginator holds the previews and, when the
    run stopped on a failure, the error in ``.error``.
    """
    pager = Paginator(url_for, start=start, max_pages=max_pages, label=label)
    while not pager.done:
        try:
            document = fetch_page(pager.url)
        except TransientFetchFailure as e:
            pager.fetch_failed(e)
            break
        pager.feed(extract(document))
    return pager
