import scrapy
from scrapy.spidermiddlewares.httperror import HttpError
from twisted.internet.error import DNSLookupError, TCPTimedOutError, TimeoutError

from aufcrawler.detail import parse_detail
from aufcrawler.exceptions import TransientFetchFailure
from aufcrawler.extractors import extract_previews
from aufcrawler.ingest import IngestionCoordinator
from aufcrawler.pagination import CAPPED, DEFAULT_MAX_PAGES, Paginator
from aufcrawler.store import MongoStore
from aufcrawler.utility import AUF_BASE


def fetch_failure(failure):
    """Turn a Scrapy errback failure into a TransientFetchFailure."""
    request = failure.request
    if failure.check(HttpError):
        response = failure.value.response
        return TransientFetchFailure(response.url, "non-2xx response", status=response.status)
    if failure.check(TimeoutError, TCPTimedOutError):
        return TransientFetchFailure(request.url, "timed out")
    if failure.check(DNSLookupError):
        return TransientFetchFailure(request.url, "DNS lookup failed")
    return TransientFetchFailure(request.url, failure.getErrorMessage() or failure.type.__name__)


class ListingSpider(scrapy.Spider):
    """Walks a paginated listing and ingests what it finds.

    Subclasses set ``kind`` and ``base_url`` and build page URLs. Listing
    pages are requested one at a time; detail pages for the previews of a
    page are requested together and throttled by the downloader settings.
    """

    kind = None
    base_url = AUF_BASE
    paginated = True
    needs_detail = None

    def __init__(self, max_pages=None, store=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_pages = int(max_pages) if max_pages else None
        self.store = store
        self.coordinator = IngestionCoordinator(self.kind, self.key_exists, self.base_url,
                                                needs_detail=self.needs_detail)
        self.paginator = None
        self.report = None

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):
        spider = super().from_crawler(crawler, *args, **kwargs)
        if spider.store is None:
            spider.store = MongoStore.from_settings(crawler.settings)
        if spider.max_pages is None:
            spider.max_pages = crawler.settings.getint("MAX_PAGES", DEFAULT_MAX_PAGES)
        return spider

    def key_exists(self, key):
        return self.store.exists(self.kind, key)

    def page_url(self, page_number: int) -> str:
        raise NotImplementedError

    def start_requests(self):
        self.paginator = Paginator(self.page_url, max_pages=self.max_pages or DEFAULT_MAX_PAGES,
                                   label=self.name)
        yield self.listing_request()

    def listing_request(self):
        return scrapy.Request(
            self.paginator.url,
            callback=self.parse,
            errback=self.on_listing_error,
            dont_filter=True,
            cb_kwargs={"page": self.paginator.page_number},
        )

    def extract(self, response):
        return extract_previews(response, self.kind)

    def parse(self, response, page=1, **kwargs):
        previews = self.extract(response)
        self.logger.info("Found %d %s previews on page %s", len(previews), self.kind, page)
        if not previews:
            self.crawler.stats.inc_value(f"listing/{self.kind}/empty_page")

        more = self.paginator.feed(previews)
        if not self.paginated:
            self.paginator.stop()

        for preview in previews:
            yield from self.handle_preview(preview, response)

        if more and self.paginated:
            yield self.listing_request()
        elif self.paginator.status == CAPPED:
            self.crawler.stats.inc_value(f"listing/{self.kind}/capped")

    def handle_preview(self, preview, response):
        claim = self.coordinator.claim(preview)
        if claim is None:
            self.crawler.stats.inc_value(f"ingest/{self.kind}/skipped_known")
            return

        if not self.coordinator.needs_detail:
            record = self.build_record(preview, response)
            record.setdefault("source_url", response.url)
            yield self.coordinator.accept(record, claim)
            return

        yield scrapy.Request(
            claim.url,
            callback=self.parse_detail,
            errback=self.on_detail_error,
            dont_filter=True,
            cb_kwargs={"claim": claim, "preview": preview},
        )

    def build_record(self, preview, response):
        """Record for kinds that have no detail page. The preview itself by default."""
        return preview

    def complete(self, record, preview):
        """Fill detail fields the detail page lacks but the listing card has."""
        return record

    def parse_detail(self, response, claim, preview, **kwargs):
        try:
            record = parse_detail(response.text, self.kind, response.url)
        except Exception as e:
            self.logger.exception("Parsing %s failed: %s", response.url, e)
            self.coordinator.reject(claim, f"parse error: {e}", failed=True)
            self.crawler.stats.inc_value(f"ingest/{self.kind}/detail_parse_error")
            return

        if record is None:
            self.coordinator.reject(claim, "detail page did not match the template")
            self.crawler.stats.inc_value(f"ingest/{self.kind}/template_mismatch")
            return
        yield self.coordinator.accept(self.complete(record, preview), claim)

    def on_listing_error(self, failure):
        error = fetch_failure(failure)
        if self.paginator.fetch_failed(error):
            return
        self.coordinator.abort(error)
        self.crawler.stats.inc_value(f"listing/{self.kind}/fetch_failed")

    def on_detail_error(self, failure):
        claim = failure.request.cb_kwargs.get("claim")
        error = fetch_failure(failure)
        self.crawler.stats.inc_value(f"ingest/{self.kind}/detail_fetch_failed")
        if claim is not None:
            self.coordinator.reject(claim, str(error), failed=True)

    def pages_fetched(self):
        return self.paginator.pages_seen if self.paginator else 0

    def closed(self, reason):
        if reason != "finished":
            self.coordinator.abort(f"run interrupted ({reason})")
        elif self.paginator is not None and not self.paginator.done:
            # a listing callback died before asking for the next page
            self.coordinator.abort(f"listing stopped after {self.paginator.pages_seen} page(s) without reaching its end")
        self.report = self.coordinator.report(pages=self.pages_fetched())
        self.logger.info("%s: %d inserted, %d skipped, %d failed over %d page(s)%s",
                         self.kind, len(self.report.inserted), self.report.skipped,
                         self.report.failed, self.report.pages,
                         f"; aborted: {self.report.error}" if self.report.error else "")
        if self.store is not None:
            self.store.close()
