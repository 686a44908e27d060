import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, NamedTuple, Optional

from aufcrawler.detail import parse_detail
from aufcrawler.exceptions import TransientFetchFailure
from aufcrawler.items import EVENT, MEMBER, PROJECT
from aufcrawler.utility import AUF_BASE, absolutize, natural_key

logger = logging.getLogger(__name__)

# kinds whose preview only points at the record; the rest are complete on the listing
DETAIL_KINDS = (PROJECT, MEMBER, EVENT)


class Claim(NamedTuple):
    key: str
    url: str


class IngestReport:
    def __init__(self, kind: str, inserted: List, skipped: int = 0, failed: int = 0,
                 pages: int = 0, error: Optional[str] = None):
        self.kind = kind
        self.inserted = inserted
        self.skipped = skipped
        self.failed = failed
        self.pages = pages
        self.error = error

    @property
    def ok(self):
        return self.error is None

    def to_dict(self):
        return {
            "kind": self.kind,
            "inserted_count": len(self.inserted),
            "skipped": self.skipped,
            "failed": self.failed,
            "pages": self.pages,
            "error": self.error,
            "inserted": [dict(r) for r in self.inserted],
        }


class IngestionCoordinator:
    """Decides which previews become new records in one ingestion run.

    A preview is claimed at most once per run by its natural key, and only if
    the store does not already hold that key. Claims are expected from a
    single thread (the Scrapy reactor, or the caller of ``ingest``); detail
    fetches for claimed previews may run concurrently.
    """

    def __init__(self, kind: str, exists: Callable[[str], bool], base_url: str = AUF_BASE,
                 needs_detail: Optional[bool] = None):
        self.kind = kind
        self.exists = exists
        self.base_url = base_url
        self.needs_detail = kind in DETAIL_KINDS if needs_detail is None else needs_detail
        self.claimed = set()
        self.inserted: List = []
        self.skipped = 0
        self.failed = 0
        self.error: Optional[str] = None

    def claim(self, preview) -> Optional[Claim]:
        key = natural_key(self.kind, preview)
        if not key:
            self.skipped += 1
            logger.debug("%s: preview without identity skipped", self.kind)
            return None
        if key in self.claimed:
            self.skipped += 1
            logger.debug("%s: %r already seen in this run", self.kind, key)
            return None
        self.claimed.add(key)
        if self.exists(key):
            self.skipped += 1
            logger.debug("%s: %r already stored", self.kind, key)
            return None

        url = absolutize(preview.get("link"), self.base_url)
        if self.needs_detail and not url:
            self.skipped += 1
            logger.info("%s: %r has no detail link, skipped", self.kind, key)
            return None
        return Claim(key, url)

    def accept(self, record, claim: Claim):
        record["natural_key"] = claim.key
        if claim.url and not record.get("source_url"):
            record["source_url"] = claim.url
        return record

    def reject(self, claim: Claim, reason: str, failed: bool = False):
        if failed:
            self.failed += 1
            logger.warning("%s: %r failed: %s", self.kind, claim.key, reason)
        else:
            self.skipped += 1
            logger.info("%s: %r skipped: %s", self.kind, claim.key, reason)

    def record_inserted(self, inserted: List, attempted: int):
        self.inserted.extend(inserted)
        # keys another run stored between our claim and our write
        self.skipped += max(0, attempted - len(inserted))

    def write_failed(self, attempted: int, reason):
        self.failed += attempted
        logger.error("%s: %d record(s) not stored: %s", self.kind, attempted, reason)
        self.abort(f"store write failed: {reason}")

    def abort(self, reason):
        if self.error is None:
            self.error = str(reason)

    def report(self, pages: int = 0) -> IngestReport:
        return IngestReport(self.kind, list(self.inserted), skipped=self.skipped,
                            failed=self.failed, pages=pages, error=self.error)


def ingest(previews, fetch_detail: Callable[[str], object], exists: Callable[[str], bool],
           kind: str, base_url: str = AUF_BASE, insert_batch: Optional[Callable[[List], List]] = None,
           parse=parse_detail, max_workers: int = 8) -> IngestReport:
    """Turn previews into stored detail records.

    ``fetch_detail(url)`` returns the detail page and raises
    TransientFetchFailure when it cannot. Any error while fetching or parsing
    one item counts that item as failed and the batch carries on. Detail pages are fetched by a bounded thread pool.
    Staged records are handed to ``insert_batch`` once, at the end.
    """
    coordinator = IngestionCoordinator(kind, exists, base_url)
    batch = []
    claims = []
    for preview in previews:
        claim = coordinator.claim(preview)
        if claim is not None:
            claims.append(claim)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = [(claim, pool.submit(fetch_detail, claim.url)) for claim in claims]
        for claim, future in futures:
            try:
                document = future.result()
            except TransientFetchFailure as e:
                coordinator.reject(claim, str(e), failed=True)
                continue
            except Exception as e:
                logger.exception("%s: fetching %s failed: %s", kind, claim.url, e)
                coordinator.reject(claim, f"fetch error: {e}", failed=True)
                continue
            try:
                record = parse(document, kind, claim.url) if document is not None else None
            except Exception as e:
                logger.exception("%s: parsing %s failed: %s", kind, claim.url, e)
                coordinator.reject(claim, f"parse error: {e}", failed=True)
                continue
            if record is None:
                coordinator.reject(claim, "detail page did not match the template")
                continue
            batch.append(coordinator.accept(record, claim))

    inserted = insert_batch(batch) if insert_batch is not None else batch
    coordinator.record_inserted(inserted, len(batch))
    return coordinator.report()
