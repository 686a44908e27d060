from typing import Optional


class AufCrawlerError(Exception):
    pass


class TemplateMismatch(AufCrawlerError):
    """Page structure does not match the selectors for its kind.

    Raised by the detail parsers when the mandatory heading is missing;
    ``parse_detail`` absorbs it and returns None.
    """

    def __init__(self, kind: str, what: str, url: Optional[str] = None):
        self.kind = kind
        self.what = what
        self.url = url
        where = f" at {url}" if url else ""
        super().__init__(f"{kind}: {what}{where}")


class TransientFetchFailure(AufCrawlerError):
    """Network error, timeout or non-2xx answer from a source site. Retryable."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        code = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"fetch failed for {url}{code}: {reason}")


class MalformedInput(AufCrawlerError):
    pass
