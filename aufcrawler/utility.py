import re
import time
from typing import Optional
from urllib.parse import urlparse

from aufcrawler.items import EVENT, MEMBER, PARTNER, PROJECT, RESOURCE

AUF_BASE = "https://www.auf.org"
FRANCOPHONIE_BASE = "https://www.francophonie.org"
RESUFF_BASE = "https://www.resuff.org"

TRUNCATE_AT = 500
TRUNCATION_MARKER = "..."

_WS = re.compile(r"\s+")


def clean_text(raw: Optional[str]):
    if not raw:
        return ""
    return _WS.sub(" ", raw.replace("\xa0", " ")).strip()


def truncate(text: Optional[str], limit: int = TRUNCATE_AT, marker: str = TRUNCATION_MARKER):
    text = text or ""
    if len(text) > limit:
        return text[:limit] + marker
    return text


def strip_region(raw: Optional[str]):
    # tag links read like "+ Afrique de l'Ouest" or "AUF - Europe de l'Ouest"
    return clean_text((raw or "").replace("+", "").replace("AUF - ", ""))


def is_absolute(link: str):
    return urlparse(link).scheme in ("http", "https")


def absolutize(link: Optional[str], base_url: str):
    link = (link or "").strip()
    if not link or is_absolute(link):
        return link
    if link.startswith("//"):
        return "https:" + link
    base = base_url.rstrip("/")
    if link.startswith("/"):
        return base + link
    return f"{base}/{link}"


def natural_key(kind: str, record):
    """Identity used to dedupe records of one kind.

    Computed from the listing preview so that rerunning a scrape against an
    unchanged source reproduces the same keys. Empty when the mandatory part
    of the key is missing.
    """
    if kind == PROJECT:
        return clean_text(record.get("title"))
    if kind in (MEMBER, PARTNER):
        return clean_text(record.get("name"))
    if kind == EVENT:
        title = clean_text(record.get("title"))
        if not title:
            return ""
        # clean_text never leaves a newline, so the pair stays unambiguous
        return f"{title}\n{clean_text(record.get('date'))}"
    if kind == RESOURCE:
        return (record.get("link") or "").strip()
    raise ValueError(f"unknown kind {kind!r}")


def unique_preserve(seq):
    seen = set()
    out = []
    for x in seq:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def utc_now():
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
