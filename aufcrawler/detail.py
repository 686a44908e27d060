"""Detail-page parsing for projects, members and events.

Pages are parsed with BeautifulSoup/lxml, which never rejects broken markup.
A page without its title heading is not the template we expect: the parser
raises TemplateMismatch, ``parse_detail`` returns ``None`` and the caller
counts it as skipped. Every other field falls
back independently, ending on an empty value.

Project pages are loosely structured prose. Most of their fields hang off a
"marker" paragraph (``OBJECTIFS``, ``CIBLE``, ``PARTENAIRES``...) followed,
some siblings later, by a list. Each field has its own reader below because
each has its own fallback.
"""
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString
from bs4.element import Tag

from aufcrawler.exceptions import TemplateMismatch
from aufcrawler.items import EVENT, MEMBER, PROJECT, EventItem, MemberItem, ProjectItem, event_section, fill_defaults
from aufcrawler.utility import FRANCOPHONIE_BASE, absolutize, clean_text, strip_region, truncate, unique_preserve

logger = logging.getLogger(__name__)

# Section headings used on auf.org project pages
OBJECTIVES = "OBJECTIFS"
IMPACT = "IMPACT"
TARGET = "CIBLE"
PARTNERS = "PARTENAIRES"
BUDGET = "BUDGET"
BUDGET_TOTAL = "BUDGET GLOBAL"
ROLE = ("RÔLE DE L", "AUF")
DURATION = "Durée"

SECTION_MARKERS = (OBJECTIVES, IMPACT, TARGET, PARTNERS, BUDGET, "RÔLE DE L")

DEFAULT_TARGET_AUDIENCE = "Établissements d'enseignement supérieur et étudiants"
DEFAULT_AUF_ROLE = "Coordination et mise en œuvre"

_FOUNDED = re.compile(r"Fondée en (\d{4})|fonde en (\d{4})", re.IGNORECASE)
_STATUTORY = re.compile(r"Type statutaire\s*:\s*([^\r\n]+)")
_UNIVERSITY = re.compile(r"Type universitaire\s*:\s*([^\r\n]+)")
_BACKGROUND_URL = re.compile(r"background-image:\s*url\(['\"]?([^'\")]+)['\"]?\)")


def make_soup(document):
    if isinstance(document, BeautifulSoup):
        return document
    if isinstance(document, bytes):
        document = document.decode("utf-8", errors="replace")
    return BeautifulSoup(document or "", "lxml")


def text(tag) -> str:
    if tag is None:
        return ""
    return clean_text(tag.get_text(" "))


def find_exact(root, name: str, classes: List[str]):
    """First ``name`` element whose class list is exactly ``classes``."""
    if root is None:
        return None
    return root.find(lambda t: t.name == name and t.get("class") == classes)


def find_all_exact(root, name: str, classes: List[str]):
    if root is None:
        return []
    return root.find_all(lambda t: t.name == name and t.get("class") == classes)


def is_marker(tag: Tag, *words: str) -> bool:
    if tag is None or tag.name != "p":
        return False
    content = tag.get_text(" ")
    return all(w in content for w in words)


def find_marker(content, *words: str):
    if content is None:
        return None
    for p in content.find_all("p"):
        if is_marker(p, *words):
            return p
    return None


def next_tag(node):
    for sib in node.next_siblings:
        if isinstance(sib, Tag):
            return sib
    return None


def own_text(li: Tag) -> str:
    parts = []
    for child in li.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, Tag):
            if child.name in ("ul", "ol"):
                continue
            parts.append(child.get_text(" "))
        elif isinstance(child, NavigableString):
            parts.append(str(child))
    return clean_text(" ".join(parts))


def list_items(lst: Tag) -> List[str]:
    """Items of a list, with one level of nested lists flattened in order."""
    out = []
    for li in lst.find_all("li", recursive=False):
        out.append(own_text(li))
        for sub in li.find_all(["ul", "ol"], recursive=False):
            for nested in sub.find_all("li", recursive=False):
                out.append(text(nested))
    return [item for item in out if item]


def list_after(marker: Tag) -> Optional[List[str]]:
    """Items of the first list following ``marker``.

    None when another section heading comes first or no list follows.
    """
    for sib in marker.next_siblings:
        if not isinstance(sib, Tag):
            continue
        if sib.name in ("ul", "ol"):
            return list_items(sib)
        if sib.name == "p" and any(is_marker(sib, m) for m in SECTION_MARKERS):
            return None
    return None


# --- project fields ---

def project_objectives(content) -> str:
    if content is None:
        return ""
    marker = find_marker(content, OBJECTIVES)
    if marker is not None:
        return truncate("; ".join(list_after(marker) or []))

    paragraphs = [p for p in content.find_all("p")
                  if not is_marker(p, PARTNERS) and not is_marker(p, BUDGET)]
    texts = [text(p) for p in paragraphs[:2]]
    return truncate(" ".join(t for t in texts if t))


def project_target_audience(content) -> str:
    if content is None:
        return ""
    marker = find_marker(content, TARGET)
    if marker is None:
        return DEFAULT_TARGET_AUDIENCE
    return truncate("; ".join(list_after(marker) or []))


def project_budget(content) -> str:
    if content is None:
        return ""
    marker = find_marker(content, BUDGET_TOTAL)
    if marker is not None:
        amount = text(next_tag(marker))
        if amount:
            return amount

    all_text = text(content)
    euro = all_text.find("€")
    if euro > 0:
        start = max(0, euro - 20)
        return all_text[start:start + 40].strip()
    return ""


def project_period(content) -> str:
    if content is None:
        return ""
    for li in content.find_all("li"):
        value = text(li)
        if DURATION in value:
            return value.replace(DURATION, "").strip().lstrip(":").strip()
    return ""


def project_partners(content) -> List[str]:
    if content is None:
        return []
    marker = find_marker(content, PARTNERS)
    if marker is None:
        return []
    return unique_preserve(list_after(marker) or [])


def project_auf_role(content) -> List[str]:
    if content is None:
        return []
    marker = find_marker(content, *ROLE)
    if marker is not None:
        role = text(next_tag(marker))
        if role:
            return [role]
    return [DEFAULT_AUF_ROLE]


def region_tag(soup) -> str:
    return strip_region(text(soup.select_one("div.block.block-tags a.lnk-region")))


def parse_project(soup, url=None):
    title = text(soup.select_one("h1.entry-title"))
    if not title:
        raise TemplateMismatch(PROJECT, "title heading not found", url)

    image = soup.select_one("figure.image img")
    content = find_exact(soup, "div", ["entry-content"]) or soup.select_one("div.entry-content")

    item = ProjectItem()
    item["title"] = title
    item["image_url"] = (image.get("src") or "").strip() if image else ""
    item["objectives"] = project_objectives(content)
    item["target_audience"] = project_target_audience(content)
    item["overall_budget"] = project_budget(content)
    item["country_of_intervention"] = region_tag(soup)
    item["period"] = project_period(content)
    item["operational_partners"] = project_partners(content)
    item["role_of_auf"] = project_auf_role(content)
    return item


# --- members ---

def parse_member(soup, url=None):
    name = text(soup.select_one("h1.entry-title"))
    if not name:
        raise TemplateMismatch(MEMBER, "title heading not found", url)

    intro = find_exact(soup, "div", ["entry-content"])
    history = find_exact(soup, "div", ["entry-content", "entry-history"])
    background = text(history.find("p")) if history else ""

    item = MemberItem()
    item["name"] = name
    item["description"] = truncate(text(intro.find("p")) if intro else "")
    item["background"] = truncate(background)

    contacts = soup.select_one("div.block.block-contacts")
    if contacts is not None:
        names = contacts.select("div.name")
        if len(names) > 1:
            item["contact_name"] = text(names[1].find("strong"))
        item["contact_title"] = text(contacts.select_one("div.occupation"))

        status = contacts.select_one("div.status")
        if status is not None:
            status_text = status.get_text("\n")
            m = _STATUTORY.search(status_text)
            if m:
                item["statutory_type"] = clean_text(m.group(1))
            m = _UNIVERSITY.search(status_text)
            if m:
                item["university_type"] = clean_text(m.group(1))

        item["address"] = text(contacts.select_one("address.address"))
        item["phone"] = text(contacts.select_one("div.tel")).replace("Téléphone :", "").strip()
        website = contacts.select_one("div.website a")
        item["website"] = (website.get("href") or "").strip() if website else ""

    item["region"] = region_tag(soup)

    if background:
        m = _FOUNDED.search(background)
        if m:
            item["founded_year"] = m.group(1) or m.group(2)
    return item


# --- events (francophonie.org) ---

def event_video(soup) -> str:
    # hero first, then the carousel; the "see also" block links other events' videos
    for scope in ("section[class*='noneinner']", "section[class*='abo_franc']"):
        link = soup.select_one(f"{scope} a[data-fancybox][href*='youtube.com']")
        if link is not None:
            return (link.get("href") or "").strip()
    return ""


def event_image(soup, base_url) -> str:
    hero = soup.select_one("div.bg-cover.nwsbig")
    if hero is None:
        return ""
    m = _BACKGROUND_URL.search(hero.get("style") or "")
    if not m:
        return ""
    return absolutize(m.group(1), base_url)


def event_sections(soup, base_url):
    sections = []
    for node in find_all_exact(soup, "div", ["item"]):
        title = node.select_one("h6.Libre-bold")
        if title is None:
            continue
        link = node.select_one("a.btn.btn-outline-orange.rounded-50")
        sections.append(event_section(
            title=text(title),
            description=text(node.select_one("p.py-4")),
            link_url=absolutize(link.get("href"), base_url) if link is not None else "",
            link_text=text(link),
        ))
    return sections


def parse_event(soup, url=None, base_url=FRANCOPHONIE_BASE):
    title = text(soup.select_one("h2.Font-Montserrat span.field--name-title"))
    if not title:
        raise TemplateMismatch(EVENT, "title heading not found", url)

    date = event_type = ""
    parts = text(soup.select_one("span.date.text-green")).split("|")
    if parts and parts[0]:
        date = parts[0].replace("le ", "").strip()
    if len(parts) > 1:
        event_type = parts[1].strip()

    first = find_exact(soup, "div", ["item"])
    theme = truncate(text(first.find("p")) if first else "")

    item = EventItem()
    item["title"] = title
    item["date"] = date
    item["event_type"] = event_type
    item["image_url"] = event_image(soup, base_url)
    item["video_url"] = event_video(soup)
    item["theme"] = theme
    item["description"] = theme
    item["hashtags"] = text(soup.select_one(
        "div.field--name-field-hashtag-de-l-evenement div.field__item"))
    item["sections"] = event_sections(soup, base_url)
    return item


DETAIL_PARSERS = {
    PROJECT: parse_project,
    MEMBER: parse_member,
    EVENT: parse_event,
}


def parse_detail(document, kind: str, url: Optional[str] = None):
    parser = DETAIL_PARSERS.get(kind)
    if parser is None:
        raise ValueError(f"no detail template for kind {kind!r}")

    try:
        soup = make_soup(document)
    except Exception as e:
        logger.warning("%s detail %s: parse failed: %s", kind, url or "", e)
        return None

    try:
        item = parser(soup, url)
    except TemplateMismatch as e:
        logger.info("%s, skipping", e)
        return None
    if url:
        item["source_url"] = url
    return fill_defaults(item)
