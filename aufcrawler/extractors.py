"""Listing-page extraction.

Every listing template repeats one "card" per entity. ``FRAGMENT_SPECS``
describes, per kind, the XPath that finds the cards, the field that must be
present for a card to count, and how each field is read inside one card.
``extract_previews`` walks the cards with a single routine; a card that is
missing its mandatory field, or that blows up while being read, is dropped
without affecting its neighbours.
"""
import logging
import re
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from scrapy import Selector

from aufcrawler.items import (
    EVENT, EXPERTISE, FORMATION, INNOVATION, MEMBER, PARTNER, PREVIEW_ITEMS,
    PROJECT, RESOURCE, RESOURCES, MemberItem, ResourceItem, fill_defaults,
)
from aufcrawler.utility import (
    RESUFF_BASE, absolutize, clean_text, strip_region, truncate,
)

logger = logging.getLogger(__name__)


def as_selector(document):
    if isinstance(document, (str, bytes)):
        if isinstance(document, bytes):
            document = document.decode("utf-8", errors="replace")
        return Selector(text=document)
    return document


def node_text(node):
    if node is None:
        return ""
    return clean_text(" ".join(node.xpath(".//text()").getall()))


def text_of(xpath):
    def read(fragment):
        nodes = fragment.xpath(xpath)
        return node_text(nodes[0]) if nodes else ""
    return read


def last_text_of(xpath):
    def read(fragment):
        nodes = fragment.xpath(xpath)
        return node_text(nodes[-1]) if nodes else ""
    return read


def attr_of(xpath):
    def read(fragment):
        return (fragment.xpath(xpath).get() or "").strip()
    return read


def joined_texts(xpath, sep=" "):
    def read(fragment):
        texts = [node_text(n) for n in fragment.xpath(xpath)]
        return sep.join(t for t in texts if t)
    return read


class FragmentSpec(NamedTuple):
    fragment: str
    mandatory: str
    fields: Dict[str, Tuple[Callable, Optional[Callable]]]


FRAGMENT_SPECS: Dict[str, FragmentSpec] = {
    PROJECT: FragmentSpec(
        fragment="//section[@class='section']//div[@class='teaser main-teaser has-thumb clearfix']",
        mandatory="title",
        fields={
            "title": (text_of(".//h3[@class='title']"), None),
            "link": (attr_of(".//a/@href"), None),
            "region": (text_of(".//div[@class='regions']//a[@class='lnk-region']"), strip_region),
            "description": (text_of(".//div[@class='text']"), None),
            "image_url": (attr_of(".//img/@src"), None),
        },
    ),
    MEMBER: FragmentSpec(
        fragment="//section[@class='section section-members']//div[@class='teaser member-teaser clearfix']",
        mandatory="name",
        fields={
            "name": (text_of(".//h3[@class='title']"), None),
            "link": (attr_of(".//a[@class='lnk-more']/@href"), None),
            "address": (text_of(".//span[@class='address']"), None),
            "region": (text_of(".//div[@class='regions']//a[@class='lnk-region']"), strip_region),
        },
    ),
    PARTNER: FragmentSpec(
        fragment="//div[@class='entry-content clearfix']//div[contains(@class,'wp-caption')]",
        mandatory="name",
        fields={
            "name": (text_of(".//p[@class='wp-caption-text']"), None),
            "link": (attr_of(".//a/@href"), None),
            "image_url": (attr_of(".//img/@src"), None),
            "description": (attr_of(".//img/@alt"), clean_text),
        },
    ),
    RESOURCE: FragmentSpec(
        fragment="//section[@class='section section-default']//div[@class='entry-content clearfix']",
        mandatory="title",
        fields={
            "title": (text_of(".//h2"), None),
            "description": (joined_texts(".//p"), truncate),
            "link": (attr_of(".//a/@href"), None),
            "image_url": (attr_of(".//img/@src"), None),
        },
    ),
    EVENT: FragmentSpec(
        fragment="//div[@id='lightgallery']//div[contains(@class,'portfolio-item')]",
        mandatory="title",
        fields={
            "title": (text_of(".//h1[@class='Libre-bold text-white pt-2']"), None),
            "date": (text_of(".//span[contains(text(),'du ') or contains(text(),'le ')]"), None),
            "city": (last_text_of(".//p[img[contains(@src,'map-marker')]]/span"), None),
            "link": (attr_of(".//a/@href"), None),
        },
    ),
}


def extract_fragment(fragment, kind: str, spec: FragmentSpec):
    values = {}
    for name, (read, cleanup) in spec.fields.items():
        try:
            value = read(fragment)
            if cleanup is not None:
                value = cleanup(value)
        except Exception as e:
            logger.debug("%s card: field %r unreadable (%s)", kind, name, e)
            value = ""
        values[name] = value or ""

    if not values.get(spec.mandatory):
        return None

    item = PREVIEW_ITEMS[kind]()
    item["kind"] = kind
    for name, value in values.items():
        item[name] = value
    return fill_defaults(item)


def extract_previews(document, kind: str) -> List:
    spec = FRAGMENT_SPECS.get(kind)
    if spec is None:
        raise ValueError(f"no listing template for kind {kind!r}")

    sel = as_selector(document)
    previews = []
    dropped = 0
    for fragment in sel.xpath(spec.fragment):
        try:
            item = extract_fragment(fragment, kind, spec)
        except Exception as e:
            logger.debug("%s card skipped: %s", kind, e)
            item = None
        if item is None:
            dropped += 1
            continue
        previews.append(item)

    if dropped:
        logger.debug("%s listing: kept %d cards, dropped %d without %s",
                     kind, len(previews), dropped, spec.mandatory)
    return previews


# --- RESUFF (resuff.org): one page per kind, entries are complete records ---

RESUFF_ROLES = re.compile(
    r"(Présidente du RESUFF|Vice-Présidente du RESUFF|Secrétaire du RESUFF|Trésorière du RESUFF"
    r"|Membre du Comité scientifique du RESUFF|Présidente du Comité scientifique du RESUFF)"
)
INSTITUTION = re.compile(r"((?:Université|École|Institut|Centre)[^,]*)", re.IGNORECASE)
_BLOCK_SPLIT = re.compile(r"(?:&nbsp;|\xa0)\s*<br\s*/?>", re.IGNORECASE)
_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)


def parse_resuff_member_block(block: str, region: str):
    if not block or not block.strip():
        return None
    sel = Selector(text=_BR.sub("\n", block))

    names = sel.xpath("//strong[@class='violet']")
    full_name = node_text(names[0]) if names else ""
    if not full_name:
        return None

    raw = "".join(sel.xpath("//body//text()").getall())
    lines = [clean_text(line) for line in raw.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return None

    role_match = RESUFF_ROLES.search(clean_text(raw))
    special_role = role_match.group(1) if role_match else ""

    description_lines = lines[1:]
    if special_role:
        short_role = special_role.replace("du RESUFF", "").strip()
        description_lines = [line for line in description_lines if short_role not in line]
    description = " ".join(description_lines)
    contact_title = description_lines[0] if description_lines else ""

    inst = INSTITUTION.search(description)
    institution = inst.group(1).strip() if inst else ""

    item = MemberItem()
    item["name"] = full_name
    item["description"] = truncate(description)
    item["background"] = f"RESUFF Role: {special_role}" if special_role else ""
    item["contact_name"] = full_name
    item["contact_title"] = truncate(contact_title, 200)
    item["statutory_type"] = "RESUFF Leadership" if special_role else ""
    item["university_type"] = "Academic Institution" if institution else ""
    item["address"] = truncate(institution, 200)
    item["region"] = region
    return fill_defaults(item)


def extract_resuff_members(document) -> List:
    sel = as_selector(document)
    members = []
    for group in sel.xpath("//div[@class='groupeCarte']"):
        region = text_of(".//h3")(group)
        text_block = group.xpath(".//div[@class='txtDouble']")
        if not text_block:
            continue
        for block in _BLOCK_SPLIT.split(text_block[0].get()):
            try:
                member = parse_resuff_member_block(block, region)
            except Exception as e:
                logger.debug("resuff member block skipped: %s", e)
                continue
            if member is not None:
                members.append(member)
    return members


def determine_resource_type(label: str, title: str):
    low_label = (label or "").lower()
    low_title = (title or "").lower()
    if "colloque" in low_label or "atelier" in low_label:
        return FORMATION
    if "bio" in low_label:
        return EXPERTISE
    if "publication" in low_label:
        return RESOURCES
    if "synthèse" in low_title:
        return FORMATION
    if "programme" in low_title:
        return INNOVATION
    return RESOURCES


def extract_resuff_resources(document, base_url: str = RESUFF_BASE) -> List:
    sel = as_selector(document)
    resources = []
    for node in sel.xpath("//div[@class='ligneDoc']"):
        try:
            txt = node.xpath(".//div[@class='txtDoc']")
            if not txt:
                continue
            label = text_of(".//span[@class='violet']")(txt[0])
            title = text_of(".//span[@class='moyen']")(txt[0])
            if not label or not title:
                continue
            link = absolutize(attr_of(".//a/@href")(node), base_url)
        except Exception as e:
            logger.debug("resuff resource skipped: %s", e)
            continue

        item = ResourceItem()
        item["type"] = determine_resource_type(label, title)
        item["title"] = title
        item["description"] = label
        item["link"] = link
        resources.append(fill_defaults(item))
    return resources
