# Define here the models for your scraped items
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/items.html

import scrapy

PROJECT = "project"
MEMBER = "member"
PARTNER = "partner"
EVENT = "event"
RESOURCE = "resource"

KINDS = (PROJECT, MEMBER, PARTNER, EVENT, RESOURCE)

# Resource categories, as published under auf.org/ressources-et-services/
FORMATION = "Formation"
RESOURCES = "Resources"
EXPERTISE = "Expertise"
INNOVATION = "Innovation"
PROSPECTIVE = "Prospective"
ALLOCATION = "Allocation"

RESOURCE_TYPES = (FORMATION, RESOURCES, EXPERTISE, INNOVATION, PROSPECTIVE, ALLOCATION)


def fill_defaults(item):
    """Set every declared but unset field to its empty default ("" or [])."""
    for name, meta in item.fields.items():
        if name in item and item[name] is not None:
            continue
        default = meta.get("default", "")
        item[name] = default() if callable(default) else default
    return item


class RecordItem(scrapy.Item):
    # Set on every persisted record by the spider / pipelines
    natural_key = scrapy.Field()       # identity used for dedupe (see utility.natural_key)
    source_url = scrapy.Field()        # detail page (or listing page) the record came from
    scraped_at = scrapy.Field()


# --- Listing-page previews (never stored) ---

class ProjectPreviewItem(scrapy.Item):
    kind = scrapy.Field(default=PROJECT)
    title = scrapy.Field()
    description = scrapy.Field()
    region = scrapy.Field()            # "+" markers stripped
    link = scrapy.Field()              # as found in the card, may be relative
    image_url = scrapy.Field()


class MemberPreviewItem(scrapy.Item):
    kind = scrapy.Field(default=MEMBER)
    name = scrapy.Field()
    address = scrapy.Field()
    region = scrapy.Field()
    link = scrapy.Field()


class PartnerPreviewItem(scrapy.Item):
    kind = scrapy.Field(default=PARTNER)
    name = scrapy.Field()
    link = scrapy.Field()
    image_url = scrapy.Field()
    description = scrapy.Field()       # logo alt text


class EventPreviewItem(scrapy.Item):
    kind = scrapy.Field(default=EVENT)
    title = scrapy.Field()
    date = scrapy.Field()              # raw, e.g. "du 12 au 14 mars 2025"
    city = scrapy.Field()
    link = scrapy.Field()


class ResourcePreviewItem(scrapy.Item):
    kind = scrapy.Field(default=RESOURCE)
    title = scrapy.Field()
    description = scrapy.Field()       # paragraphs joined, truncated to 500
    link = scrapy.Field()
    image_url = scrapy.Field()


# --- Detail records (stored) ---

class ProjectItem(RecordItem):
    kind = scrapy.Field(default=PROJECT)
    title = scrapy.Field()
    image_url = scrapy.Field()
    objectives = scrapy.Field()
    target_audience = scrapy.Field()
    overall_budget = scrapy.Field()
    country_of_intervention = scrapy.Field()
    period = scrapy.Field()
    operational_partners = scrapy.Field(default=list)
    role_of_auf = scrapy.Field(default=list)
    projects_2024_2025 = scrapy.Field()
    projects_2023_2024 = scrapy.Field()
    projects_2021_2022 = scrapy.Field()
    device = scrapy.Field()


class MemberItem(RecordItem):
    kind = scrapy.Field(default=MEMBER)
    name = scrapy.Field()
    description = scrapy.Field()
    background = scrapy.Field()        # history paragraph
    contact_name = scrapy.Field()
    contact_title = scrapy.Field()
    statutory_type = scrapy.Field()    # "Type statutaire : ..."
    university_type = scrapy.Field()   # "Type universitaire : ..."
    address = scrapy.Field()
    phone = scrapy.Field()
    website = scrapy.Field()
    region = scrapy.Field()
    founded_year = scrapy.Field()


class PartnerItem(RecordItem):
    kind = scrapy.Field(default=PARTNER)
    name = scrapy.Field()
    logo_url = scrapy.Field()
    partner_url = scrapy.Field()


class EventItem(RecordItem):
    kind = scrapy.Field(default=EVENT)
    title = scrapy.Field()
    description = scrapy.Field()
    image_url = scrapy.Field()
    video_url = scrapy.Field()         # YouTube link from the hero/carousel only
    date = scrapy.Field()
    city = scrapy.Field()
    event_type = scrapy.Field()
    theme = scrapy.Field()
    hashtags = scrapy.Field()
    sections = scrapy.Field(default=list)   # [{'title', 'description', 'link_url', 'link_text'}]


class ResourceItem(RecordItem):
    kind = scrapy.Field(default=RESOURCE)
    type = scrapy.Field(default=RESOURCES)
    title = scrapy.Field()
    link = scrapy.Field()              # absolute; natural key
    description = scrapy.Field()
    image_url = scrapy.Field()
    sections = scrapy.Field(default=list)   # [{'title', 'description', 'image_url', 'url'}]


PREVIEW_ITEMS = {
    PROJECT: ProjectPreviewItem,
    MEMBER: MemberPreviewItem,
    PARTNER: PartnerPreviewItem,
    EVENT: EventPreviewItem,
    RESOURCE: ResourcePreviewItem,
}

DETAIL_ITEMS = {
    PROJECT: ProjectItem,
    MEMBER: MemberItem,
    PARTNER: PartnerItem,
    EVENT: EventItem,
    RESOURCE: ResourceItem,
}


def event_section(title="", description="", link_url="", link_text=""):
    return {"title": title, "description": description, "link_url": link_url, "link_text": link_text}


def resource_section(title="", description="", image_url="", url=""):
    return {"title": title, "description": description, "image_url": image_url, "url": url}
