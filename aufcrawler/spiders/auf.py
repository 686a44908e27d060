from urllib.parse import urlencode

import scrapy

from aufcrawler.extractors import extract_previews
from aufcrawler.items import (
    ALLOCATION, EXPERTISE, FORMATION, INNOVATION, MEMBER, PARTNER, PROJECT,
    PROSPECTIVE, RESOURCE, RESOURCES, PartnerItem, ResourceItem, resource_section,
)
from aufcrawler.spiders.base import ListingSpider, fetch_failure
from aufcrawler.utility import absolutize, unique_preserve

RESOURCE_CATEGORY_PATHS = {
    FORMATION: "/ressources-et-services/formation/",
    RESOURCES: "/ressources-et-services/ressource/",
    EXPERTISE: "/ressources-et-services/expertise/",
    INNOVATION: "/ressources-et-services/innovation/",
    PROSPECTIVE: "/ressources-et-services/prospective/",
    ALLOCATION: "/ressources-et-services/bourses/",
}


def split_arg(value):
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def paged(base_url: str, path: str, page_number: int) -> str:
    # WordPress archive: /path/ then /path/page/N/
    if page_number <= 1:
        return f"{base_url}{path}"
    return f"{base_url}{path}page/{page_number}/"


class ProjectsSpider(ListingSpider):
    name = "projects"
    kind = PROJECT
    allowed_domains = ["www.auf.org"]

    def __init__(self, region=None, axe=None, statut=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.filters = {"region": split_arg(region), "axe": split_arg(axe), "statut": split_arg(statut)}

    def page_url(self, page_number):
        url = paged(self.base_url, "/nos-actions/", page_number)
        params = {}
        for name, values in self.filters.items():
            for i, value in enumerate(values):
                params[f"{name}[{i}]"] = value
        if params:
            url += "?" + urlencode(params)
        return url


class MembersSpider(ListingSpider):
    name = "members"
    kind = MEMBER
    allowed_domains = ["www.auf.org"]

    def page_url(self, page_number):
        return paged(self.base_url, "/les_membres/nos-membres/", page_number)


class PartnersSpider(ListingSpider):
    name = "partners"
    kind = PARTNER
    allowed_domains = ["www.auf.org"]
    paginated = False

    def page_url(self, page_number):
        return f"{self.base_url}/partenaires/nos-partenaires/"

    def build_record(self, preview, response):
        item = PartnerItem()
        item["name"] = preview["name"]
        item["logo_url"] = preview.get("image_url") or ""
        item["partner_url"] = absolutize(preview.get("link"), self.base_url)
        item["source_url"] = response.url
        return item


class ResourcesSpider(ListingSpider):
    """One container record per resource category, holding its cards as sections.

    Categories already stored get the sections they do not have yet.
    """

    name = "resources"
    kind = RESOURCE
    allowed_domains = ["www.auf.org"]
    needs_detail = False

    def __init__(self, types=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        wanted = split_arg(types)
        self.categories = {t: p for t, p in RESOURCE_CATEGORY_PATHS.items() if not wanted or t in wanted}
        self.pages = 0

    def start_requests(self):
        for resource_type, path in self.categories.items():
            url = f"{self.base_url}{path}"
            yield scrapy.Request(
                url,
                callback=self.parse_category,
                errback=self.on_category_error,
                cb_kwargs={"resource_type": resource_type, "category_url": url},
            )

    def parse_category(self, response, resource_type, category_url, **kwargs):
        self.pages += 1
        previews = extract_previews(response, RESOURCE)
        self.logger.info("Found %d %s resources at %s", len(previews), resource_type, response.url)
        if not previews:
            return

        titles = unique_preserve(p["title"] for p in previews)
        by_title = {}
        for p in previews:
            by_title.setdefault(p["title"], p)
        sections = [
            resource_section(
                title=p["title"],
                description=p["description"],
                image_url=p["image_url"],
                url=absolutize(p["link"], self.base_url),
            )
            for p in (by_title[t] for t in titles)
        ]

        container = ResourceItem()
        container["type"] = resource_type
        container["title"] = resource_type
        container["link"] = category_url
        container["sections"] = sections
        container["source_url"] = response.url

        claim = self.coordinator.claim(container)
        if claim is None:
            added = self.store.merge_sections(RESOURCE, category_url, sections)
            self.crawler.stats.inc_value("ingest/resource/sections_added", added)
            self.logger.info("%s: %d new section(s) added to stored category", resource_type, added)
            return
        yield self.coordinator.accept(container, claim)

    def on_category_error(self, failure):
        error = fetch_failure(failure)
        self.coordinator.abort(error)
        self.crawler.stats.inc_value("listing/resource/fetch_failed")

    def pages_fetched(self):
        return self.pages
