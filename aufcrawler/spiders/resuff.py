"""RESUFF (resuff.org) pages list complete entries, one page per kind."""
from aufcrawler.extractors import extract_resuff_members, extract_resuff_resources
from aufcrawler.items import MEMBER, RESOURCE
from aufcrawler.spiders.base import ListingSpider
from aufcrawler.utility import RESUFF_BASE


class ResuffSpider(ListingSpider):
    base_url = RESUFF_BASE
    allowed_domains = ["www.resuff.org"]
    paginated = False
    needs_detail = False
    path = None

    def __init__(self, url=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.url = url or f"{self.base_url}{self.path}"

    def page_url(self, page_number):
        return self.url


class ResuffMembersSpider(ResuffSpider):
    name = "resuff-members"
    kind = MEMBER
    path = "/membres.php"

    def extract(self, response):
        return extract_resuff_members(response)


class ResuffResourcesSpider(ResuffSpider):
    name = "resuff-resources"
    kind = RESOURCE
    path = "/ressources.php"

    def extract(self, response):
        return extract_resuff_resources(response, self.base_url)
