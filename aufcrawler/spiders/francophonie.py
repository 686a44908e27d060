from aufcrawler.items import EVENT
from aufcrawler.spiders.base import ListingSpider
from aufcrawler.utility import FRANCOPHONIE_BASE

EVENT_FILTERS = "pays=All&event=All&eventart=All&pers=All&inst=All&parten=All&uhs=All"


class EventsSpider(ListingSpider):
    name = "events"
    kind = EVENT
    base_url = FRANCOPHONIE_BASE
    allowed_domains = ["www.francophonie.org"]

    def page_url(self, page_number):
        url = f"{self.base_url}/actualites-medias?type=page_evenement"
        if page_number <= 1:
            return url
        # the site numbers its pages from 0
        return f"{url}&{EVENT_FILTERS}&page={page_number - 1}"

    def complete(self, record, preview):
        # the detail page has no location, the card does
        if not record.get("city"):
            record["city"] = preview.get("city") or ""
        if not record.get("date"):
            record["date"] = preview.get("date") or ""
        return record
