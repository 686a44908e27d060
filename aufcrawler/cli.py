import argparse
import json
import logging
import os
import sys

from pymongo.errors import PyMongoError
from scrapy.crawler import CrawlerProcess
from scrapy.utils.project import get_project_settings

from aufcrawler.exceptions import MalformedInput
from aufcrawler.items import EVENT, KINDS, MEMBER, PARTNER, PROJECT, RESOURCE
from aufcrawler.spiders.auf import MembersSpider, PartnersSpider, ProjectsSpider, ResourcesSpider
from aufcrawler.spiders.francophonie import EventsSpider
from aufcrawler.spiders.resuff import ResuffMembersSpider, ResuffResourcesSpider
from aufcrawler.store import MongoStore

logger = logging.getLogger("aufcrawler")

SPIDERS = {
    PROJECT: ProjectsSpider,
    MEMBER: MembersSpider,
    PARTNER: PartnersSpider,
    EVENT: EventsSpider,
    RESOURCE: ResourcesSpider,
    ResuffMembersSpider.name: ResuffMembersSpider,
    ResuffResourcesSpider.name: ResuffResourcesSpider,
}


def spider_args(pairs):
    out = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise MalformedInput(f"spider argument {pair!r} is not NAME=VALUE")
        out[name] = value
    return out


def dump(obj):
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def run_scrape(args):
    settings = get_project_settings()
    if args.max_pages:
        settings.set("MAX_PAGES", args.max_pages, priority="cmdline")

    process = CrawlerProcess(settings, install_root_handler=False)
    crawler = process.create_crawler(SPIDERS[args.kind])
    process.crawl(crawler, **spider_args(args.arg))
    process.start()

    report = getattr(crawler.spider, "report", None)
    if report is None:
        logger.error("%s: spider produced no report", args.kind)
        return 1
    dump(report.to_dict())
    return 0 if report.ok else 1


def listing_filters(args):
    filters = {}
    for option in ("region", "city", "event_type", "type"):
        values = getattr(args, option)
        if values:
            filters[option] = values
    return filters


def run_list(args):
    store = MongoStore.from_env()
    try:
        dump(store.page(args.kind, args.page_number, args.page_size, listing_filters(args)))
    finally:
        store.close()
    return 0


def run_details(args):
    store = MongoStore.from_env()
    try:
        doc = store.get(args.kind, record_id=args.id, name=args.name)
    finally:
        store.close()
    if doc is None:
        logger.warning("%s not found: %s", args.kind, args.id or args.name)
        return 1
    dump(doc)
    return 0


def build_parser():
    ap = argparse.ArgumentParser(prog="aufcrawler", description="Scrape AUF sites into MongoDB and read them back.")
    sub = ap.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="run one spider and print its ingestion report")
    scrape.add_argument("kind", choices=sorted(SPIDERS))
    scrape.add_argument("--max-pages", type=int, help="listing pages to walk at most")
    scrape.add_argument("-a", "--arg", action="append", metavar="NAME=VALUE",
                        help="spider argument, e.g. region=Europe or types=Formation,Expertise")
    scrape.set_defaults(func=run_scrape)

    listing = sub.add_parser("list", help="one page of stored records")
    listing.add_argument("kind", choices=KINDS)
    listing.add_argument("--page-number", type=int, default=1)
    listing.add_argument("--page-size", type=int, default=10)
    listing.add_argument("--region", action="append")
    listing.add_argument("--city", action="append")
    listing.add_argument("--event-type", action="append")
    listing.add_argument("--type", action="append")
    listing.set_defaults(func=run_list)

    details = sub.add_parser("details", help="one stored record by id or name")
    details.add_argument("kind", choices=KINDS)
    which = details.add_mutually_exclusive_group(required=True)
    which.add_argument("--id")
    which.add_argument("--name")
    details.set_defaults(func=run_details)
    return ap


def main(argv=None):
    logging.basicConfig(
        level=os.getenv("AUFCRAWLER_LOGLEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(message)s"
    )
    args = build_parser().parse_args(argv)
    try:
        code = args.func(args)
    except MalformedInput as e:
        logger.error("%s", e)
        sys.exit(2)
    except PyMongoError as e:
        logger.error("Mongo request failed: %s", e)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
