# Define your item pipelines here
#
# Don't forget to add your pipeline to the ITEM_PIPELINES setting
# See: https://docs.scrapy.org/en/latest/topics/item-pipeline.html
from pymongo.errors import PyMongoError
from scrapy.exceptions import DropItem

from aufcrawler.items import RecordItem, fill_defaults
from aufcrawler.utility import natural_key, utc_now


class MetadataPipeline:
    def process_item(self, item, spider):
        if not isinstance(item, RecordItem):
            raise DropItem(f"not a storable record: {type(item).__name__}")

        fill_defaults(item)
        if not item.get("natural_key"):
            item["natural_key"] = natural_key(item["kind"], item)
        if not item["natural_key"]:
            spider.crawler.stats.inc_value("store/dropped_no_key")
            raise DropItem(f"{item['kind']} record without identity")

        item["scraped_at"] = utc_now()
        return item


class StorePipeline:
    """Stages records per kind and writes them to the spider's store in batches.

    Whatever is staged when the spider closes is written then, whatever the
    close reason, so an interrupted run keeps its progress.
    """

    def __init__(self, batch_size: int):
        self.batch_size = batch_size
        self.staged = {}

    @classmethod
    def from_crawler(cls, crawler):
        return cls(crawler.settings.getint("STORE_BATCH_SIZE", 100))

    def open_spider(self, spider):
        self.staged = {}

    def close_spider(self, spider):
        for kind in list(self.staged):
            self.flush(kind, spider)

    def process_item(self, item, spider):
        batch = self.staged.setdefault(item["kind"], [])
        batch.append(item)
        if self.batch_size and len(batch) >= self.batch_size:
            self.flush(item["kind"], spider)
        return item

    def flush(self, kind, spider):
        batch = self.staged.pop(kind, [])
        if not batch:
            return
        coordinator = getattr(spider, "coordinator", None)
        try:
            inserted = spider.store.insert_batch(kind, batch)
        except PyMongoError as e:
            spider.crawler.stats.inc_value("store/write_failed", len(batch))
            if coordinator is None:
                raise
            coordinator.write_failed(len(batch), e)
            return
        spider.crawler.stats.inc_value("store/inserted", len(inserted))
        spider.crawler.stats.inc_value("store/already_stored", len(batch) - len(inserted))
        if coordinator is not None:
            coordinator.record_inserted(inserted, len(batch))
