import logging
import os
from typing import Any, Dict, List, Optional

from bson import ObjectId
from itemadapter import ItemAdapter
from pymongo import ASCENDING, MongoClient, UpdateOne
from pymongo.errors import BulkWriteError

from aufcrawler.exceptions import MalformedInput
from aufcrawler.items import EVENT, KINDS, MEMBER, PARTNER, PROJECT, RESOURCE

logger = logging.getLogger(__name__)

COLLECTIONS = {
    PROJECT: "projects",
    MEMBER: "members",
    PARTNER: "partners",
    EVENT: "events",
    RESOURCE: "resources",
}

# field holding the human name of a record, used by name lookups
NAME_FIELDS = {
    PROJECT: "title",
    MEMBER: "name",
    PARTNER: "name",
    EVENT: "title",
    RESOURCE: "title",
}

# listing filters accepted per kind: option name -> document field
FILTER_FIELDS = {
    PROJECT: {"region": "country_of_intervention"},
    MEMBER: {"region": "region"},
    PARTNER: {},
    EVENT: {"city": "city", "event_type": "event_type"},
    RESOURCE: {"type": "type"},
}

DUPLICATE_KEY = 11000


def to_document(record) -> Dict[str, Any]:
    doc = ItemAdapter(record).asdict()
    doc.pop("_id", None)
    return doc


def clamp_paging(page_number, page_size):
    if page_number is None or page_number < 1:
        page_number = 1
    if page_size is None or page_size < 1 or page_size > 100:
        page_size = 10
    return page_number, page_size


class MongoStore:
    """One collection per kind; ``natural_key`` is unique in each."""

    def __init__(self, uri: str, db_name: str, client: Optional[MongoClient] = None):
        self.uri = uri
        self.db_name = db_name
        self.client = client
        self.db = None

    @classmethod
    def from_settings(cls, settings):
        uri = settings.get("MONGO_URI") or os.getenv("MONGO_URI", "mongodb://localhost:27017")
        db = settings.get("MONGO_DB") or os.getenv("MONGO_DB", "aufconnect")
        return cls(uri, db)

    @classmethod
    def from_env(cls):
        return cls(os.getenv("MONGO_URI", "mongodb://localhost:27017"), os.getenv("MONGO_DB", "aufconnect"))

    def open(self):
        if self.client is None:
            self.client = MongoClient(self.uri, serverSelectionTimeoutMS=6000)
        self.db = self.client[self.db_name]
        self.ensure_indexes()
        return self

    def close(self):
        if self.client:
            self.client.close()
        self.client = None
        self.db = None

    def collection(self, kind: str):
        if kind not in COLLECTIONS:
            raise MalformedInput(f"unknown kind {kind!r}; expected one of {', '.join(KINDS)}")
        if self.db is None:
            self.open()
        return self.db[COLLECTIONS[kind]]

    def ensure_indexes(self):
        for kind in KINDS:
            coll = self.db[COLLECTIONS[kind]]
            coll.create_index("natural_key", unique=True)
            coll.create_index([(NAME_FIELDS[kind], ASCENDING)])

    def exists(self, kind: str, key: str) -> bool:
        return self.collection(kind).count_documents({"natural_key": key}, limit=1) > 0

    def insert_batch(self, kind: str, records: List) -> List:
        """Insert records whose natural key is not stored yet. Returns those inserted.

        Writes are upserts that only set fields on insert, so a key stored
        meanwhile by another run is left untouched and reported as not inserted.
        """
        if not records:
            return []
        ops = []
        for record in records:
            doc = to_document(record)
            ops.append(UpdateOne({"natural_key": doc["natural_key"]}, {"$setOnInsert": doc}, upsert=True))

        try:
            result = self.collection(kind).bulk_write(ops, ordered=False)
            upserted = result.upserted_ids or {}
            indexes = sorted(upserted.keys())
        except BulkWriteError as e:
            others = [err for err in e.details.get("writeErrors", []) if err.get("code") != DUPLICATE_KEY]
            if others:
                raise
            indexes = sorted(u["index"] for u in e.details.get("upserted", []))

        inserted = [records[i] for i in indexes]
        logger.info("%s: stored %d of %d record(s)", kind, len(inserted), len(records))
        return inserted

    def count_all(self, kind: str) -> int:
        return self.collection(kind).count_documents({})

    def merge_sections(self, kind: str, key: str, sections: List[Dict[str, Any]]) -> int:
        """Append sections whose title the stored record does not have yet."""
        coll = self.collection(kind)
        doc = coll.find_one({"natural_key": key}, {"sections.title": 1}) or {}
        known = {s.get("title") for s in doc.get("sections") or []}
        fresh = []
        for section in sections:
            if section.get("title") and section["title"] not in known:
                known.add(section["title"])
                fresh.append(section)
        if fresh:
            coll.update_one({"natural_key": key}, {"$push": {"sections": {"$each": fresh}}})
        return len(fresh)

    def page(self, kind: str, page_number: int = 1, page_size: int = 10,
             filters: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
        page_number, page_size = clamp_paging(page_number, page_size)
        query: Dict[str, Any] = {}
        allowed = FILTER_FIELDS.get(kind, {})
        for option, values in (filters or {}).items():
            if not values:
                continue
            if option not in allowed:
                raise MalformedInput(f"{kind} listing cannot be filtered by {option!r}")
            query[allowed[option]] = {"$in": list(values)}

        coll = self.collection(kind)
        total = coll.count_documents(query)
        cursor = (coll.find(query)
                  .sort([(NAME_FIELDS[kind], ASCENDING), ("_id", ASCENDING)])
                  .skip((page_number - 1) * page_size)
                  .limit(page_size))
        return {
            "data": list(cursor),
            "page_number": page_number,
            "page_size": page_size,
            "total_count": total,
        }

    def get(self, kind: str, record_id: Optional[str] = None, name: Optional[str] = None):
        if not record_id and not name:
            raise MalformedInput("either an id or a name must be provided")
        if record_id:
            if not ObjectId.is_valid(record_id):
                raise MalformedInput(f"invalid id format {record_id!r}")
            return self.collection(kind).find_one({"_id": ObjectId(record_id)})
        return self.collection(kind).find_one({NAME_FIELDS[kind]: name})
