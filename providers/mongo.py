# providers/mongo.py
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument

import config
from providers.store import StoreProvider

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}


class MongoProvider(StoreProvider):
    def __init__(self, uri: str = None, db_name: str = None, client=None, **kwargs):
        super().__init__(**kwargs)
        self.client = client or AsyncIOMotorClient(uri or config.MONGODB_URI)
        self.db_name = db_name or config.MONGODB_DB
        self.db = self.client[self.db_name]

    async def init(self):
        for name in ("users", "classes", "subjects", "topics", "lessons", "assignments",
                     "submissions", "announcements", "questions"):
            await self.db[name].create_index("id", unique=True)
        await self.db.users.create_index("username", unique=True)
        # One submission per (assignment, student), one progress record per (student, lesson)
        await self.db.submissions.create_index([("assignmentId", 1), ("studentId", 1)], unique=True)
        await self.db.progress.create_index([("studentId", 1), ("lessonId", 1)], unique=True)
        logger.info(f"Indexes ready on database {self.db_name}")
        await super().init()

    async def _find(self, collection: str, query: dict) -> List[dict]:
        return await self.db[collection].find(query, NO_ID).to_list(None)

    async def _find_one(self, collection: str, query: dict) -> Optional[dict]:
        return await self.db[collection].find_one(query, NO_ID)

    async def _insert(self, collection: str, doc: dict) -> None:
        # insert_one adds _id to the dict it is given
        await self.db[collection].insert_one(dict(doc))

    async def _update(self, collection: str, query: dict, fields: dict) -> int:
        result = await self.db[collection].update_many(query, {"$set": fields})
        return result.matched_count

    async def _replace(self, collection: str, query: dict, doc: dict) -> int:
        result = await self.db[collection].replace_one(query, dict(doc))
        return result.matched_count

    async def _delete(self, collection: str, query: dict) -> int:
        result = await self.db[collection].delete_many(query)
        return result.deleted_count

    async def _increment(self, collection: str, query: dict, field: str, amount: int) -> None:
        if amount < 0:
            query = {**query, field: {"$gte": -amount}}
        await self.db[collection].update_one(query, {"$inc": {field: amount}})

    async def _upsert(self, collection: str, query: dict, fields: dict, on_insert: dict) -> dict:
        update = {"$set": fields}
        if on_insert:
            update["$setOnInsert"] = on_insert
        return await self.db[collection].find_one_and_update(
            query, update, projection=NO_ID, upsert=True, return_document=ReturnDocument.AFTER
        )
