"""
Path-addressed document store.

Every record lives at a slash-separated path such as ``exams/{examId}`` or
``exams/{examId}/results/{studentId}``. Two backends are provided:

- ``MongoDocumentStore``: first segment is the collection, second is the
  document ``_id``, remaining segments address nested fields.
- ``MemoryDocumentStore``: a nested dict held in process, used for local
  development and the test-suite.

Operations: point read, full-value write (``None`` removes), remove, push
(write under a generated key) and subscribe (current value, then a fresh
snapshot after every change under the path).
"""

import asyncio
import copy
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..utils import new_id

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = set(".$#[]")


def split_path(path: str) -> List[str]:
    """Split ``a/b/c`` into segments, rejecting empty or illegal keys."""
    segments = [seg for seg in (path or "").strip("/").split("/") if seg != ""]
    for seg in segments:
        if _FORBIDDEN_CHARS & set(seg):
            raise ValueError(f"Illegal character in path segment '{seg}'")
    return segments


def join_path(*parts: str) -> str:
    return "/".join(str(part).strip("/") for part in parts if str(part).strip("/"))


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, dict) and not value)


class DocumentStore:
    """Interface shared by all store backends."""

    async def read(self, path: str) -> Any:
        raise NotImplementedError

    async def write(self, path: str, value: Any) -> None:
        raise NotImplementedError

    async def remove(self, path: str) -> None:
        raise NotImplementedError

    def subscribe(self, path: str) -> AsyncIterator[Any]:
        raise NotImplementedError

    async def push(self, path: str, value: Any, prefix: str = "item") -> str:
        """Write ``value`` under a freshly generated child key and return the key."""
        key = new_id(prefix)
        await self.write(join_path(path, key), value)
        return key

    async def ping(self) -> None:
        """Check the backend is reachable."""

    def close(self) -> None:
        """Release backend resources."""


class MemoryDocumentStore(DocumentStore):
    """In-process tree store with change notification."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._listeners: List[Tuple[List[str], asyncio.Queue]] = []

    async def read(self, path: str) -> Any:
        node: Any = self._root
        for seg in split_path(path):
            if not isinstance(node, dict) or seg not in node:
                return None
            node = node[seg]
        if _is_empty(node):
            return None
        return copy.deepcopy(node)

    async def write(self, path: str, value: Any) -> None:
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot overwrite the store root")
        if _is_empty(value):
            await self.remove(path)
            return

        node = self._root
        for seg in segments[:-1]:
            child = node.get(seg)
            if not isinstance(child, dict):
                child = {}
                node[seg] = child
            node = child
        node[segments[-1]] = copy.deepcopy(value)
        self._notify(segments)

    async def remove(self, path: str) -> None:
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot remove the store root")

        trail = [self._root]
        node: Any = self._root
        for seg in segments[:-1]:
            if not isinstance(node, dict) or seg not in node:
                return
            node = node[seg]
            trail.append(node)
        if not isinstance(node, dict) or segments[-1] not in node:
            return
        del node[segments[-1]]

        # Drop parents left empty, matching the hosted store's behaviour
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            del trail[depth - 1][segments[depth - 1]]

        self._notify(segments)

    def _notify(self, segments: List[str]) -> None:
        for watched, queue in list(self._listeners):
            size = min(len(watched), len(segments))
            if watched[:size] == segments[:size]:
                queue.put_nowait(segments)

    async def subscribe(self, path: str) -> AsyncIterator[Any]:
        entry = (split_path(path), asyncio.Queue())
        self._listeners.append(entry)
        try:
            yield await self.read(path)
            while True:
                await entry[1].get()
                yield await self.read(path)
        finally:
            self._listeners.remove(entry)


class MongoDocumentStore(DocumentStore):
    """Document store backed by MongoDB through motor."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @classmethod
    def from_url(cls, url: str, database_name: str) -> "MongoDocumentStore":
        client = AsyncIOMotorClient(
            url,
            maxPoolSize=50,
            serverSelectionTimeoutMS=5000
        )
        return cls(client[database_name])

    async def ping(self) -> None:
        await self.db.client.server_info()

    def close(self) -> None:
        self.db.client.close()

    @staticmethod
    def _field(segments: List[str]) -> str:
        return ".".join(segments[2:])

    async def read(self, path: str) -> Any:
        segments = split_path(path)
        if not segments:
            raise ValueError("Root reads are not supported")
        collection = self.db[segments[0]]

        if len(segments) == 1:
            docs = await collection.find({}).to_list(None)
            return {doc.pop("_id"): doc for doc in docs} or None

        if len(segments) == 2:
            doc = await collection.find_one({"_id": segments[1]})
            if doc is None:
                return None
            doc.pop("_id", None)
            return doc

        doc = await collection.find_one(
            {"_id": segments[1]},
            {self._field(segments): 1}
        )
        node: Any = doc
        for seg in segments[2:]:
            if not isinstance(node, dict) or seg not in node:
                return None
            node = node[seg]
        return None if _is_empty(node) else node

    async def write(self, path: str, value: Any) -> None:
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot overwrite the store root")
        if _is_empty(value):
            await self.remove(path)
            return
        collection = self.db[segments[0]]

        if len(segments) == 1:
            if not isinstance(value, dict):
                raise ValueError("A collection must be written as a mapping of documents")
            await collection.delete_many({})
            docs = [{**doc, "_id": key} for key, doc in value.items()]
            if docs:
                await collection.insert_many(docs)
            return

        if len(segments) == 2:
            if not isinstance(value, dict):
                raise ValueError("Documents must be objects")
            doc = {k: v for k, v in value.items() if k != "_id"}
            doc["_id"] = segments[1]
            await collection.replace_one({"_id": segments[1]}, doc, upsert=True)
            return

        await collection.update_one(
            {"_id": segments[1]},
            {"$set": {self._field(segments): value}},
            upsert=True
        )

    async def remove(self, path: str) -> None:
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot remove the store root")
        collection = self.db[segments[0]]

        if len(segments) == 1:
            await collection.delete_many({})
        elif len(segments) == 2:
            await collection.delete_one({"_id": segments[1]})
        else:
            await collection.update_one(
                {"_id": segments[1]},
                {"$unset": {self._field(segments): ""}}
            )

    async def subscribe(self, path: str) -> AsyncIterator[Any]:
        # Change streams need MongoDB running as a replica set
        segments = split_path(path)
        if not segments:
            raise ValueError("Root subscriptions are not supported")
        pipeline = []
        if len(segments) >= 2:
            pipeline.append({"$match": {"documentKey._id": segments[1]}})

        async with self.db[segments[0]].watch(pipeline) as stream:
            yield await self.read(path)
            async for change in stream:
                logger.debug(f"Change on {path}: {change.get('operationType')}")
                yield await self.read(path)
