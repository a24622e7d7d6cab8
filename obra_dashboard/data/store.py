"""
Remote document store interface and an in-memory implementation.

The query service only relies on: range/equality filters, ordering by one
field, limit, a "start after" cursor, counting, and reading child
collections of a parent document.
"""
from __future__ import annotations

import asyncio
import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import structlog

from obra_dashboard.data.models import PageCursor

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Raised when the remote store cannot serve a query."""
    pass


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str  # "==", ">=", "<="
    value: Any


@dataclass
class DocumentSnapshot:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryRecord:
    """What was sent to the store (kept by the in-memory store for inspection)."""
    collection: str
    filters: Tuple[FieldFilter, ...]
    order_by: Optional[str] = None
    descending: bool = True
    limit: Optional[int] = None
    start_after: Optional[PageCursor] = None
    kind: str = "query"


class DocumentStore(Protocol):

    async def query(self,
                    collection: str,
                    filters: Sequence[FieldFilter],
                    order_by: str,
                    descending: bool = True,
                    limit: Optional[int] = None,
                    start_after: Optional[PageCursor] = None) -> List[DocumentSnapshot]: ...

    async def count(self, collection: str, filters: Sequence[FieldFilter]) -> int: ...

    async def children(self, collection: str, parent_id: str, child_collection: str) -> List[DocumentSnapshot]: ...


# Transport failures an adapter may surface instead of StoreError
ADAPTER_ERRORS = (OSError, asyncio.TimeoutError)


class GuardedStore:
    """
    Wraps any DocumentStore so transport failures surface as StoreError.

    The query service and the dashboard only handle StoreError.
    """

    def __init__(self, store: DocumentStore):
        self.inner = store

    async def _call(self, operation: str, awaitable):
        try:
            return await awaitable
        except StoreError:
            raise
        except ADAPTER_ERRORS as exc:
            logger.error("store_call_failed", operation=operation, error=repr(exc))
            raise StoreError(f"Document store {operation} failed: {exc!r}") from exc

    async def query(self,
                    collection: str,
                    filters: Sequence[FieldFilter],
                    order_by: str,
                    descending: bool = True,
                    limit: Optional[int] = None,
                    start_after: Optional[PageCursor] = None) -> List[DocumentSnapshot]:
        return await self._call("query", self.inner.query(
            collection, filters, order_by,
            descending=descending, limit=limit, start_after=start_after,
        ))

    async def count(self, collection: str, filters: Sequence[FieldFilter]) -> int:
        return await self._call("count", self.inner.count(collection, filters))

    async def children(self, collection: str, parent_id: str, child_collection: str) -> List[DocumentSnapshot]:
        return await self._call("children", self.inner.children(collection, parent_id, child_collection))


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

_OPS = {
    "==": lambda a, b: a == b,
    ">=": lambda a, b: a is not None and a >= b,
    "<=": lambda a, b: a is not None and a <= b,
}


class InMemoryDocumentStore:
    """
    Document store held in memory, loadable from a JSON export.

    Export layout::

        {"Reportes": [{"id": "r1", "data": {...},
                       "actividades": [{"id": "a1", "data": {...}}],
                       "mano_obra": [{"id": "w1", "data": {...}}]}]}

    Child lists keep their export order, which is the order activities are
    positionally matched with worker hours.
    """

    def __init__(self, latency: float = 0.0):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._children: Dict[Tuple[str, str, str], List[DocumentSnapshot]] = {}
        self.latency = latency
        self.query_log: List[QueryRecord] = []
        self.fail_with: Optional[Exception] = None

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryDocumentStore":
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not load store export {path}: {exc}") from exc
        store = cls()
        store.load_export(payload)
        logger.info("store_loaded", path=str(path), collections=list(payload.keys()))
        return store

    def load_export(self, payload: Dict[str, List[Dict[str, Any]]]) -> None:
        for collection, docs in payload.items():
            for doc in docs:
                doc_id = str(doc["id"])
                self.add(collection, doc_id, doc.get("data", {}))
                for key, value in doc.items():
                    if key in ("id", "data") or not isinstance(value, list):
                        continue
                    for child in value:
                        self.add_child(collection, doc_id, key, str(child["id"]), child.get("data", {}))

    def add(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._collections.setdefault(collection, {})[doc_id] = dict(data)

    def add_child(self, collection: str, parent_id: str, child_collection: str,
                  doc_id: str, data: Dict[str, Any]) -> None:
        key = (collection, parent_id, child_collection)
        self._children.setdefault(key, []).append(DocumentSnapshot(id=doc_id, data=dict(data)))

    def export(self) -> Dict[str, List[Dict[str, Any]]]:
        payload: Dict[str, List[Dict[str, Any]]] = {}
        for collection, docs in self._collections.items():
            rows = []
            for doc_id, data in docs.items():
                row: Dict[str, Any] = {"id": doc_id, "data": data}
                for (coll, parent, child), snaps in self._children.items():
                    if coll == collection and parent == doc_id:
                        row[child] = [{"id": s.id, "data": s.data} for s in snaps]
                rows.append(row)
            payload[collection] = rows
        return payload

    async def _round_trip(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        await asyncio.sleep(self.latency)

    def _matching(self, collection: str, filters: Sequence[FieldFilter]) -> List[DocumentSnapshot]:
        docs = self._collections.get(collection, {})
        result = []
        for doc_id, data in docs.items():
            if all(_OPS[f.op](data.get(f.field), f.value) for f in filters):
                result.append(DocumentSnapshot(id=doc_id, data=copy.deepcopy(data)))
        return result

    async def query(self,
                    collection: str,
                    filters: Sequence[FieldFilter],
                    order_by: str,
                    descending: bool = True,
                    limit: Optional[int] = None,
                    start_after: Optional[PageCursor] = None) -> List[DocumentSnapshot]:
        for f in filters:
            if f.op not in _OPS:
                raise StoreError(f"Unsupported operator: {f.op}")
        self.query_log.append(QueryRecord(
            collection=collection,
            filters=tuple(filters),
            order_by=order_by,
            descending=descending,
            limit=limit,
            start_after=start_after,
        ))
        await self._round_trip()

        def sort_key(snap: DocumentSnapshot):
            return (str(snap.data.get(order_by, "")), snap.id)

        docs = sorted(self._matching(collection, filters), key=sort_key, reverse=descending)

        if start_after is not None:
            cursor_key = (start_after.fecha, start_after.doc_id)
            if descending:
                docs = [d for d in docs if sort_key(d) < cursor_key]
            else:
                docs = [d for d in docs if sort_key(d) > cursor_key]

        if limit is not None:
            docs = docs[:limit]
        return docs

    async def count(self, collection: str, filters: Sequence[FieldFilter]) -> int:
        self.query_log.append(QueryRecord(collection=collection, filters=tuple(filters), kind="count"))
        await self._round_trip()
        return len(self._matching(collection, filters))

    async def children(self, collection: str, parent_id: str, child_collection: str) -> List[DocumentSnapshot]:
        await self._round_trip()
        snaps = self._children.get((collection, parent_id, child_collection), [])
        return [DocumentSnapshot(id=s.id, data=copy.deepcopy(s.data)) for s in snaps]
