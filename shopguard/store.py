"""
Shopguard in-memory document store.

Provides a MemoryStore keyed by collection and document id, usable as the
engine's lookup, and a Session that authorizes every operation of one
principal before applying it, the way the hosted store does.
"""

from __future__ import annotations

import copy
from typing import Optional

from . import engine
from .engine import Decision
from .principal import Principal
from .query import Condition
from .request import Operation, Request


def _check_key(method: str, collection: str, id: Optional[str] = None) -> None:
    if not collection or not isinstance(collection, str) or collection.strip() == "":
        raise ValueError(f"{method}(): collection must be a non-empty string")
    if id is not None and (not isinstance(id, str) or id.strip() == ""):
        raise ValueError(f"{method}(): id must be a non-empty string")


class MemoryStore:
    """In-memory document store backed by a dict of collections.

    All operations are synchronous. Documents are defensively copied
    on put and get to prevent external mutation.
    """

    def __init__(self, seed: Optional[dict[str, dict[str, dict]]] = None) -> None:
        self._data: dict[str, dict[str, dict]] = {}
        for collection, docs in (seed or {}).items():
            for id, doc in docs.items():
                self.put(collection, id, doc)

    def put(self, collection: str, id: str, doc: dict) -> None:
        """Store a document, replacing any existing one.

        Raises:
            ValueError: When collection or id is empty or doc is not a dict.
        """
        _check_key("put", collection, id or "")
        if not isinstance(doc, dict):
            raise ValueError("put(): doc must be a dict")
        self._data.setdefault(collection, {})[id] = copy.deepcopy(doc)

    def get(self, collection: str, id: str) -> Optional[dict]:
        """Retrieve a document, or None if it does not exist.

        Returns a defensive copy so callers cannot mutate the stored data.

        Raises:
            ValueError: When collection or id is empty.
        """
        _check_key("get", collection, id or "")
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    def delete(self, collection: str, id: str) -> bool:
        """Delete a document. Returns True if it existed."""
        _check_key("delete", collection, id or "")
        docs = self._data.get(collection, {})
        if id in docs:
            del docs[id]
            return True
        return False

    def list(self, collection: str) -> list[dict]:
        _check_key("list", collection)
        return [copy.deepcopy(doc) for doc in self._data.get(collection, {}).values()]

    def has(self, collection: str, id: str) -> bool:
        return id in self._data.get(collection, {})

    def count(self, collection: Optional[str] = None) -> int:
        """Count documents in one collection, or in all of them."""
        if collection is not None:
            return len(self._data.get(collection, {}))
        return sum(len(docs) for docs in self._data.values())

    def session(self, uid: Optional[str]) -> "Session":
        """Open a session acting as uid (None for an unauthenticated client)."""
        return Session(self, Principal(uid))


class Session:
    """Store operations on behalf of one principal.

    Every call is authorized by the engine first; writes and deletes are
    only applied when the decision is ALLOW. Reads return the decision,
    not the data.
    """

    def __init__(self, store: MemoryStore, principal: Principal) -> None:
        self.store = store
        self.principal = principal
        self.last_result: Optional[engine.EvaluationResult] = None

    def _run(self, req: Request) -> Decision:
        self.last_result = engine.evaluate(req, self.store)
        return self.last_result.decision

    def get(self, collection: str, id: str) -> Decision:
        return self._run(Request(
            self.principal, Operation.GET, collection, id,
            prior=self.store.get(collection, id),
        ))

    def list(self, collection: str, where: Optional[list[Condition]] = None) -> Decision:
        return self._run(Request(
            self.principal, Operation.LIST, collection, query=where,
        ))

    def set(self, collection: str, id: str, data: dict, merge: bool = False) -> Decision:
        """Create or update a document, as set(data, {merge}) does."""
        prior = self.store.get(collection, id)
        req = Request(
            self.principal, Operation.WRITE, collection, id,
            prior=prior, data=data, merge=merge,
        )
        decision = self._run(req)
        if decision is Decision.ALLOW:
            self.store.put(collection, id, req.proposed)
        return decision

    def delete(self, collection: str, id: str) -> Decision:
        decision = self._run(Request(
            self.principal, Operation.DELETE, collection, id,
            prior=self.store.get(collection, id),
        ))
        if decision is Decision.ALLOW:
            self.store.delete(collection, id)
        return decision
