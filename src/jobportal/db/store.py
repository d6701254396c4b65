from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobportal.db.models import Document


class DocumentNotFound(KeyError):
    pass


@dataclass(slots=True)
class StoredDocument:
    id: str
    data: dict[str, Any]


class DocumentStore:
    """Collection/document access on top of a SQLAlchemy session.

    Writes are flushed but not committed; callers group them into one
    transaction and commit.
    """

    def __init__(self, session: Session):
        self.session = session

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self.session.add(Document(collection=collection, id=doc_id, data=copy.deepcopy(data)))
        self.session.flush()
        return doc_id

    def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        row = self._row(collection, doc_id)
        if row is None:
            return None
        return StoredDocument(id=row.id, data=copy.deepcopy(row.data))

    def all(self, collection: str) -> list[StoredDocument]:
        statement = (
            select(Document)
            .where(Document.collection == collection)
            .order_by(Document.created_at, Document.id)
        )
        return [
            StoredDocument(id=row.id, data=copy.deepcopy(row.data))
            for row in self.session.scalars(statement).all()
        ]

    def where(self, collection: str, field: str, value: Any) -> list[StoredDocument]:
        # JSON path comparison differs per dialect; equality is checked in Python.
        return [doc for doc in self.all(collection) if doc.data.get(field) == value]

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> dict[str, Any]:
        row = self._row(collection, doc_id)
        if row is None:
            row = Document(collection=collection, id=doc_id, data=copy.deepcopy(data))
            self.session.add(row)
        elif merge:
            row.data = {**row.data, **copy.deepcopy(data)}
        else:
            row.data = copy.deepcopy(data)
        self.session.flush()
        return copy.deepcopy(row.data)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        row = self._row(collection, doc_id)
        if row is None:
            raise DocumentNotFound(f"{collection}/{doc_id}")
        row.data = {**row.data, **copy.deepcopy(fields)}
        self.session.flush()
        return copy.deepcopy(row.data)

    def compare_and_update(
        self,
        collection: str,
        doc_id: str,
        predicate: Callable[[dict[str, Any]], bool],
        fields: dict[str, Any],
    ) -> bool:
        """Apply ``fields`` only if ``predicate`` holds for the stored data."""
        row = self._row(collection, doc_id)
        if row is None or not predicate(copy.deepcopy(row.data)):
            return False
        row.data = {**row.data, **copy.deepcopy(fields)}
        self.session.flush()
        return True

    def _row(self, collection: str, doc_id: str) -> Document | None:
        return self.session.get(Document, (collection, doc_id))
