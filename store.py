"""Entity store used by the timeline services.

A thin query/mutation layer over a SQLAlchemy session. Every row leaving the
store is parsed into its pydantic row schema, so malformed data is rejected
here rather than inside the aggregation code. Each write commits on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import Base
from models import Photo, RotaryYear, ServiceProject, Speaker
from schemas import PhotoRow, RotaryYearRow, ServiceProjectRow, SpeakerRow

logger = logging.getLogger(__name__)


class EntityStoreError(RuntimeError):
    pass


class RecordNotFound(EntityStoreError):
    pass


TABLES: dict[str, tuple[type[Base], type[BaseModel]]] = {
    "rotary_years": (RotaryYear, RotaryYearRow),
    "service_projects": (ServiceProject, ServiceProjectRow),
    "speakers": (Speaker, SpeakerRow),
    "photos": (Photo, PhotoRow),
}


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    def clause(self, column):
        if self.value is None:
            return column.is_(None)
        return column == self.value


@dataclass(frozen=True)
class Between:
    field: str
    start: Any
    end: Any

    def clause(self, column):
        return column.between(self.start, self.end)


@dataclass(frozen=True)
class In:
    field: str
    values: Sequence[Any]

    def clause(self, column):
        return column.in_(list(self.values))


Predicate = Eq | Between | In


class EntityStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _table(self, table: str) -> tuple[type[Base], type[BaseModel]]:
        try:
            return TABLES[table]
        except KeyError:
            raise EntityStoreError(f"Unknown table: {table}") from None

    @staticmethod
    def _column(model: type[Base], field: str):
        if field not in model.__table__.columns:
            raise EntityStoreError(f"Unknown column {model.__tablename__}.{field}")
        return getattr(model, field)

    @staticmethod
    def _to_row(schema: type[BaseModel], obj: Any) -> BaseModel:
        try:
            return schema.model_validate(obj)
        except ValidationError as exc:
            raise EntityStoreError(
                f"Malformed {obj.__tablename__} row id={getattr(obj, 'id', None)}"
            ) from exc

    def fetch_one(self, table: str, record_id: int) -> BaseModel:
        model, schema = self._table(table)
        try:
            obj = self.session.get(model, record_id)
        except SQLAlchemyError as exc:
            raise EntityStoreError(f"Failed to fetch {table} id={record_id}") from exc
        if obj is None:
            raise RecordNotFound(f"{table} id={record_id} not found")
        return self._to_row(schema, obj)

    def fetch_many(
        self,
        table: str,
        *predicates: Predicate,
        order_by: Optional[Iterable[str]] = None,
    ) -> list[BaseModel]:
        model, schema = self._table(table)
        stmt = select(model)
        for predicate in predicates:
            stmt = stmt.where(predicate.clause(self._column(model, predicate.field)))
        for field in order_by or ():
            descending = field.startswith("-")
            column = self._column(model, field.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column)
        stmt = stmt.order_by(model.id)
        try:
            objs = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise EntityStoreError(f"Failed to query {table}") from exc
        return [self._to_row(schema, obj) for obj in objs]

    def update(self, table: str, record_id: int, values: dict[str, Any]) -> BaseModel:
        model, schema = self._table(table)
        for field in values:
            self._column(model, field)
        try:
            obj = self.session.get(model, record_id)
            if obj is None:
                raise RecordNotFound(f"{table} id={record_id} not found")
            for field, value in values.items():
                setattr(obj, field, value)
            self.session.commit()
            self.session.refresh(obj)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise EntityStoreError(f"Failed to update {table} id={record_id}") from exc
        return self._to_row(schema, obj)

    def insert(self, table: str, values: dict[str, Any]) -> BaseModel:
        model, schema = self._table(table)
        for field in values:
            self._column(model, field)
        try:
            obj = model(**values)
            self.session.add(obj)
            self.session.commit()
            self.session.refresh(obj)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise EntityStoreError(f"Failed to insert into {table}") from exc
        logger.debug(f"store_insert: table={table} id={obj.id}")
        return self._to_row(schema, obj)
