"""
Shared async data access for one ORM model.
Domain CRUD classes extend CRUDBase with their own queries; list helpers
return ``(rows, total)`` so every paginated endpoint counts the same way.
"""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Type parameters:
        ModelType: The SQLAlchemy ORM model class; must have an ``id`` column.
        CreateSchemaType: Pydantic schema accepted by ``create``.
        UpdateSchemaType: Pydantic schema accepted by ``update``.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    async def get(
        self,
        db: AsyncSession,
        id: uuid.UUID,
        *,
        for_update: bool = False,
        refresh: bool = False,
    ) -> ModelType | None:
        """
        Fetch one row by primary key.
        ``refresh`` overwrites an already loaded instance with database state;
        ``for_update`` keeps the row locked until the transaction ends.
        """
        query = select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        if refresh:
            query = query.execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, **filters: Any) -> bool:
        """True if any row matches the keyword equality filters."""
        query = select(self.model.id).filter_by(**filters).limit(1)  # type: ignore[attr-defined]
        result = await db.execute(query)
        return result.first() is not None

    async def paginate(
        self,
        db: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any],
        skip: int = 0,
        limit: int = 50,
        refresh: bool = False,
    ) -> tuple[list[ModelType], int]:
        """One page of rows matching every condition, plus the unpaged total."""
        count_result = await db.execute(
            select(func.count()).select_from(self.model).where(*conditions)
        )
        total = count_result.scalar_one()

        query = (
            select(self.model)
            .where(*conditions)
            .order_by(*order_by)
            .offset(skip)
            .limit(limit)
        )
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: CreateSchemaType | dict[str, Any],
    ) -> ModelType:
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """Apply a dict, or the fields explicitly set on a schema."""
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(db_obj, field, value)
        await db.flush()
        return db_obj

    async def remove(self, db: AsyncSession, *, db_obj: ModelType) -> None:
        await db.delete(db_obj)
        await db.flush()
