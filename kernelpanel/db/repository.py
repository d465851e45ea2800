from collections.abc import Sequence
from typing import Any, Generic, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kernelpanel.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """get / list / put / delete over one mapped entity type.

    Writes are flushed, not committed: the caller owns the transaction so an
    audit record can land in the same commit as the change it describes.
    """

    def __init__(self, db: Session, model: type[ModelT]) -> None:
        self.db = db
        self.model = model

    def get(self, entity_id: Any) -> Optional[ModelT]:
        return self.db.get(self.model, entity_id)

    def get_or_404(self, entity_id: Any, detail: str) -> ModelT:
        entity = self.get(entity_id)
        if entity is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        return entity

    def find_one(self, *criteria) -> Optional[ModelT]:
        return self.db.scalar(select(self.model).where(*criteria).limit(1))

    def list(
        self,
        *criteria,
        order_by: Sequence = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[ModelT]:
        query = select(self.model).where(*criteria).order_by(*order_by).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.scalars(query).all())

    def count(self, *criteria) -> int:
        return self.db.scalar(select(func.count()).select_from(self.model).where(*criteria)) or 0

    def put(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.flush()
        return entity

    def delete(self, entity_id: Any) -> bool:
        entity = self.get(entity_id)
        if entity is None:
            return False
        self.db.delete(entity)
        self.db.flush()
        return True
