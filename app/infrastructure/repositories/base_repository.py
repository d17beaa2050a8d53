"""
SQLAlchemy implementation of the Base Repository.
"""

import enum
import operator
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dates import utcnow
from app.core.exceptions import AppError, InternalServerError, ServiceError, ValidationError
from app.core.localization import localize
from app.domain.repositories.base import BaseRepository
from app.infrastructure.database import Base

ModelType = TypeVar("ModelType", bound=Base)

logger = structlog.get_logger(__name__)

DEFAULT_LIST_LIMIT = 1000

OPERATORS = {
    "eq": lambda column, value: column.is_(None) if value is None else column == value,
    "ne": lambda column, value: column.isnot(None) if value is None else column != value,
    "in": lambda column, value: column.in_(list(value)),
    "nin": lambda column, value: ~column.in_(list(value)),
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
    "is_null": lambda column, value: column.is_(None) if value else column.isnot(None),
}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _missing_option(option: str) -> ServiceError:
    return ServiceError(message=localize("error.generic.notFound", resource=f"options.{option}"))


class SQLAlchemyRepository(BaseRepository[ModelType], Generic[ModelType]):
    """Generic repository implementation for SQLAlchemy models."""

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    @property
    def model_name(self) -> str:
        return self.model.__name__

    # -- helpers -----------------------------------------------------------

    def _column(self, field: str):
        column = self.model.__table__.columns.get(field)
        if column is None:
            raise ServiceError(message=localize("error.generic.invalid", field=f"{self.model_name}.{field}"))
        return getattr(self.model, field)

    def _conditions(self, filters: Mapping[str, Any]) -> list:
        conditions = []
        for key, value in filters.items():
            field, _, op = key.partition("__")
            op = op or "eq"
            if op not in OPERATORS:
                raise ServiceError(message=localize("error.generic.invalid", field=key))
            if op == "eq" and isinstance(value, (list, tuple, set, frozenset)):
                op = "in"
            if op in ("in", "nin"):
                value = [_plain(v) for v in value]
            else:
                value = _plain(value)
            conditions.append(OPERATORS[op](self._column(field), value))
        return conditions

    def _order_by(self, sort: Optional[Mapping[str, int]]) -> list:
        clauses = []
        for field, direction in (sort or {}).items():
            column = self._column(field)
            clauses.append(column.desc() if direction < 0 else column.asc())
        return clauses

    def _project(self, obj: ModelType, projection: Optional[Sequence[str]]):
        if not projection:
            return obj
        fields = ["id"] + [field for field in projection if field != "id"]
        return {field: getattr(obj, field) for field in fields}

    def _clean(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        cleaned = {}
        for field, value in data.items():
            if field not in self.model.__table__.columns:
                raise ValueError(f"{self.model_name} has no field {field!r}")
            cleaned[field] = _plain(value)
        return cleaned

    def _validate(self, data: Dict[str, Any], partial: bool) -> None:
        validator = getattr(self.model, "validate_data", None)
        if validator is not None:
            validator(data, partial=partial)

    def _persist(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def _handle_error(self, error: Exception, operation: str) -> AppError:
        """Roll back and translate a failure into the error taxonomy."""
        self.db.rollback()
        message = localize(f"error.dbHandler.{operation}.message")
        logger.warning(
            "Data access failed",
            model=self.model_name,
            operation=operation,
            error=repr(error),
        )
        if isinstance(error, AppError):
            return error
        if isinstance(error, (ValueError, TypeError)):
            return ValidationError(message=message, cause=error)
        if isinstance(error, SQLAlchemyError):
            return InternalServerError(message=message, cause=error)
        return ServiceError(message=message, cause=error)

    # -- contract ----------------------------------------------------------

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
        sort: Optional[Mapping[str, int]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Any]:
        try:
            query = (
                self.db.query(self.model)
                .filter(*self._conditions(filters or {}))
                .order_by(*self._order_by(sort))
                .offset(skip or 0)
                .limit(limit or DEFAULT_LIST_LIMIT)
            )
            return [self._project(obj, projection) for obj in query.all()]
        except (SQLAlchemyError, AppError) as exc:
            raise self._handle_error(exc, "list") from exc

    def read(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
    ) -> Optional[Any]:
        if filters is None:
            raise _missing_option("filters")
        try:
            obj = self.db.query(self.model).filter(*self._conditions(filters)).first()
        except (SQLAlchemyError, AppError) as exc:
            raise self._handle_error(exc, "read") from exc
        if obj is None:
            return None
        return self._project(obj, projection)

    def create(self, data: Optional[Mapping[str, Any]] = None, commit: bool = True) -> ModelType:
        if data is None:
            raise _missing_option("data")
        try:
            values = self._clean(data)
            self._validate(values, partial=False)
            obj = self.model(**values)
            self.db.add(obj)
            self._persist(commit)
            self.db.refresh(obj)
            return obj
        except (SQLAlchemyError, ValueError, TypeError) as exc:
            raise self._handle_error(exc, "create") from exc

    def create_many(
        self,
        data: Optional[Sequence[Mapping[str, Any]]] = None,
        commit: bool = True,
    ) -> List[ModelType]:
        if data is None or isinstance(data, Mapping):
            raise _missing_option("data (list)")
        try:
            objs = []
            for item in data:
                values = self._clean(item)
                self._validate(values, partial=False)
                objs.append(self.model(**values))
            self.db.add_all(objs)
            self._persist(commit)
            return objs
        except (SQLAlchemyError, ValueError, TypeError) as exc:
            raise self._handle_error(exc, "createMany") from exc

    def update(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
        commit: bool = True,
    ) -> Optional[Any]:
        if filters is None:
            raise _missing_option("filters")
        if data is None:
            raise _missing_option("data")
        try:
            obj = self.db.query(self.model).filter(*self._conditions(filters)).first()
            if obj is None:
                return None
            values = self._clean(data)
            self._validate(values, partial=True)
            for field, value in values.items():
                setattr(obj, field, value)
            if "updated_at" in self.model.__table__.columns:
                obj.updated_at = utcnow()
            self._persist(commit)
            self.db.refresh(obj)
            return self._project(obj, projection)
        except (SQLAlchemyError, ValueError, TypeError, AppError) as exc:
            raise self._handle_error(exc, "update") from exc

    def update_many(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        commit: bool = True,
    ) -> Dict[str, Any]:
        if filters is None:
            raise _missing_option("filters")
        if data is None:
            raise _missing_option("data")
        options = options or {}
        try:
            values = self._clean(data)
            self._validate(values, partial=True)
            conditions = self._conditions(filters)

            matched = self.db.query(func.count()).select_from(self.model).filter(*conditions).scalar() or 0
            if not values:
                return {"acknowledged": True, "matched_count": matched, "modified_count": 0}

            # Only rows where at least one value actually changes count as modified.
            changed = or_(*[getattr(self.model, field).is_distinct_from(value) for field, value in values.items()])
            if options.get("timestamps", True) and "updated_at" in self.model.__table__.columns:
                values["updated_at"] = utcnow()

            modified = (
                self.db.query(self.model)
                .filter(*conditions, changed)
                .update(values, synchronize_session=options.get("synchronize_session", "fetch"))
            )
            self._persist(commit)
            return {"acknowledged": True, "matched_count": matched, "modified_count": modified}
        except (SQLAlchemyError, ValueError, TypeError, AppError) as exc:
            raise self._handle_error(exc, "updateMany") from exc

    def remove(self, filters: Optional[Mapping[str, Any]] = None, commit: bool = True) -> Dict[str, Any]:
        if filters is None:
            raise _missing_option("filters")
        try:
            deleted = (
                self.db.query(self.model)
                .filter(*self._conditions(filters))
                .delete(synchronize_session=False)
            )
            self._persist(commit)
            return {"acknowledged": True, "deleted_count": deleted}
        except (SQLAlchemyError, AppError) as exc:
            raise self._handle_error(exc, "remove") from exc

    def aggregate(self, pipeline: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        if pipeline is None:
            raise _missing_option("pipeline")
        try:
            stmt = select(self.model)
            for stage in pipeline:
                if not callable(stage):
                    raise TypeError(f"pipeline stage {stage!r} is not callable")
                stmt = stage(stmt)
            return [dict(row._mapping) for row in self.db.execute(stmt)]
        except (SQLAlchemyError, TypeError, AttributeError, ValueError) as exc:
            self.db.rollback()
            logger.warning("Aggregation failed", model=self.model_name, error=repr(exc))
            raise InternalServerError(message=localize("error.dbHandler.aggregate.message"), cause=exc) from exc

    def count(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        try:
            return (
                self.db.query(func.count()).select_from(self.model).filter(*self._conditions(filters or {})).scalar()
                or 0
            )
        except (SQLAlchemyError, AppError) as exc:
            raise self._handle_error(exc, "list") from exc

    def exists(self, filters: Mapping[str, Any]) -> bool:
        return self.read(filters) is not None
