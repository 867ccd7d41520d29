# src/edumanager/repositories/base.py
"""
Access-scoped repository base.

A repository fetches the rows a caller may see (per the shared access
policy), caches them, and keeps the cache consistent across create, update
and delete. No exception crosses the repository boundary: every operation
returns a ``Result`` and failures leave the cache as it was.
"""
from __future__ import annotations

from typing import (
    Annotated,
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from edumanager.auth.context import CallerContext
from edumanager.exceptions import (
    EduManagerError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RetryPolicy,
    StoreError,
    ValidationError,
)
from edumanager.observability import get_logger, observability_context
from edumanager.result import Result
from edumanager.schemas.records import RecordModel
from edumanager.store.base import Order, RecordStore, Row

from .policy import Action, Entity, ScopeResolver, can
from .state import RecordCache, RepositoryStatus

logger = get_logger(__name__)

T = TypeVar("T", bound=RecordModel)

PayloadLike = Union[BaseModel, Mapping[str, Any]]

# read-model fields the caller may never set directly
_READ_ONLY_FIELDS = frozenset({"id", "created_at"})


def validation_error_from(exc: PydanticValidationError) -> ValidationError:
    """Collapse a pydantic error into our ``ValidationError``."""
    parts = []
    first_field: Optional[str] = None
    for err in exc.errors(include_url=False):
        loc = ".".join(str(p) for p in err.get("loc", ()))
        if first_field is None and loc:
            first_field = loc
        parts.append(f"{loc or 'payload'}: {err.get('msg')}")
    return ValidationError("; ".join(parts) or str(exc), field=first_field, cause=exc)


class AccessScopedRepository(Generic[T]):
    """
    Generic repository over one store table.

    Subclasses set the class attributes below and override the hooks
    (``_before_create``, ``_validate_update``, ``_hydrate``, ``_carry_over``)
    where the entity needs more than plain CRUD.
    """

    entity: ClassVar[Entity]
    table: ClassVar[str]
    record_model: ClassVar[Type[RecordModel]]
    create_model: ClassVar[Optional[Type[BaseModel]]] = None
    default_order: ClassVar[Tuple[Order, ...]] = (Order("created_at", descending=True),)
    embed: ClassVar[Tuple[str, ...]] = ()
    fetch_limit: Optional[int] = None
    derived_fields: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self, store: RecordStore, resolver: Optional[ScopeResolver] = None) -> None:
        self._store = store
        self._resolver = resolver or ScopeResolver(store)
        self._cache: RecordCache[T] = RecordCache()

    # ------------------------------------------------------------------
    # Cache views
    # ------------------------------------------------------------------
    @property
    def items(self) -> List[T]:
        return self._cache.items

    @property
    def status(self) -> RepositoryStatus:
        return self._cache.status

    @property
    def loading(self) -> bool:
        return self._cache.loading

    @property
    def last_error(self) -> Optional[EduManagerError]:
        return self._cache.last_error

    def get(self, record_id: str) -> Optional[T]:
        return self._cache.find(lambda r: r.id == record_id)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def fetch(self, caller: CallerContext) -> Result[List[T]]:
        with self._scope(caller, "fetch"):
            denied = self._guard(caller, Action.READ)
            if denied is not None:
                return Result.failure(denied)

            self._cache.begin_load()
            try:
                row_filter = await self._resolver.resolve(self.entity, caller)
                if row_filter.empty:
                    items: List[T] = []
                else:
                    rows = await self._store.select(
                        self.table,
                        filters=row_filter.filters,
                        order=self.default_order,
                        limit=self.fetch_limit,
                        embed=self.embed,
                    )
                    items = await self._hydrate(rows)
            except EduManagerError as e:
                logger.error(f"Error fetching {self.entity.value}: {e}")
                self._cache.fail(e)
                return Result.failure(e)

            self._cache.replace(items)
            logger.info(f"Fetched {len(items)} {self.entity.value} rows")
            return Result.success(self._cache.items)

    async def refetch(self, caller: CallerContext) -> Result[List[T]]:
        return await self.fetch(caller)

    async def create(self, caller: CallerContext, payload: PayloadLike) -> Result[T]:
        with self._scope(caller, "create"):
            denied = self._guard(caller, Action.CREATE)
            if denied is not None:
                return Result.failure(denied)

            try:
                values = self._validate_create(payload)
                values = await self._before_create(caller, values)
                row = await self._store.insert(self.table, values, embed=self.embed)
                record = self._record_from_row(row)
            except EduManagerError as e:
                logger.error(f"Error creating {self.entity.value}: {e}")
                return Result.failure(e)

            self._cache.prepend(record)
            logger.info(f"Created {self.entity.value} {record.id}")
            return Result.success(record)

    async def update(
        self, caller: CallerContext, record_id: str, fields: Mapping[str, Any]
    ) -> Result[T]:
        with self._scope(caller, "update", record_id=record_id):
            denied = self._guard(caller, Action.UPDATE)
            if denied is not None:
                return Result.failure(denied)

            try:
                values = self._check_update_fields(fields)
                values = await self._validate_update(caller, record_id, values)
                row = await self._store.update(self.table, record_id, values, embed=self.embed)
                record = self._carry_over(self._record_from_row(row))
            except EduManagerError as e:
                logger.error(f"Error updating {self.entity.value} {record_id}: {e}")
                return Result.failure(e)

            self._cache.patch(lambda r: r.id == record_id, record)
            logger.info(f"Updated {self.entity.value} {record_id}")
            return Result.success(record)

    async def delete(self, caller: CallerContext, record_id: str) -> Result[str]:
        with self._scope(caller, "delete", record_id=record_id):
            denied = self._guard(caller, Action.DELETE)
            if denied is not None:
                return Result.failure(denied)

            try:
                await self._store.delete(self.table, record_id)
            except EduManagerError as e:
                logger.error(f"Error deleting {self.entity.value} {record_id}: {e}")
                return Result.failure(e)

            self._cache.remove(lambda r: r.id == record_id)
            logger.info(f"Deleted {self.entity.value} {record_id}")
            return Result.success(record_id)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    async def _before_create(self, caller: CallerContext, values: Dict[str, Any]) -> Dict[str, Any]:
        return values

    async def _validate_update(
        self, caller: CallerContext, record_id: str, fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        return fields

    async def _hydrate(self, rows: Iterable[Row]) -> List[T]:
        return [self._record_from_row(row) for row in rows]

    def _carry_over(self, record: T) -> T:
        """Copy cache-only derived fields from the previous version of ``record``."""
        return record

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _guard(self, caller: CallerContext, action: Action) -> Optional[EduManagerError]:
        operation = f"{self.entity.value}.{action.value}"
        if not caller.is_authenticated:
            logger.warning(f"Refused {operation}: no caller")
            return NotAuthenticatedError(operation=operation)
        if not can(caller.role, action, self.entity):
            logger.warning(f"Refused {operation} for role {caller.role.value}")
            return PermissionDeniedError(caller.role.value, action.value, self.entity.value)
        return None

    def _scope(self, caller: CallerContext, operation: str, **metadata: Any):
        return observability_context(
            caller_id=caller.caller_id,
            role=caller.role.value,
            operation=f"{self.entity.value}.{operation}",
            **metadata,
        )

    def _validate_create(self, payload: PayloadLike) -> Dict[str, Any]:
        if self.create_model is None:
            if isinstance(payload, BaseModel):
                return payload.model_dump(exclude_none=True)
            return dict(payload)
        try:
            model = self.create_model.model_validate(
                payload.model_dump() if isinstance(payload, BaseModel) else payload
            )
        except PydanticValidationError as e:
            raise validation_error_from(e) from e
        return model.model_dump(exclude_none=True)

    def _check_update_fields(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        if not fields:
            raise ValidationError("No fields to update")
        writable = (
            set(self.record_model.model_fields)
            - _READ_ONLY_FIELDS
            - set(self.embed)
            - self.derived_fields
        )
        values: Dict[str, Any] = {}
        for key, value in fields.items():
            if key not in writable:
                raise ValidationError(f"Field '{key}' cannot be updated", field=key)
            info = self.record_model.model_fields[key]
            annotation = (
                Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
            )
            try:
                values[key] = TypeAdapter(annotation).validate_python(value)
            except PydanticValidationError as e:
                raise validation_error_from(e) from e
        return values

    def _record_from_row(self, row: Row) -> T:
        try:
            return self.record_model.model_validate(row)  # type: ignore[return-value]
        except PydanticValidationError as e:
            raise StoreError(
                f"Malformed {self.table} row: {e.error_count()} invalid field(s)",
                table=self.table,
                operation="select",
                error_code="malformed_row",
                retry_policy=RetryPolicy.NEVER,
                cause=e,
            ) from e
