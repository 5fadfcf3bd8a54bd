"""
Generic record service over Supabase.

Table-agnostic read and write operations. The caller names the table and
supplies the query or payload; rows come back as dicts, or parsed into a
pydantic model when ``row_model`` is given.
"""

import asyncio
import inspect
import time
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError

from .config import settings
from .exceptions import RemoteQueryError, RemoteStoreError, RemoteWriteError
from .logging_config import get_logger
from .metrics import track_record_operation
from .models import QuerySpec

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

RecordId = Union[str, int]


class RecordService:
    """
    CRUD operations for any table of the remote store.

    The Supabase client is injected so tests and callers can supply their
    own. Both ``supabase.AsyncClient`` and the synchronous ``supabase.Client``
    are accepted. A coroutine ``execute()`` is awaited directly; a blocking one
    runs in a worker thread through ``asyncio.to_thread``.
    """

    def __init__(self, client: Any, default_id_column: Optional[str] = None):
        self.client = client
        self.default_id_column = default_id_column or settings.DEFAULT_ID_COLUMN

    async def fetch_many(
        self,
        table: str,
        query: Optional[QuerySpec] = None,
        row_model: Optional[Type[M]] = None,
    ) -> List[Any]:
        """
        Fetch rows from a table.

        Filters are applied first (``eq`` per column), then the order clause,
        then the range clause.

        Args:
            table: Table name
            query: Optional filters, order and pagination
            row_model: Optional pydantic model to parse each row into

        Returns:
            List of rows, empty when nothing matches

        Raises:
            RemoteQueryError: If the store rejects the query or is unreachable
        """

        def build():
            builder = self.client.table(table).select("*")
            if query is None:
                return builder
            for column, value in query.filters.items():
                builder = builder.eq(column, value)
            if query.order is not None:
                builder = builder.order(query.order.column, desc=not query.order.ascending)
            if query.pagination is not None:
                builder = builder.range(query.pagination.start, query.pagination.end)
            return builder

        rows = await self._execute("fetch_many", table, RemoteQueryError, build)
        return self._parse_rows(rows or [], row_model, "fetch_many", table, RemoteQueryError)

    async def fetch_by_id(
        self,
        table: str,
        record_id: RecordId,
        id_column: Optional[str] = None,
        row_model: Optional[Type[M]] = None,
    ) -> Optional[Any]:
        """
        Fetch a single row by its identifier column.

        Returns:
            The first matching row, or None
        """
        column = self.default_id_column if id_column is None else id_column
        rows = await self.fetch_many(
            table, QuerySpec(filters={column: record_id}), row_model=row_model
        )
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        payload: Dict[str, Any],
        row_model: Optional[Type[M]] = None,
    ) -> Optional[Any]:
        """
        Insert one record and return the row as written by the store.

        Raises:
            RemoteWriteError: If the insert fails
        """
        rows = await self._execute(
            "insert",
            table,
            RemoteWriteError,
            lambda: self.client.table(table).insert(payload),
        )
        return self._first(rows, row_model, "insert", table)

    async def update(
        self,
        table: str,
        record_id: RecordId,
        payload: Dict[str, Any],
        id_column: Optional[str] = None,
        row_model: Optional[Type[M]] = None,
    ) -> Optional[Any]:
        """
        Apply a partial update to the record matching ``id_column = record_id``.

        Returns:
            The updated row, or None when no row matched

        Raises:
            RemoteWriteError: If the update fails
        """
        column = self.default_id_column if id_column is None else id_column
        rows = await self._execute(
            "update",
            table,
            RemoteWriteError,
            lambda: self.client.table(table).update(payload).eq(column, record_id),
        )
        return self._first(rows, row_model, "update", table)

    async def remove(
        self,
        table: str,
        record_id: RecordId,
        id_column: Optional[str] = None,
    ) -> None:
        """
        Delete the record matching ``id_column = record_id``.

        Raises:
            RemoteWriteError: If the delete fails
        """
        column = self.default_id_column if id_column is None else id_column
        await self._execute(
            "remove",
            table,
            RemoteWriteError,
            lambda: self.client.table(table).delete().eq(column, record_id),
        )

    async def _execute(
        self,
        operation: str,
        table: str,
        error_cls: Type[RemoteStoreError],
        build: Callable[[], Any],
    ) -> Any:
        """Build and run one request, converting any failure into ``error_cls``."""
        start = time.perf_counter()
        try:
            builder = build()
            if inspect.iscoroutinefunction(builder.execute):
                response = await builder.execute()
            else:
                # Synchronous client: keep the HTTP round trip off the event loop
                response = await asyncio.to_thread(builder.execute)
        except APIError as e:
            track_record_operation(operation, table, "error", time.perf_counter() - start)
            logger.error(
                "record_operation_failed",
                table=table,
                operation=operation,
                error=e.message,
                code=e.code,
            )
            raise error_cls(
                table,
                operation,
                e.message or str(e),
                code=e.code,
                details={"hint": e.hint, "details": e.details},
            ) from e
        except Exception as e:
            track_record_operation(operation, table, "error", time.perf_counter() - start)
            logger.error(
                "record_operation_failed",
                table=table,
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise error_cls(
                table, operation, str(e), details={"error_type": type(e).__name__}
            ) from e

        duration = time.perf_counter() - start
        track_record_operation(operation, table, "success", duration)
        logger.debug("record_operation", table=table, operation=operation, duration=duration)
        return getattr(response, "data", None)

    def _first(
        self,
        rows: Optional[List[Dict[str, Any]]],
        row_model: Optional[Type[M]],
        operation: str,
        table: str,
    ) -> Optional[Any]:
        if not rows:
            return None
        return self._parse_rows(rows[:1], row_model, operation, table, RemoteWriteError)[0]

    @staticmethod
    def _parse_rows(
        rows: List[Dict[str, Any]],
        row_model: Optional[Type[M]],
        operation: str,
        table: str,
        error_cls: Type[RemoteStoreError],
    ) -> List[Any]:
        if row_model is None:
            return list(rows)
        try:
            return [row_model.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(
                "record_shape_mismatch",
                table=table,
                operation=operation,
                model=row_model.__name__,
                error=str(e),
            )
            raise error_cls(
                table,
                operation,
                f"Rows from '{table}' do not match {row_model.__name__}: {e}",
                details={"model": row_model.__name__},
            ) from e
