"""
Stateful query and mutation hooks over the record service.

A hook owns a ``HookState`` (data, loading, error) for one data need and
keeps it current as its parameters change. State is never mutated in place:
every transition builds a new ``HookState`` and notifies subscribers.

Overlapping fetches are allowed. Each run takes the next sequence number of
its hook, and a run that is no longer the latest when it settles leaves the
state untouched.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import (Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set,
                    Tuple, Type)

from pydantic import BaseModel

from .exceptions import HookClosedError, RecordServiceException
from .logging_config import get_logger
from .metrics import track_hook_run
from .models import QuerySpec
from .record_service import RecordId, RecordService

logger = get_logger(__name__)

_UNSET: Any = object()

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


@dataclass(frozen=True)
class HookState:
    """Snapshot of a hook: the data, whether a request is in flight, and the last error."""

    data: Any = None
    loading: bool = False
    error: Optional[RecordServiceException] = None


Listener = Callable[[HookState], None]


def normalize_error(error: Exception) -> RecordServiceException:
    """Return ``error`` as a RecordServiceException, wrapping foreign exceptions."""
    if isinstance(error, RecordServiceException):
        return error
    wrapped = RecordServiceException(
        str(error) or UNKNOWN_ERROR_MESSAGE,
        details={"error_type": type(error).__name__},
    )
    wrapped.__cause__ = error
    return wrapped


class _StatefulHook:
    """State ownership and subscriber fan-out shared by all hooks."""

    hook_name = "hook"

    def __init__(self, service: RecordService, table: str, initial: HookState):
        self.service = service
        self.table = table
        self._state = initial
        self._listeners: List[Listener] = []

    @property
    def state(self) -> HookState:
        return self._state

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[RecordServiceException]:
        return self._state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback for state changes.

        Args:
            listener: Called with the new HookState after every transition

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("hook_listener_failed", hook=self.hook_name, table=self.table)


class _FetchHook(_StatefulHook):
    """
    Lifecycle shared by the list and single-record hooks.

    Subclasses provide ``_load`` (the actual request) and ``_params`` (the
    values whose change triggers a new fetch).
    """

    def __init__(
        self,
        service: RecordService,
        table: str,
        initial_data: Any,
        dependencies: Iterable[Any] = (),
    ):
        super().__init__(service, table, HookState(data=initial_data, loading=True))
        self.dependencies: Tuple[Any, ...] = tuple(dependencies)
        self._sequence = 0
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def activate(self) -> asyncio.Task:
        """Schedule the initial fetch on the running event loop."""
        self._ensure_open()
        return self._schedule()

    async def refetch(self) -> None:
        """
        Run the fetch again with the current parameters and wait for it.

        The run is tracked like any scheduled fetch, so ``close()`` cancels it
        and the refetch returns without a result.
        """
        self._ensure_open()
        task = self._schedule()
        # Cancellation by close() ends quietly; cancelling the caller still propagates
        await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        """
        Tear the hook down.

        In-flight runs are cancelled and anything they would have produced is
        dropped. Subscribers are released.
        """
        if self._closed:
            return
        self._closed = True
        self._sequence += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()
        logger.debug("hook_closed", hook=self.hook_name, table=self.table)

    async def __aenter__(self):
        await self.activate()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _apply_params(self, params: Tuple[Any, ...]) -> Optional[asyncio.Task]:
        """Store new parameters and schedule a fetch if they differ from the current ones."""
        self._ensure_open()
        if params == self._params():
            return None
        self._store_params(params)
        return self._schedule()

    def _schedule(self) -> asyncio.Task:
        task = asyncio.create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, sequence: int) -> bool:
        return not self._closed and sequence == self._sequence

    async def _run(self) -> None:
        self._sequence += 1
        sequence = self._sequence
        self._set_state(loading=True)

        try:
            result = await self._load()
        except asyncio.CancelledError:
            if self._is_current(sequence):
                self._set_state(loading=False)
            raise
        except Exception as e:
            if not self._is_current(sequence):
                track_hook_run(self.hook_name, "discarded")
                logger.debug("hook_result_discarded", hook=self.hook_name, table=self.table)
                return
            error = normalize_error(e)
            track_hook_run(self.hook_name, "error")
            logger.warning(
                "hook_fetch_failed",
                hook=self.hook_name,
                table=self.table,
                error=error.message,
            )
            self._set_state(error=error, loading=False)
            return

        if not self._is_current(sequence):
            track_hook_run(self.hook_name, "discarded")
            logger.debug("hook_result_discarded", hook=self.hook_name, table=self.table)
            return
        track_hook_run(self.hook_name, "success")
        self._set_state(data=result, error=None, loading=False)

    def _ensure_open(self) -> None:
        if self._closed:
            raise HookClosedError(type(self).__name__, self.table)

    async def _load(self) -> Any:
        raise NotImplementedError

    def _params(self) -> Tuple[Any, ...]:
        raise NotImplementedError

    def _store_params(self, params: Tuple[Any, ...]) -> None:
        raise NotImplementedError


class QueryHook(_FetchHook):
    """
    Keeps a list of rows for ``(table, query)`` current.

    Example:
        async with QueryHook(service, "issues", QuerySpec(filters={"status": "open"})) as hook:
            print(hook.data)
            await hook.set_params(query=QuerySpec(filters={"status": "resolved"}))
    """

    hook_name = "query"

    def __init__(
        self,
        service: RecordService,
        table: str,
        query: Optional[QuerySpec] = None,
        dependencies: Iterable[Any] = (),
        row_model: Optional[Type[BaseModel]] = None,
    ):
        super().__init__(service, table, initial_data=[], dependencies=dependencies)
        self.query: QuerySpec = query or QuerySpec()
        self.row_model = row_model

    def set_params(
        self,
        table: Optional[str] = None,
        query: Any = _UNSET,
        dependencies: Optional[Iterable[Any]] = None,
    ) -> Optional[asyncio.Task]:
        """
        Change what the hook fetches.

        Passing ``query=None`` clears the query. Parameters left out keep
        their current value.

        Returns:
            The scheduled fetch task, or None when nothing changed
        """
        new_query = self.query if query is _UNSET else (query or QuerySpec())
        return self._apply_params(
            (
                self.table if table is None else table,
                new_query,
                self.dependencies if dependencies is None else tuple(dependencies),
            )
        )

    async def _load(self) -> List[Any]:
        return await self.service.fetch_many(self.table, self.query, row_model=self.row_model)

    def _params(self) -> Tuple[Any, ...]:
        return (self.table, self.query, self.dependencies)

    def _store_params(self, params: Tuple[Any, ...]) -> None:
        self.table, self.query, self.dependencies = params


class ItemHook(_FetchHook):
    """
    Keeps one row, looked up by identifier, current.

    An empty identifier (None or "") means there is nothing to fetch: the
    hook settles with ``data=None`` without calling the store.
    """

    hook_name = "item"

    def __init__(
        self,
        service: RecordService,
        table: str,
        record_id: Optional[RecordId],
        id_column: Optional[str] = None,
        dependencies: Iterable[Any] = (),
        row_model: Optional[Type[BaseModel]] = None,
    ):
        super().__init__(service, table, initial_data=None, dependencies=dependencies)
        self.record_id = record_id
        self.id_column = service.default_id_column if id_column is None else id_column
        self.row_model = row_model

    @property
    def has_id(self) -> bool:
        return self.record_id is not None and self.record_id != ""

    def set_params(
        self,
        table: Optional[str] = None,
        record_id: Any = _UNSET,
        id_column: Optional[str] = None,
        dependencies: Optional[Iterable[Any]] = None,
    ) -> Optional[asyncio.Task]:
        """
        Change which record the hook tracks.

        Returns:
            The scheduled fetch task, or None when nothing changed
        """
        return self._apply_params(
            (
                self.table if table is None else table,
                self.record_id if record_id is _UNSET else record_id,
                self.id_column if id_column is None else id_column,
                self.dependencies if dependencies is None else tuple(dependencies),
            )
        )

    async def refetch(self) -> None:
        self._ensure_open()
        if not self.has_id:
            return
        await super().refetch()

    async def _run(self) -> None:
        if self.has_id:
            await super()._run()
            return
        # Supersede anything still in flight for the previous id
        self._sequence += 1
        self._set_state(data=None, error=None, loading=False)

    async def _load(self) -> Optional[Any]:
        return await self.service.fetch_by_id(
            self.table, self.record_id, id_column=self.id_column, row_model=self.row_model
        )

    def _params(self) -> Tuple[Any, ...]:
        return (self.table, self.record_id, self.id_column, self.dependencies)

    def _store_params(self, params: Tuple[Any, ...]) -> None:
        self.table, self.record_id, self.id_column, self.dependencies = params


class MutationHook(_StatefulHook):
    """
    Insert, update and remove bound to one table.

    Failures are reported twice: the error is stored on the hook for state
    consumers *and* raised to the caller, who must catch it. ``data`` holds
    the result of the last successful mutation.
    """

    hook_name = "mutation"

    def __init__(self, service: RecordService, table: str):
        super().__init__(service, table, HookState(data=None, loading=False))
        self._in_flight = 0

    async def insert(
        self, payload: Dict[str, Any], row_model: Optional[Type[BaseModel]] = None
    ) -> Optional[Any]:
        """Insert a record. Raises the store error after recording it."""
        return await self._mutate(
            "insert", self.service.insert(self.table, payload, row_model=row_model)
        )

    async def update(
        self,
        record_id: RecordId,
        payload: Dict[str, Any],
        id_column: Optional[str] = None,
        row_model: Optional[Type[BaseModel]] = None,
    ) -> Optional[Any]:
        """Partially update a record. Raises the store error after recording it."""
        return await self._mutate(
            "update",
            self.service.update(
                self.table, record_id, payload, id_column=id_column, row_model=row_model
            ),
        )

    async def remove(self, record_id: RecordId, id_column: Optional[str] = None) -> None:
        """Delete a record. Raises the store error after recording it."""
        await self._mutate(
            "remove", self.service.remove(self.table, record_id, id_column=id_column)
        )

    async def _mutate(self, operation: str, call: Awaitable[Any]) -> Optional[Any]:
        self._in_flight += 1
        self._set_state(loading=True)
        try:
            result = await call
        except Exception as e:
            error = normalize_error(e)
            track_hook_run(self.hook_name, "error")
            logger.warning(
                "hook_mutation_failed",
                table=self.table,
                operation=operation,
                error=error.message,
            )
            self._set_state(error=error)
            if error is e:
                raise
            raise error from e
        else:
            track_hook_run(self.hook_name, "success")
            self._set_state(data=result, error=None)
            return result
        finally:
            self._in_flight -= 1
            self._set_state(loading=self._in_flight > 0)
