"""
Query Lifecycle Controller

Owns the asynchronous fetch -> commit cycle for one consumer's tide query.
The consumer calls ``state(query)`` as often as it likes (every render, say);
a fetch is issued only when the query's value changes.

Only the most recently issued query may commit. Every request carries a
CancellationToken; changing the query (or closing the controller) cancels
the previous token, and a request whose token is cancelled drops its result
without logging or raising, even if it resolves after a newer request.
The underlying I/O is not aborted.

All state lives on one asyncio event loop; the only suspension point is the
store call.
"""
import asyncio
import logging
from typing import Callable, Hashable, List, Optional, Set, Tuple

from .config import Settings, load_settings
from .errors import FetchError, NetworkError
from .models import Query, QueryState
from .store import ExtremumStore

logger = logging.getLogger(__name__)

Listener = Callable[[QueryState], None]


class CancellationToken:
    """Flag set when the request it was issued for is torn down."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class TideQueryController:
    """
    Fetch-and-cache controller for the latest tide query.

    Args:
        store: Extremum store to fetch day summaries from
        timeout: Optional deadline in seconds per fetch; expiry surfaces as
                 NetworkError in QueryState.error
    """

    def __init__(self, store: ExtremumStore, timeout: Optional[float] = None):
        self._store = store
        self._timeout = timeout
        self._key: Optional[Tuple[Hashable, ...]] = None
        self._state = QueryState()
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, store: ExtremumStore, settings: Optional[Settings] = None) -> "TideQueryController":
        """Build a controller using the configured fetch deadline."""
        settings = settings or load_settings()
        return cls(store, timeout=settings.fetch_timeout)

    @property
    def current(self) -> QueryState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every committed state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def state(self, query: Query) -> QueryState:
        """
        Return the state for ``query``, issuing a fetch if its value changed.

        Must be called from a running event loop. Queries without a valid
        (lat, lon) issue nothing and keep the last known data.
        """
        key = query.key()
        if key == self._key:
            return self._state

        if not query.is_valid:
            self._key = key
            self._teardown()
            self._settle()
            return self._state

        # Raises RuntimeError outside a loop; nothing may change before it.
        loop = asyncio.get_running_loop()
        self._key = key
        self._teardown()
        token = CancellationToken()
        self._token = token
        self._commit(QueryState(data=self._state.data, loading=True, error=None))

        task = loop.create_task(self._run(query, token))
        self._task = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return self._state

    async def wait(self) -> QueryState:
        """Wait until the latest request (if any) has settled."""
        while True:
            task = self._task
            if task is None or task.done():
                return self._state
            await asyncio.wait({task})

    def close(self) -> None:
        """Stop observing: cancel the in-flight request and settle ``loading``."""
        self._key = None
        self._teardown()
        self._settle()

    async def __aenter__(self) -> "TideQueryController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _teardown(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._task = None

    def _settle(self) -> None:
        if self._state.loading:
            self._commit(QueryState(data=self._state.data, loading=False, error=self._state.error))

    def _commit(self, state: QueryState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"Tide state listener {listener!r} failed")

    async def _fetch(self, query: Query):
        fetch = self._store.fetch_day_summary(query.lat, query.lon, query.options)
        if self._timeout is None:
            return await fetch
        return await asyncio.wait_for(fetch, self._timeout)

    async def _run(self, query: Query, token: CancellationToken) -> None:
        logger.debug(f"Fetching tide summary for ({query.lat}, {query.lon})")
        try:
            summary = await self._fetch(query)
        except asyncio.TimeoutError as e:
            error: FetchError = NetworkError(f"Tide request timed out after {self._timeout}s")
            error.__cause__ = e
        except FetchError as e:
            error = e
        except Exception as e:
            error = FetchError(f"Tide store failed: {e}")
            error.__cause__ = e
        else:
            if token.cancelled:
                return
            self._commit(QueryState(data=summary, loading=False, error=None))
            return

        if token.cancelled:
            return
        logger.warning(f"Tide fetch failed for ({query.lat}, {query.lon}): {error}")
        self._commit(QueryState(data=self._state.data, loading=False, error=error))
