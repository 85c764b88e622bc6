# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Live-query plumbing shared by the synchronizers.

Firestore delivers snapshot callbacks on its own threads. Each callback is
turned into an immutable result off-thread, then marshalled through a
Dispatcher onto the thread that owns the view state, where it replaces the
local sequence wholesale.
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import StrEnum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from facebook_clone.db import DocumentRecord, DocumentStore, ListenerHandle, Query
from facebook_clone.errors import describe_error
from facebook_clone.models import User

if TYPE_CHECKING:
    from facebook_clone.session import Session
    from facebook_clone.users import UserDirectory

logger = logging.getLogger(__name__)

Observer = Callable[["ViewModel"], None]
# Builds the state update for a snapshot; runs on the delivering thread.
SnapshotHandler = Callable[[List[DocumentRecord]], Callable[[], None]]


class SubscriptionState(StrEnum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"


class Dispatcher(Protocol):
    def dispatch(self, fn: Callable[[], None]) -> None:
        ...


class ImmediateDispatcher:
    """Runs updates on the calling thread."""

    def dispatch(self, fn: Callable[[], None]) -> None:
        fn()


class QueueDispatcher:
    """Queues updates until the owning loop calls drain()."""

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()

    def dispatch(self, fn: Callable[[], None]) -> None:
        self._queue.put(fn)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> int:
        """Run every queued update; returns how many ran."""
        ran = 0
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return ran
            fn()
            ran += 1


class Subscription:
    """Cancellable registration of one live query.

    Deliveries and cancel() share a lock, and deliveries check the active
    flag under it, so nothing is delivered once cancel() has returned. An
    in-flight remote call is not aborted; its result is dropped.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.RLock()
        self._active = True
        self._handles: List[ListenerHandle] = []

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, handle: ListenerHandle) -> None:
        with self._lock:
            if self._active:
                self._handles.append(handle)
                return
        handle.unsubscribe()

    def deliver(self, fn: Callable[[], None]) -> bool:
        with self._lock:
            if not self._active:
                return False
            fn()
            return True

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            handles, self._handles = self._handles, []
        for handle in handles:
            handle.unsubscribe()
        logger.debug("Cancelled subscription %s", self.name)


class ViewModel:
    """Observable state with the loading flag and last error every screen shows."""

    def __init__(self):
        self.is_loading = False
        self.error: Optional[str] = None
        self._observers: List[Observer] = []

    def add_observer(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _changed(self) -> None:
        for observer in list(self._observers):
            observer(self)

    def _record_error(self, error: BaseException, context: str = "") -> None:
        self.error = describe_error(error)
        if context:
            logger.warning("%s failed: %s", context, self.error)

    def _begin(self) -> None:
        self.is_loading = True
        self.error = None
        self._changed()

    def _finish(self, error: Optional[BaseException] = None, context: str = "") -> None:
        self.is_loading = False
        if error is not None:
            self._record_error(error, context)
        self._changed()


class Synchronizer(ViewModel):
    """Base class for components that mirror live queries into local state."""

    def __init__(
        self,
        session: "Session",
        store: DocumentStore,
        *,
        dispatcher: Optional[Dispatcher] = None,
    ):
        super().__init__()
        self.session = session
        self.store = store
        self.dispatcher = dispatcher or ImmediateDispatcher()
        self._subscriptions: Dict[str, Subscription] = {}
        session.add_listener(self._on_session_changed)

    @property
    def state(self) -> SubscriptionState:
        if any(s.active for s in self._subscriptions.values()):
            return SubscriptionState.SUBSCRIBED
        return SubscriptionState.IDLE

    def cancel(self) -> None:
        """Tear down every live query; back to Idle."""
        subscriptions, self._subscriptions = self._subscriptions, {}
        for subscription in subscriptions.values():
            subscription.cancel()
        self.is_loading = False

    def _require_user_id(self) -> str:
        return self.session.require_user_id()

    def _on_session_changed(self, user: Optional[User]) -> None:
        if user is None:
            self.cancel()
            self._clear()
            self._changed()

    def _clear(self) -> None:
        """Drop the mirrored data of the previous user."""
        self.error = None

    def _cancel_key(self, key: str) -> None:
        subscription = self._subscriptions.pop(key, None)
        if subscription:
            subscription.cancel()

    def _listen(self, key: str, query: Query, handler: SnapshotHandler) -> Optional[Subscription]:
        """Replace the subscription stored under `key` with a live `query`."""
        self._cancel_key(key)
        subscription = Subscription(f"{self.__class__.__name__}.{key}")
        self._subscriptions[key] = subscription

        def on_snapshot(records: Optional[List[DocumentRecord]], error: Optional[Exception]) -> None:
            if not subscription.active:
                return
            if error is not None:
                self._dispatch(subscription, lambda: self._record_error(error, subscription.name))
                return
            try:
                apply = handler(records or [])
            except Exception as e:
                logger.exception("Could not process snapshot for %s", subscription.name)
                self._dispatch(subscription, lambda err=e: self._record_error(err))
                return
            self._dispatch(subscription, apply)

        self.is_loading = True
        try:
            handle = self.store.listen(query, on_snapshot)
        except Exception as e:
            subscription.cancel()
            self._subscriptions.pop(key, None)
            self._finish(e, f"Listening to {query.collection}")
            return None
        subscription.attach(handle)
        logger.debug("Subscribed %s to %s", subscription.name, query.collection)
        return subscription

    def _dispatch(self, subscription: Subscription, fn: Callable[[], None]) -> None:
        def apply() -> None:
            self.is_loading = False
            fn()

        def run() -> None:
            if subscription.deliver(apply):
                self._changed()

        self.dispatcher.dispatch(run)

    def _resolve_users(
        self, directory: "UserDirectory", ids: Iterable[Optional[str]]
    ) -> Tuple[Dict[str, User], Optional[Exception]]:
        """Batch-resolve users; a failed lookup yields no users plus the error."""
        try:
            return directory.fetch_user_map(ids), None
        except Exception as e:
            logger.warning("User lookup failed: %s", e)
            return {}, e
