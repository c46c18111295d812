"""Subscription gateway: streams GraphQL subscription results to Socket.IO clients.

Frames follow the graphql-ws message shapes. A client emits ``subscribe``
with ``{"id", "payload": {"query", "variables", "operationName"}}`` (or
passes the payload object, plus an optional ``id``, as its connect ``auth``)
and receives one ``next`` frame per event until it emits ``complete`` or
disconnects. Each stream owns one bus subscription and one background task
that executes the subscription document for every event and emits the result.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from flask import request
from flask_socketio import ConnectionRefusedError
from graphql import GraphQLSchema

from weekplanner.core.events.event_bus import EventBus, EventBusClosed, Subscription
from weekplanner.core.operations.executor import (
    OperationError,
    SubscriptionRequest,
    execute_event,
    prepare_subscription,
)

logger = logging.getLogger(__name__)


class GatewayError(ValueError):
    """A subscription request that cannot be served."""

    def __init__(self, message: str, errors: Optional[List[dict]] = None) -> None:
        super().__init__(message)
        self.errors = errors or [{"message": message}]


@dataclass
class _Stream:
    sid: str
    stream_id: str
    request: SubscriptionRequest
    subscription: Subscription
    client_cancelled: bool = False
    done: threading.Event = field(default_factory=threading.Event)


class SubscriptionGateway:
    def __init__(
        self,
        bus: EventBus,
        schema: GraphQLSchema,
        topics: Dict[str, str],
        namespace: str = "/graphql",
        socketio=None,
    ) -> None:
        self.bus = bus
        self.schema = schema
        self.topics = dict(topics)
        self.namespace = namespace
        self._socketio = socketio
        self._lock = threading.Lock()
        self._streams: Dict[Tuple[str, str], _Stream] = {}
        self._connections: Set[str] = set()
        self._draining = False

    def init_app(self, app, socketio) -> None:
        self._socketio = socketio
        socketio.on_event("connect", self._on_connect, namespace=self.namespace)
        socketio.on_event("disconnect", self._on_disconnect, namespace=self.namespace)
        socketio.on_event("subscribe", self._on_subscribe, namespace=self.namespace)
        socketio.on_event("complete", self._on_complete, namespace=self.namespace)
        app.extensions["subscription_gateway"] = self

    @property
    def draining(self) -> bool:
        return self._draining

    def stream_count(self, sid: Optional[str] = None) -> int:
        with self._lock:
            return sum(1 for key in self._streams if sid is None or key[0] == sid)

    # ---------- lifecycle ----------
    def connect(self, sid: str) -> bool:
        with self._lock:
            if self._draining:
                return False
            self._connections.add(sid)
        return True

    def open(self, sid: str, stream_id: str, payload: Any) -> Subscription:
        try:
            graphql_request = prepare_subscription(self.schema, payload)
        except OperationError as exc:
            raise GatewayError(str(exc), exc.errors) from exc
        topic = self.topics.get(graphql_request.field)
        if topic is None:
            raise GatewayError(f"Unknown subscription: {graphql_request.field}")
        key = (sid, stream_id)
        with self._lock:
            if self._draining:
                raise GatewayError("server is shutting down")
            if key in self._streams:
                raise GatewayError(f"Subscriber for {stream_id} already exists")
            try:
                subscription = self.bus.subscribe({topic})
            except EventBusClosed as exc:
                raise GatewayError("server is shutting down") from exc
            stream = _Stream(sid=sid, stream_id=stream_id, request=graphql_request, subscription=subscription)
            self._streams[key] = stream
        self._socketio.start_background_task(self._pump, stream)
        logger.info("Stream %s opened for %s (%s)", stream_id, sid, graphql_request.field)
        return subscription

    def complete(self, sid: str, stream_id: str) -> bool:
        with self._lock:
            stream = self._streams.pop((sid, stream_id), None)
        if stream is None:
            return False
        stream.client_cancelled = True
        stream.subscription.cancel()
        logger.info("Stream %s completed by %s", stream_id, sid)
        return True

    def disconnect(self, sid: str) -> int:
        with self._lock:
            self._connections.discard(sid)
            keys = [key for key in self._streams if key[0] == sid]
            streams = [self._streams.pop(key) for key in keys]
        for stream in streams:
            stream.client_cancelled = True
            stream.subscription.cancel()
        if streams:
            logger.info("Released %s streams for disconnected client %s", len(streams), sid)
        return len(streams)

    def drain(self, timeout: float = 5.0) -> None:
        """Refuse new connections, flush and end open streams, then disconnect clients."""
        with self._lock:
            self._draining = True
            streams = list(self._streams.values())
            sids = set(self._connections)
        logger.info("Draining %s streams across %s connections", len(streams), len(sids))
        for stream in streams:
            stream.subscription.close()
        deadline = time.monotonic() + timeout
        for stream in streams:
            if not stream.done.wait(max(deadline - time.monotonic(), 0)):
                logger.warning("Stream %s did not flush in time, cancelling", stream.stream_id)
                stream.subscription.cancel()
        for sid in sids:
            try:
                self._socketio.server.disconnect(sid, namespace=self.namespace)
            except Exception:
                logger.exception("Failed to close connection %s", sid)
        with self._lock:
            self._connections.clear()

    # ---------- delivery ----------
    def _pump(self, stream: _Stream) -> None:
        try:
            for event in stream.subscription:
                frame = {
                    "id": stream.stream_id,
                    "payload": execute_event(self.schema, stream.request, event.payload, self.bus),
                }
                try:
                    self._socketio.emit("next", frame, to=stream.sid, namespace=self.namespace)
                except Exception:
                    logger.exception("Delivery to %s failed, cancelling stream %s", stream.sid, stream.stream_id)
                    stream.client_cancelled = True
                    stream.subscription.cancel()
                    return
            if not stream.client_cancelled:
                self._socketio.emit("complete", {"id": stream.stream_id}, to=stream.sid, namespace=self.namespace)
        except Exception:
            logger.exception("Stream %s for %s stopped unexpectedly", stream.stream_id, stream.sid)
            stream.subscription.cancel()
        finally:
            with self._lock:
                if self._streams.get((stream.sid, stream.stream_id)) is stream:
                    del self._streams[(stream.sid, stream.stream_id)]
            stream.done.set()

    # ---------- socket handlers ----------
    def _on_connect(self, auth=None):
        if not self.connect(request.sid):
            return False
        if isinstance(auth, dict) and auth.get("query"):
            try:
                self.open(request.sid, str(auth.get("id") or "default"), auth)
            except GatewayError as exc:
                self.disconnect(request.sid)
                raise ConnectionRefusedError(str(exc)) from exc
        return True

    def _on_disconnect(self, reason=None):
        self.disconnect(request.sid)

    def _on_subscribe(self, data=None):
        data = data if isinstance(data, dict) else {}
        stream_id = str(data.get("id") or "default")
        try:
            self.open(request.sid, stream_id, data.get("payload"))
        except GatewayError as exc:
            self._socketio.emit(
                "error",
                {"id": stream_id, "payload": exc.errors},
                to=request.sid,
                namespace=self.namespace,
            )

    def _on_complete(self, data=None):
        data = data if isinstance(data, dict) else {}
        self.complete(request.sid, str(data.get("id") or "default"))
