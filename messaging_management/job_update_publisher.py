"""
Job update publisher
--------------------
Owns the process-wide broker connection and publishes canonical job status
updates on it.

The connection is shared by every in-flight request, so all access to it goes
through a single asyncio.Lock. ``update`` holds the lock across the whole
publish / reconnect / republish sequence; a send can never run while another
request swaps the connection out.

Connection states:
    DISCONNECTED -> CONNECTED                (connect / reconnect)
    CONNECTED -> PUBLISHING -> CONNECTED     (send succeeded)
    PUBLISHING -> DISCONNECTED               (send failed; reconnect required)

Retry policy for ``update``: at most one reconnect and at most two publish
attempts, no backoff, nothing queued for later.
"""
import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Optional

from contracts.job_schemas import UpdateMessage
from contracts.job_states import JobState
from messaging_management.broker_connections import BrokerConnection, create_broker_connection
from support.constants import (
    APP_NAME,
    DEFAULT_PUBLISH_TIMEOUT,
    DEFAULT_RECONNECT_TIMEOUT,
    UPDATES_ROUTING_KEY,
)
from support.errors import BrokerTransportError, PublishError, ReconnectError


logger = logging.getLogger(APP_NAME)

ConnectionFactory = Callable[[str, str], BrokerConnection]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    PUBLISHING = "publishing"


@dataclass
class PublisherStats:
    """Counters exposed on /debug/vars."""
    updates_published: int = 0
    updates_failed: int = 0
    connect_attempts: int = 0
    connect_failures: int = 0
    publish_attempts: int = 0
    publish_failures: int = 0
    reconnect_attempts: int = 0
    reconnect_failures: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class JobUpdatePublisher:
    """Publishes UpdateMessages to one exchange over a reconnectable connection."""

    def __init__(
            self,
            uri: str,
            exchange_name: str,
            routing_key: str = UPDATES_ROUTING_KEY,
            publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT,
            reconnect_timeout: float = DEFAULT_RECONNECT_TIMEOUT,
            connection_factory: ConnectionFactory = create_broker_connection,
    ):
        self.uri = uri
        self.exchange_name = exchange_name
        self.routing_key = routing_key
        self.publish_timeout = publish_timeout
        self.reconnect_timeout = reconnect_timeout
        self.stats = PublisherStats()

        self._connection_factory = connection_factory
        self._connection: Optional[BrokerConnection] = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings, connection_factory: ConnectionFactory = create_broker_connection):
        return cls(
            uri=settings.amqp_uri,
            exchange_name=settings.exchange_name,
            routing_key=settings.routing_key,
            publish_timeout=settings.publish_timeout,
            reconnect_timeout=settings.reconnect_timeout,
            connection_factory=connection_factory,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def __aenter__(self) -> "JobUpdatePublisher":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------------------------------------------------------------------------------
    # Public operations (each takes the connection lock)
    # ---------------------------------------------------------------------------------
    async def connect(self) -> None:
        """Open the initial connection. Raises ReconnectError on failure."""
        async with self._lock:
            await self._open_locked(initial=True)
        logger.info("Connected to exchange %s", self.exchange_name)

    async def publish(self, message: UpdateMessage) -> None:
        """Send one message over the current connection. Raises PublishError."""
        async with self._lock:
            await self._publish_locked(message)

    async def reconnect(self) -> None:
        """Tear down and rebuild the connection. Raises ReconnectError."""
        async with self._lock:
            await self._reconnect_locked()

    async def close(self) -> None:
        """Release the connection."""
        async with self._lock:
            await self._close_locked()
        logger.info("Messaging connection closed")

    async def update(self, state: JobState, job_id: str, hostname: str, message: str) -> UpdateMessage:
        """
        Build the canonical update for a job and publish it, reconnecting once if needed.

        :param state: Canonical job state.
        :param job_id: Invocation ID of the job.
        :param hostname: Identity of the reporter, sent as the message sender.
        :param message: Free-text status message.
        :return: The published UpdateMessage.
        :raises ReconnectError: If the first publish failed and the connection could not
            be re-established. No second publish is attempted.
        :raises PublishError: If the publish failed again after a successful reconnect.
        """
        update_message = UpdateMessage.build(state, job_id, hostname, message)

        async with self._lock:
            try:
                await self._publish_locked(update_message)
            except PublishError as e:
                logger.error("failed to publish job status update: %s", e)
            else:
                self._record_published(update_message)
                return update_message

            logger.info("attempting to reestablish the messaging connection")
            try:
                await self._reconnect_locked()
            except ReconnectError as e:
                logger.error("unable to reestablish the messaging connection: %s", e)
                self.stats.updates_failed += 1
                raise

            try:
                await self._publish_locked(update_message)
            except PublishError as e:
                logger.error("failed to publish job status update again - giving up: %s", e)
                self.stats.updates_failed += 1
                raise

            self._record_published(update_message)
            return update_message

    # ---------------------------------------------------------------------------------
    # Lock-held helpers
    # ---------------------------------------------------------------------------------
    async def _publish_locked(self, message: UpdateMessage) -> None:
        if self._state is not ConnectionState.CONNECTED or self._connection is None:
            self.stats.publish_failures += 1
            raise PublishError("messaging connection is not available")

        self._state = ConnectionState.PUBLISHING
        self.stats.publish_attempts += 1
        try:
            async with asyncio.timeout(self.publish_timeout):
                await self._connection.send(self.routing_key, message.to_json_bytes())
        except BrokerTransportError as e:
            self._mark_publish_failed()
            raise PublishError(str(e)) from e
        except asyncio.TimeoutError as e:
            self._mark_publish_failed()
            raise PublishError(f"publish timed out after {self.publish_timeout}s") from e
        except asyncio.CancelledError:
            # The channel is in an unknown state after an interrupted send.
            self._state = ConnectionState.DISCONNECTED
            raise
        self._state = ConnectionState.CONNECTED

    def _mark_publish_failed(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self.stats.publish_failures += 1

    async def _reconnect_locked(self) -> None:
        await self._open_locked(initial=False)

    async def _open_locked(self, initial: bool) -> None:
        """Replace the current connection with a freshly opened one."""
        if initial:
            self.stats.connect_attempts += 1
        else:
            self.stats.reconnect_attempts += 1
        await self._close_locked()

        connection = self._connection_factory(self.uri, self.exchange_name)
        try:
            async with asyncio.timeout(self.reconnect_timeout):
                await connection.open()
        except asyncio.CancelledError:
            # Never installed; close it before propagating.
            await self._discard(connection)
            raise
        except (BrokerTransportError, asyncio.TimeoutError) as e:
            if initial:
                self.stats.connect_failures += 1
            else:
                self.stats.reconnect_failures += 1
            await self._discard(connection)
            if isinstance(e, asyncio.TimeoutError):
                raise ReconnectError(
                    f"connecting to the broker timed out after {self.reconnect_timeout}s"
                ) from e
            raise ReconnectError(str(e)) from e

        self._connection = connection
        self._state = ConnectionState.CONNECTED

    async def _close_locked(self) -> None:
        connection, self._connection = self._connection, None
        self._state = ConnectionState.DISCONNECTED
        if connection is not None:
            await self._discard(connection)

    async def _discard(self, connection: BrokerConnection) -> None:
        """Close a connection that is no longer wanted; failures are only logged."""
        try:
            async with asyncio.timeout(self.reconnect_timeout):
                await connection.close()
        except (BrokerTransportError, asyncio.TimeoutError) as e:
            logger.warning("error while closing the messaging connection: %r", e)

    def _record_published(self, update_message: UpdateMessage) -> None:
        self.stats.updates_published += 1
        logger.info(
            "%s (%s) [%s]: %s",
            update_message.job.invocation_id,
            update_message.state,
            update_message.sender,
            update_message.message,
        )
