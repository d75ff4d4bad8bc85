"""
Broker connections
------------------
Thin transports the JobUpdatePublisher drives. Each exposes ``open``, ``send`` and
``close`` and reports client library failures as BrokerTransportError, so the
publisher never has to know which broker it is talking to.

Supported URI schemes:
    - amqp://, amqps://: RabbitMQ via aio-pika (durable topic exchange)
    - redis://, rediss://, unix://: Redis pub/sub via redis.asyncio
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

import aio_pika
import redis.asyncio as aioredis
from aio_pika.abc import AbstractConnection, AbstractExchange
from aio_pika.exceptions import AMQPError
from redis.exceptions import RedisError

from support.constants import APP_NAME
from support.errors import BrokerTransportError, ConfigurationError


logger = logging.getLogger(APP_NAME)


class BrokerConnection(ABC):
    """A single connection/channel to a broker, bound to one exchange."""

    def __init__(self, uri: str, exchange_name: str):
        self.uri = uri
        self.exchange_name = exchange_name

    @abstractmethod
    async def open(self) -> None:
        """Establish the connection and whatever channel/exchange it needs."""

    @abstractmethod
    async def send(self, routing_key: str, body: bytes) -> None:
        """Send exactly one message."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call on a connection that never opened."""


class AmqpBrokerConnection(BrokerConnection):
    """RabbitMQ connection publishing persistent JSON messages to a topic exchange."""

    def __init__(self, uri: str, exchange_name: str):
        super().__init__(uri, exchange_name)
        self._connection: Optional[AbstractConnection] = None
        self._exchange: Optional[AbstractExchange] = None

    async def open(self) -> None:
        try:
            self._connection = await aio_pika.connect(self.uri)
            channel = await self._connection.channel()
            self._exchange = await channel.declare_exchange(
                self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
            )
        except (AMQPError, OSError, RuntimeError) as e:
            raise BrokerTransportError(f"unable to open AMQP connection: {e}") from e

    async def send(self, routing_key: str, body: bytes) -> None:
        if self._exchange is None:
            raise BrokerTransportError("AMQP connection is not open")
        message = aio_pika.Message(
            body=body,
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        try:
            await self._exchange.publish(message, routing_key=routing_key)
        except (AMQPError, OSError, RuntimeError) as e:
            raise BrokerTransportError(f"AMQP publish failed: {e}") from e

    async def close(self) -> None:
        connection, self._connection, self._exchange = self._connection, None, None
        if connection is None:
            return
        try:
            await connection.close()
        except (AMQPError, OSError, RuntimeError) as e:
            raise BrokerTransportError(f"error closing AMQP connection: {e}") from e


class RedisBrokerConnection(BrokerConnection):
    """Redis pub/sub connection; the exchange name prefixes the channel name."""

    def __init__(self, uri: str, exchange_name: str):
        super().__init__(uri, exchange_name)
        self._client: Optional[aioredis.Redis] = None

    def channel_for(self, routing_key: str) -> str:
        return f"{self.exchange_name}:{routing_key}"

    async def open(self) -> None:
        self._client = aioredis.from_url(self.uri, decode_responses=True)
        try:
            await self._client.ping()  # Test connection immediately
        except (RedisError, OSError) as e:
            raise BrokerTransportError(f"unable to open Redis connection: {e}") from e

    async def send(self, routing_key: str, body: bytes) -> None:
        if self._client is None:
            raise BrokerTransportError("Redis connection is not open")
        try:
            await self._client.publish(self.channel_for(routing_key), body)
        except (RedisError, OSError) as e:
            raise BrokerTransportError(f"Redis publish failed: {e}") from e

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            raise BrokerTransportError(f"error closing Redis connection: {e}") from e


_SCHEMES = {
    "amqp": AmqpBrokerConnection,
    "amqps": AmqpBrokerConnection,
    "redis": RedisBrokerConnection,
    "rediss": RedisBrokerConnection,
    "unix": RedisBrokerConnection,
}


def create_broker_connection(uri: str, exchange_name: str) -> BrokerConnection:
    """
    Build an unopened connection for the given URI.

    :raises ConfigurationError: If the URI scheme is not supported.
    """
    scheme = urlparse(uri).scheme.lower()
    connection_class = _SCHEMES.get(scheme)
    if connection_class is None:
        raise ConfigurationError(
            f"unsupported broker URI scheme {scheme!r}; expected one of: "
            + ", ".join(sorted(_SCHEMES))
        )
    return connection_class(uri, exchange_name)
