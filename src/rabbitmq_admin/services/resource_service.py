"""Audited write operations against a RabbitMQ cluster.

Each function describes its operation as a ``WriteOperation`` and performs
the Management API call through ``WriteOperationAuditor.run`` so that every
outcome is recorded. Management API errors propagate to the caller
unchanged.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger

from rabbitmq_admin.lib.rabbitmq import RabbitMQManagementClient
from rabbitmq_admin.models.audit import AuditOperationType, AuditResourceType
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.resources import (
    CreateBindingRequest,
    CreateExchangeRequest,
    CreateQueueRequest,
    MoveMessagesRequest,
    PublishMessageRequest,
)
from rabbitmq_admin.services.audit_interceptor import WriteOperation, WriteOperationAuditor

T = TypeVar("T")

BINDING_DESTINATION_TYPES = {"q": "queue", "e": "exchange"}


@dataclass
class WriteContext:
    """Everything an audited write needs: who, where, and how to call RabbitMQ."""

    auditor: WriteOperationAuditor
    client: RabbitMQManagementClient
    actor: User
    cluster: ClusterConnection

    async def run(self, operation: WriteOperation, call: Callable[[], Awaitable[T]]) -> T:
        logger.debug(
            f"{self.actor.username} -> {operation.operation_type} {operation.resource_type} "
            f"'{operation.resource_name}' on cluster '{self.cluster.name}'"
        )
        return await self.auditor.run(operation, actor=self.actor, cluster=self.cluster, call=call)


def get_management_client(cluster: ClusterConnection, timeout: float) -> RabbitMQManagementClient:
    return RabbitMQManagementClient(cluster.api_url, cluster.username, cluster.password, timeout=timeout)


def binding_resource_name(source: str, destination: str) -> str:
    return f"{source} -> {destination}"


async def create_exchange(ctx: WriteContext, request: CreateExchangeRequest) -> None:
    operation = WriteOperation(
        AuditOperationType.CREATE_EXCHANGE,
        AuditResourceType.EXCHANGE,
        request.name,
        details={
            "vhost": request.vhost,
            "exchangeType": request.type,
            "durable": request.durable,
            "autoDelete": request.auto_delete,
            "internal": request.internal,
            "arguments": request.arguments,
        },
        description="Create a new exchange",
    )
    body = {
        "type": request.type,
        "durable": request.durable,
        "auto_delete": request.auto_delete,
        "internal": request.internal,
        "arguments": request.arguments,
    }
    await ctx.run(operation, lambda: ctx.client.create_exchange(request.vhost, request.name, body))


async def delete_exchange(ctx: WriteContext, vhost: str, name: str, *, if_unused: bool = False) -> None:
    operation = WriteOperation(
        AuditOperationType.DELETE_EXCHANGE,
        AuditResourceType.EXCHANGE,
        name,
        details={"vhost": vhost, "ifUnused": if_unused},
        description="Delete an exchange",
    )
    await ctx.run(operation, lambda: ctx.client.delete_exchange(vhost, name, if_unused=if_unused))


async def create_queue(ctx: WriteContext, request: CreateQueueRequest) -> None:
    operation = WriteOperation(
        AuditOperationType.CREATE_QUEUE,
        AuditResourceType.QUEUE,
        request.name,
        details={
            "vhost": request.vhost,
            "durable": request.durable,
            "autoDelete": request.auto_delete,
            "exclusive": request.exclusive,
            "arguments": request.arguments,
            "node": request.node,
        },
        description="Create a new queue",
    )
    body: dict[str, Any] = {
        "durable": request.durable,
        "auto_delete": request.auto_delete,
        "exclusive": request.exclusive,
        "arguments": request.arguments,
    }
    if request.node:
        body["node"] = request.node
    await ctx.run(operation, lambda: ctx.client.create_queue(request.vhost, request.name, body))


async def delete_queue(
    ctx: WriteContext,
    vhost: str,
    name: str,
    *,
    if_empty: bool = False,
    if_unused: bool = False,
) -> None:
    operation = WriteOperation(
        AuditOperationType.DELETE_QUEUE,
        AuditResourceType.QUEUE,
        name,
        details={"vhost": vhost, "ifEmpty": if_empty, "ifUnused": if_unused},
        description="Delete a queue",
    )
    await ctx.run(operation, lambda: ctx.client.delete_queue(vhost, name, if_empty=if_empty, if_unused=if_unused))


async def purge_queue(ctx: WriteContext, vhost: str, name: str) -> None:
    operation = WriteOperation(
        AuditOperationType.PURGE_QUEUE,
        AuditResourceType.QUEUE,
        name,
        details={"vhost": vhost},
        description="Purge all messages from a queue",
    )
    await ctx.run(operation, lambda: ctx.client.purge_queue(vhost, name))


async def create_binding(
    ctx: WriteContext,
    vhost: str,
    source: str,
    destination_type: str,
    destination: str,
    request: CreateBindingRequest,
) -> str | None:
    """Bind exchange ``source`` to a queue (``"q"``) or exchange (``"e"``).

    Returns:
        The properties key identifying the new binding.
    """
    if destination_type == "q":
        operation_type = AuditOperationType.CREATE_BINDING_QUEUE
        description = "Create a binding from exchange to queue"
    else:
        operation_type = AuditOperationType.CREATE_BINDING_EXCHANGE
        description = "Create a binding from exchange to exchange"
    operation = WriteOperation(
        operation_type,
        AuditResourceType.BINDING,
        binding_resource_name(source, destination),
        details={
            "vhost": vhost,
            "source": source,
            "destination": destination,
            "destinationType": BINDING_DESTINATION_TYPES[destination_type],
            "routingKey": request.routing_key,
            "arguments": request.arguments,
        },
        description=description,
    )
    return await ctx.run(
        operation,
        lambda: ctx.client.create_binding(
            vhost,
            source,
            destination_type,
            destination,
            routing_key=request.routing_key,
            arguments=request.arguments,
        ),
    )


async def delete_binding(
    ctx: WriteContext,
    vhost: str,
    source: str,
    destination_type: str,
    destination: str,
    properties_key: str,
) -> None:
    operation = WriteOperation(
        AuditOperationType.DELETE_BINDING,
        AuditResourceType.BINDING,
        binding_resource_name(source, destination),
        details={
            "vhost": vhost,
            "source": source,
            "destination": destination,
            "destinationType": BINDING_DESTINATION_TYPES[destination_type],
            "propertiesKey": properties_key,
        },
        description="Delete a binding",
    )
    await ctx.run(
        operation,
        lambda: ctx.client.delete_binding(vhost, source, destination_type, destination, properties_key),
    )


async def _publish(
    ctx: WriteContext,
    operation: WriteOperation,
    vhost: str,
    exchange: str,
    routing_key: str,
    request: PublishMessageRequest,
) -> bool:
    async def call() -> bool:
        routed = await ctx.client.publish(
            vhost,
            exchange,
            routing_key=routing_key,
            payload=request.payload,
            payload_encoding=request.payload_encoding,
            properties=request.properties,
        )
        operation.details["routed"] = routed
        return routed

    return await ctx.run(operation, call)


async def publish_to_exchange(ctx: WriteContext, vhost: str, exchange: str, request: PublishMessageRequest) -> bool:
    """Publish a message through ``exchange``. Returns whether it was routed."""
    operation = WriteOperation(
        AuditOperationType.PUBLISH_MESSAGE_EXCHANGE,
        AuditResourceType.MESSAGE,
        exchange,
        details={
            "vhost": vhost,
            "exchange": exchange,
            "routingKey": request.routing_key,
            "payloadEncoding": request.payload_encoding,
            "payloadSize": len(request.payload),
        },
        description="Publish a message to an exchange",
    )
    return await _publish(ctx, operation, vhost, exchange, request.routing_key, request)


async def publish_to_queue(ctx: WriteContext, vhost: str, queue: str, request: PublishMessageRequest) -> bool:
    """Publish a message straight to ``queue`` through the default exchange."""
    operation = WriteOperation(
        AuditOperationType.PUBLISH_MESSAGE_QUEUE,
        AuditResourceType.MESSAGE,
        queue,
        details={
            "vhost": vhost,
            "queue": queue,
            "payloadEncoding": request.payload_encoding,
            "payloadSize": len(request.payload),
        },
        description="Publish a message directly to a queue",
    )
    return await _publish(ctx, operation, vhost, "", queue, request)


async def move_messages(ctx: WriteContext, vhost: str, queue: str, request: MoveMessagesRequest) -> str:
    """Move messages from ``queue`` to the destination queue with a dynamic shovel.

    Returns:
        The name of the created shovel.
    """
    shovel_name = request.shovel_name or f"move-{queue}-to-{request.destination_queue}"
    operation = WriteOperation(
        AuditOperationType.MOVE_MESSAGES_QUEUE,
        AuditResourceType.QUEUE,
        binding_resource_name(queue, request.destination_queue),
        details={
            "vhost": vhost,
            "sourceQueue": queue,
            "destinationQueue": request.destination_queue,
            "shovelName": shovel_name,
            "deleteAfter": request.delete_after,
            "ackMode": request.ack_mode,
        },
        description="Create a shovel to move messages between queues",
    )

    async def call() -> str:
        source = await ctx.client.get_queue(vhost, queue)
        operation.details["sourceQueueMessageCount"] = source.get("messages")
        await ctx.client.create_shovel(
            vhost,
            shovel_name,
            {
                "src-protocol": "amqp091",
                "src-uri": request.source_uri,
                "src-queue": queue,
                "dest-protocol": "amqp091",
                "dest-uri": request.destination_uri,
                "dest-queue": request.destination_queue,
                "src-delete-after": request.delete_after,
                "ack-mode": request.ack_mode,
            },
        )
        return shovel_name

    return await ctx.run(operation, call)
