"""Request/response schemas for RabbitMQ write operations.

Request bodies use camelCase field names, matching the console frontend.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RESOURCE_NAME_PATTERN = r"^[a-zA-Z0-9._-]+$"


class ResourceRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateExchangeRequest(ResourceRequest):
    """Request to declare an exchange."""

    name: str = Field(min_length=1, max_length=255, pattern=RESOURCE_NAME_PATTERN)
    type: str = Field(pattern="^(direct|fanout|topic|headers)$")
    vhost: str = Field(min_length=1)
    durable: bool = True
    auto_delete: bool = False
    internal: bool = False
    arguments: dict[str, Any] = Field(default_factory=dict)


class CreateQueueRequest(ResourceRequest):
    """Request to declare a queue."""

    name: str = Field(min_length=1, max_length=255, pattern=RESOURCE_NAME_PATTERN)
    vhost: str = Field(min_length=1)
    durable: bool = True
    auto_delete: bool = False
    exclusive: bool = False
    arguments: dict[str, Any] = Field(default_factory=dict)
    node: str | None = Field(default=None, max_length=255)


class CreateBindingRequest(ResourceRequest):
    """Request to bind an exchange to a queue or another exchange."""

    routing_key: str = Field(default="", max_length=255)
    arguments: dict[str, Any] = Field(default_factory=dict)


class PublishMessageRequest(ResourceRequest):
    """Request to publish a single message."""

    routing_key: str = Field(default="", max_length=255)
    properties: dict[str, Any] = Field(default_factory=dict)
    payload: str = Field(max_length=1_048_576)
    payload_encoding: str = Field(default="string", pattern="^(string|base64)$")


class MoveMessagesRequest(ResourceRequest):
    """Request to move messages from a queue to another queue with a shovel."""

    destination_queue: str = Field(min_length=1, max_length=255)
    shovel_name: str | None = Field(default=None, max_length=255, pattern=RESOURCE_NAME_PATTERN)
    source_uri: str = "amqp://"
    destination_uri: str = "amqp://"
    delete_after: str = Field(default="queue-length", pattern="^(queue-length|never)$")
    ack_mode: str = Field(default="on-confirm", pattern="^(on-confirm|on-publish|no-ack)$")


class PublishResponse(BaseModel):
    """Outcome of a publish: whether RabbitMQ routed the message to any queue."""

    routed: bool


class BindingCreatedResponse(BaseModel):
    properties_key: str | None = Field(default=None, serialization_alias="propertiesKey")
