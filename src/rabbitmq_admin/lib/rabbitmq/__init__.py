"""RabbitMQ Management HTTP API client.

Public API:
    - RabbitMQManagementClient: Async client for one cluster's Management API
    - RabbitMQApiError: Transport or HTTP error from the Management API
    - encode_vhost / decode_vhost: Path-safe virtual host encoding
"""

from rabbitmq_admin.lib.rabbitmq.client import (
    RabbitMQApiError,
    RabbitMQManagementClient,
    decode_vhost,
    encode_vhost,
)

__all__ = [
    "RabbitMQApiError",
    "RabbitMQManagementClient",
    "decode_vhost",
    "encode_vhost",
]
