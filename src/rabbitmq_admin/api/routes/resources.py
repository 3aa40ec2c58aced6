"""Audited RabbitMQ write endpoints.

All routes live under /rabbitmq/{cluster_id}/resources. Virtual host path
segments are base64-encoded so that names such as ``/`` survive routing.
Callers must be administrators or assigned to the cluster.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, status
from fastapi.exceptions import RequestValidationError

from rabbitmq_admin.core.config import Settings, get_settings
from rabbitmq_admin.core.dependencies import get_accessible_cluster, get_current_user, get_write_auditor
from rabbitmq_admin.lib.rabbitmq import decode_vhost
from rabbitmq_admin.models.cluster_connection import ClusterConnection
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.resources import (
    BindingCreatedResponse,
    CreateBindingRequest,
    CreateExchangeRequest,
    CreateQueueRequest,
    MoveMessagesRequest,
    PublishMessageRequest,
    PublishResponse,
)
from rabbitmq_admin.services import resource_service
from rabbitmq_admin.services.audit_interceptor import WriteOperationAuditor
from rabbitmq_admin.services.resource_service import WriteContext

resources_router = APIRouter(prefix="/rabbitmq/{cluster_id}/resources", tags=["resources"])


def get_write_context(
    cluster: Annotated[ClusterConnection, Depends(get_accessible_cluster)],
    current_user: Annotated[User, Depends(get_current_user)],
    auditor: Annotated[WriteOperationAuditor, Depends(get_write_auditor)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> WriteContext:
    client = resource_service.get_management_client(cluster, settings.rabbitmq_request_timeout)
    return WriteContext(auditor=auditor, client=client, actor=current_user, cluster=cluster)


def vhost_path(vhost: Annotated[str, Path(description="Base64-encoded virtual host")]) -> str:
    try:
        return decode_vhost(vhost)
    except ValueError as e:
        error = {"type": "value_error", "loc": ("path", "vhost"), "msg": str(e), "input": vhost}
        raise RequestValidationError([error]) from e


WriteCtx = Annotated[WriteContext, Depends(get_write_context)]
VHost = Annotated[str, Depends(vhost_path)]


@resources_router.put("/exchanges", status_code=status.HTTP_204_NO_CONTENT)
async def create_exchange(ctx: WriteCtx, request: CreateExchangeRequest) -> None:
    """Declare an exchange."""
    await resource_service.create_exchange(ctx, request)


@resources_router.delete("/exchanges/{vhost}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exchange(ctx: WriteCtx, vhost: VHost, name: str, if_unused: bool = False) -> None:
    """Delete an exchange, optionally only when it has no bindings."""
    await resource_service.delete_exchange(ctx, vhost, name, if_unused=if_unused)


@resources_router.put("/queues", status_code=status.HTTP_204_NO_CONTENT)
async def create_queue(ctx: WriteCtx, request: CreateQueueRequest) -> None:
    """Declare a queue."""
    await resource_service.create_queue(ctx, request)


@resources_router.delete("/queues/{vhost}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_queue(
    ctx: WriteCtx,
    vhost: VHost,
    name: str,
    if_empty: bool = False,
    if_unused: bool = False,
) -> None:
    """Delete a queue."""
    await resource_service.delete_queue(ctx, vhost, name, if_empty=if_empty, if_unused=if_unused)


@resources_router.delete("/queues/{vhost}/{name}/contents", status_code=status.HTTP_204_NO_CONTENT)
async def purge_queue(ctx: WriteCtx, vhost: VHost, name: str) -> None:
    """Remove all ready messages from a queue."""
    await resource_service.purge_queue(ctx, vhost, name)


@resources_router.post(
    "/bindings/{vhost}/e/{source}/q/{destination}",
    status_code=status.HTTP_201_CREATED,
    response_model=BindingCreatedResponse,
)
async def create_queue_binding(
    ctx: WriteCtx,
    vhost: VHost,
    source: str,
    destination: str,
    request: CreateBindingRequest,
) -> BindingCreatedResponse:
    """Bind an exchange to a queue."""
    key = await resource_service.create_binding(ctx, vhost, source, "q", destination, request)
    return BindingCreatedResponse(properties_key=key)


@resources_router.post(
    "/bindings/{vhost}/e/{source}/e/{destination}",
    status_code=status.HTTP_201_CREATED,
    response_model=BindingCreatedResponse,
)
async def create_exchange_binding(
    ctx: WriteCtx,
    vhost: VHost,
    source: str,
    destination: str,
    request: CreateBindingRequest,
) -> BindingCreatedResponse:
    """Bind an exchange to another exchange."""
    key = await resource_service.create_binding(ctx, vhost, source, "e", destination, request)
    return BindingCreatedResponse(properties_key=key)


@resources_router.delete(
    "/bindings/{vhost}/e/{source}/{destination_type}/{destination}/{properties_key}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_binding(
    ctx: WriteCtx,
    vhost: VHost,
    source: str,
    destination_type: Literal["q", "e"],
    destination: str,
    properties_key: str,
) -> None:
    """Delete a binding identified by its properties key."""
    await resource_service.delete_binding(ctx, vhost, source, destination_type, destination, properties_key)


@resources_router.post("/exchanges/{vhost}/{exchange}/publish", response_model=PublishResponse)
async def publish_to_exchange(
    ctx: WriteCtx,
    vhost: VHost,
    exchange: str,
    request: PublishMessageRequest,
) -> PublishResponse:
    """Publish a message to an exchange."""
    routed = await resource_service.publish_to_exchange(ctx, vhost, exchange, request)
    return PublishResponse(routed=routed)


@resources_router.post("/queues/{vhost}/{queue}/publish", response_model=PublishResponse)
async def publish_to_queue(
    ctx: WriteCtx,
    vhost: VHost,
    queue: str,
    request: PublishMessageRequest,
) -> PublishResponse:
    """Publish a message directly to a queue through the default exchange."""
    routed = await resource_service.publish_to_queue(ctx, vhost, queue, request)
    return PublishResponse(routed=routed)


@resources_router.post("/queues/{vhost}/{queue}/move", status_code=status.HTTP_202_ACCEPTED)
async def move_messages(
    ctx: WriteCtx,
    vhost: VHost,
    queue: str,
    request: MoveMessagesRequest,
) -> dict:
    """Move messages to another queue by creating a dynamic shovel."""
    shovel_name = await resource_service.move_messages(ctx, vhost, queue, request)
    return {"shovelName": shovel_name}
