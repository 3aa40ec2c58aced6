"""Cluster connection schemas."""

from pydantic import BaseModel, Field, HttpUrl


class ClusterConnectionCreateRequest(BaseModel):
    """Request to register a RabbitMQ cluster."""

    name: str = Field(min_length=1, max_length=100)
    api_url: HttpUrl
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=255)
    description: str | None = None
