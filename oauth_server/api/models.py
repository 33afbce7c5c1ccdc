"""API-specific models and data structures."""

from pydantic import BaseModel


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    service: str
    timestamp: str
    storage: str
    active_tokens: int
    active_codes: int
    registered_clients: int
