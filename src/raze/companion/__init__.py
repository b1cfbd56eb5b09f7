"""Companion file service: HTTP client, availability supervisor and server."""

from .client import DEFAULT_PORT, CompanionClient, ServiceError
from .supervisor import AvailabilitySupervisor


def create_companion(port: int = DEFAULT_PORT, *, timeout: float = 10.0) -> tuple[
    CompanionClient, AvailabilitySupervisor
]:
    client = CompanionClient(port=port, timeout=timeout)
    return client, AvailabilitySupervisor(client)


__all__ = [
    "DEFAULT_PORT",
    "AvailabilitySupervisor",
    "CompanionClient",
    "ServiceError",
    "create_companion",
]
