"""Wire settings, logging, metrics and connection profiles together."""

from typing import Optional

import structlog

from ftps_client.client.session import SecureFtpClient
from ftps_client.config.connections import ConnectionRegistry, load_connections
from ftps_client.config.settings import Settings, get_settings
from ftps_client.logging import setup_logging
from ftps_client.metrics.prometheus import MetricsCollector, start_metrics_server


logger = structlog.get_logger(__name__)


def configure(settings: Optional[Settings] = None) -> ConnectionRegistry:
    """Apply settings and load the configured connection profiles.

    Args:
        settings: Settings to apply; the cached environment settings when omitted.

    Returns:
        Registry of connection profiles, empty when no connections file is set.
    """
    settings = settings or get_settings()

    setup_logging(
        level=settings.logging.level,
        format=settings.logging.format,
    )

    if settings.metrics.enabled:
        start_metrics_server(settings.metrics.port)

    registry = ConnectionRegistry()
    if settings.connections_path:
        load_connections(
            settings.connections_path,
            registry=registry,
            defaults=settings.client,
        )

    logger.info(
        "ftps_client_configured",
        connections=registry.list_connections(),
        config_path=settings.config_path,
    )
    return registry


def open_client(
    connection_id: str,
    registry: ConnectionRegistry,
    metrics: Optional[MetricsCollector] = None,
) -> SecureFtpClient:
    """Create a client for a registered connection profile.

    Raises:
        KeyError: If the connection is not registered.
    """
    return SecureFtpClient.from_connection(registry.get(connection_id), metrics=metrics)
