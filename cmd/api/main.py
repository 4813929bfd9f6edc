"""
FastAPI Application Entry Point.

REST API server for Catalog Service.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Union

import uvicorn
from fastapi import FastAPI

from config.settings import Settings, get_settings
from internal.infrastructure.kafka.producer import (
    KafkaProductNotifier,
    LoggingProductNotifier,
)
from internal.infrastructure.memory.repository import InMemoryProductRepository
from internal.infrastructure.metrics import CatalogMetrics
from internal.infrastructure.postgres.migrations import run_migrations
from internal.infrastructure.postgres.repository import (
    PostgresProductRepository,
    connect_with_retry,
)
from internal.transport.http.app import build_app
from internal.transport.http.v1.handlers import set_dependencies
from internal.usecase.catalog_service import CatalogService
from pkg.logger.logger import setup_logging, get_logger


settings = get_settings()

# Setup logging
setup_logging(level=settings.log_level, json_format=settings.json_logs)

logger = get_logger(__name__)

metrics = CatalogMetrics()


def print_log_header(config: Settings) -> None:
    """Log application identity at startup."""
    if not config.json_logs:
        logger.info("=============================================")
        logger.info(f"    Application: {config.app_name}")
        logger.info(f"       Revision: {config.revision}")
        logger.info(f"        Profile: {config.profile}")
        logger.info(f"    Tag Version: {config.app_version}")
        logger.info("=============================================")
    else:
        logger.info(
            "Application starting",
            application=config.app_name,
            revision=config.revision,
            profile=config.profile,
            version=config.app_version,
        )

    if config.print_configs:
        logger.info("Printing configurations...")
        for key, value in config.safe_dump().items():
            logger.info("config", key=key, value=value)


async def run_startup_migrations(config: Settings) -> None:
    """Apply pending SQL migrations; failures are logged and startup continues."""
    logger.info("Executing migrations")
    try:
        await run_migrations(config.dsn)
    except Exception as e:
        logger.warning("Error executing migrations", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of resources.
    """
    print_log_header(settings)

    db_pool = None
    if settings.db_backend == "memory":
        logger.warning("Using in-memory product store, data is not durable")
        store = InMemoryProductRepository()
    else:
        if settings.db_migrate:
            await run_startup_migrations(settings)

        logger.info(
            "Connecting to the database",
            host=settings.db_host,
            db_name=settings.db_name,
        )
        db_pool = await connect_with_retry(
            settings.dsn,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            attempts=settings.db_connect_attempts,
            delay_seconds=settings.db_connect_retry_seconds,
        )
        logger.info("Database pool created")
        store = PostgresProductRepository(db_pool, metrics=metrics)

    notifier: Union[KafkaProductNotifier, LoggingProductNotifier]
    if settings.queue_mock:
        notifier = LoggingProductNotifier(topic=settings.kafka_product_topic)
    else:
        logger.info("Connecting to Kafka", bootstrap_servers=settings.kafka_bootstrap_servers)
        notifier = KafkaProductNotifier(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            topic=settings.kafka_product_topic,
            client_id=settings.kafka_client_id,
        )
    await notifier.start()

    catalog_service = CatalogService(
        store=store,
        notifier=notifier,
        metrics=metrics,
        publish_timeout_seconds=settings.publish_timeout_seconds,
    )
    set_dependencies(
        catalog_service=catalog_service,
        request_timeout_seconds=settings.request_timeout_seconds,
    )

    logger.info("Catalog Service API started", port=settings.port)

    yield

    logger.info("Shutting down Catalog Service API...")

    set_dependencies(catalog_service=None)
    await notifier.stop()

    if db_pool:
        await db_pool.close()

    logger.info("Catalog Service API shutdown complete")


app = build_app(
    metrics=metrics,
    lifespan=lifespan,
    cors_origins=settings.get_cors_origins(),
    version=settings.app_version,
)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
