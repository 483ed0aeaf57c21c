# ============================================================================
# EXTRACT-LOAD WORKER ENTRY POINT
# ============================================================================
# STATUS: Entry point - long-running worker process
# PURPOSE: Build the component graph from AppConfig and run the listener
#          until SIGTERM/SIGINT
# EXPORTS: ExtractLoadWorker, main
# DEPENDENCIES: config, infrastructure.*, extract_load.*
# ============================================================================
"""
Extract-Load Worker

    python -m extract_load
    osw-extract-load

Startup order: validate config, open the connection pool, then the
storage, bus and auth clients, then start listening. Shutdown closes them
in reverse once the batch in progress has finished.
"""

import asyncio
import signal
import sys
from typing import Optional

from config import AppConfig, debug_config, get_config
from exceptions import ConfigurationError
from infrastructure.authorizer import HostedAuthorizer
from infrastructure.blob import BlobStorageClient
from infrastructure.connection_pool import DataSource
from infrastructure.service_bus import ServiceBusAdapter
from util_logger import LoggerFactory, ComponentType
from .listener import ExtractLoadListener
from .orchestrator import LoadOrchestrator
from .reporter import ResultReporter

logger = LoggerFactory.create_logger(ComponentType.CONTROLLER, "ExtractLoadWorker")


class ExtractLoadWorker:
    """Owns every long-lived client for one worker process."""

    def __init__(self, config: AppConfig):
        errors = config.validate_runtime()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {errors}")
        self.config = config
        self.data_source = DataSource(config.database)
        self.storage = BlobStorageClient(config.storage)
        self.bus = ServiceBusAdapter(config.queues)
        self.authorizer = HostedAuthorizer(config.auth)
        self.reporter = ResultReporter(self.bus, config.queues.response_topic)
        self.listener: Optional[ExtractLoadListener] = None

    async def run(self) -> None:
        logger.info(f"Starting {self.config.app_name} ({self.config.environment})")
        logger.debug(f"Configuration: {debug_config()}")
        if not self.authorizer.enabled:
            logger.warning("AUTH_HOST not set; permission checks are disabled")

        await self.data_source.open()
        try:
            orchestrator = LoadOrchestrator.create(
                self.config, self.data_source, self.storage, self.reporter, self.authorizer
            )
            self.listener = ExtractLoadListener(self.bus, orchestrator, self.config.queues)

            loop = asyncio.get_running_loop()
            for signum in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(signum, self.listener.request_stop)

            await self.listener.run()
        finally:
            await self.close()

    async def close(self) -> None:
        await self.authorizer.close()
        await self.bus.close()
        await self.storage.close()
        await self.data_source.close()
        logger.info("Worker shut down")


def main():
    """Entry point for the extract-load worker."""
    try:
        worker = ExtractLoadWorker(get_config())
        asyncio.run(worker.run())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
