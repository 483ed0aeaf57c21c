# ============================================================================
# EXTRACT-LOAD LISTENER
# ============================================================================
# STATUS: Core - Service Bus subscription consumer
# PURPOSE: Receive load requests and hand them to the orchestrator
# EXPORTS: ExtractLoadListener
# DEPENDENCIES: azure-servicebus (aio), extract_load.orchestrator
# ============================================================================
"""
Extract-Load Listener

Polls the request topic subscription. For each message:
1. Parse the JSON body into a QueueMessage
2. Run the load via LoadOrchestrator (which reports the outcome)
3. Complete the message

Delivery is at-least-once: a message is completed only after its outcome
was reported. Unparseable bodies are dead-lettered; an unexpected crash in
the orchestrator abandons the message so Service Bus redelivers it, which
delete-before-insert makes safe.
"""

import asyncio
import json
from typing import Optional

from azure.servicebus import ServiceBusReceivedMessage
from azure.servicebus.aio import AutoLockRenewer, ServiceBusReceiver
from pydantic import ValidationError

from config.queue_config import QueueConfig
from infrastructure.service_bus import ServiceBusAdapter
from util_logger import LoggerFactory, ComponentType
from .contracts import QueueMessage
from .orchestrator import LoadOrchestrator

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ExtractLoadListener")


class ExtractLoadListener:
    """
    Listens for load requests on the request subscription.

    Runs until request_stop() is called (SIGTERM/SIGINT in production).
    """

    def __init__(self, bus: ServiceBusAdapter, orchestrator: LoadOrchestrator, config: QueueConfig):
        self.bus = bus
        self.orchestrator = orchestrator
        self.config = config
        self._receiver: Optional[ServiceBusReceiver] = None
        self._lock_renewer: Optional[AutoLockRenewer] = None
        self._running = False
        self._loads_succeeded = 0
        self._loads_failed = 0

    async def start(self) -> None:
        """Open the subscription receiver."""
        logger.info(
            f"Starting listener on {self.config.request_topic}/{self.config.request_subscription}"
        )
        self._lock_renewer = AutoLockRenewer(max_lock_renewal_duration=self.config.max_lock_renewal_seconds)
        self._receiver = self.bus.get_request_receiver()
        self._running = True

    async def stop(self) -> None:
        """Stop listener and cleanup resources."""
        self._running = False

        if self._receiver:
            await self._receiver.close()
            self._receiver = None

        if self._lock_renewer:
            await self._lock_renewer.close()
            self._lock_renewer = None

        logger.info(
            f"Listener stopped. Succeeded: {self._loads_succeeded}, Failed: {self._loads_failed}"
        )

    def request_stop(self) -> None:
        """Finish the current batch, then leave run()."""
        logger.info("Shutdown requested")
        self._running = False

    async def run(self) -> None:
        """Main listener loop."""
        await self.start()
        try:
            while self._running:
                await self._receive_batch()
        finally:
            await self.stop()

    async def _receive_batch(self) -> None:
        """Receive up to max_concurrent_messages and process them concurrently."""
        try:
            messages = await self._receiver.receive_messages(
                max_message_count=self.config.max_concurrent_messages,
                max_wait_time=self.config.max_wait_seconds,
            )
        except Exception as e:
            logger.exception(f"Error receiving messages: {e}")
            await asyncio.sleep(1)
            return

        if not messages:
            return

        logger.debug(f"Received {len(messages)} messages")
        for message in messages:
            self._lock_renewer.register(self._receiver, message)
        await asyncio.gather(*(self._process_message(msg) for msg in messages))

    async def _process_message(self, message: ServiceBusReceivedMessage) -> None:
        """Process a single Service Bus message."""
        try:
            body = json.loads(str(message))
            queue_message = QueueMessage.from_queue_message(body)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Invalid message body ({message.message_id}): {e}")
            await self._receiver.dead_letter_message(
                message,
                reason="InvalidMessage",
                error_description=str(e)[:1000],
            )
            self._loads_failed += 1
            return

        try:
            result = await self.orchestrator.process(queue_message)
        except Exception as e:
            logger.exception(f"Unexpected error processing message {queue_message.message_id}: {e}")
            await self._receiver.abandon_message(message)
            self._loads_failed += 1
            return

        await self._receiver.complete_message(message)
        if result.success:
            self._loads_succeeded += 1
        else:
            self._loads_failed += 1

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "loads_succeeded": self._loads_succeeded,
            "loads_failed": self._loads_failed,
        }
