# ============================================================================
# SERVICE BUS ADAPTER
# ============================================================================
# STATUS: Infrastructure - request subscription and response topic
# PURPOSE: Async Service Bus client factory, topic publishing and
#          subscription receivers
# EXPORTS: ServiceBusAdapter
# DEPENDENCIES: azure-servicebus (aio), azure-identity (aio)
# ============================================================================
"""
Service Bus Adapter

Thin wrapper over azure.servicebus.aio. Messages are JSON bodies with
content_type application/json and a configured time-to-live; the outcome
message carries the request's id as correlation_id.

Authentication:
    - QUEUECONNECTION set: connection string (local development)
    - otherwise: DefaultAzureCredential against SERVICE_BUS_NAMESPACE
"""

import json
from datetime import timedelta
from typing import Any, Dict, Optional

from azure.identity.aio import DefaultAzureCredential
from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver
from azure.servicebus.exceptions import ServiceBusError as AzureServiceBusError

from config.queue_config import QueueConfig
from exceptions import ConfigurationError, ServiceBusError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "ServiceBusAdapter")


class ServiceBusAdapter:
    """Owns one async ServiceBusClient for the worker's lifetime."""

    def __init__(self, config: QueueConfig, client: Optional[ServiceBusClient] = None):
        self.config = config
        self._client = client
        self._credential: Optional[DefaultAzureCredential] = None

    def _get_client(self) -> ServiceBusClient:
        if self._client is None:
            if self.config.connection_string:
                logger.info("Using connection string authentication for Service Bus")
                self._client = ServiceBusClient.from_connection_string(self.config.connection_string)
            elif self.config.namespace:
                logger.info(f"Using DefaultAzureCredential for Service Bus: {self.config.namespace}")
                self._credential = DefaultAzureCredential()
                self._client = ServiceBusClient(
                    fully_qualified_namespace=self.config.namespace,
                    credential=self._credential,
                )
            else:
                raise ConfigurationError("Set QUEUECONNECTION or SERVICE_BUS_NAMESPACE")
        return self._client

    def build_message(
        self,
        body: Dict[str, Any],
        message_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ServiceBusMessage:
        return ServiceBusMessage(
            body=json.dumps(body),
            content_type="application/json",
            time_to_live=timedelta(hours=self.config.message_ttl_hours),
            message_id=message_id,
            correlation_id=correlation_id,
        )

    async def publish(
        self,
        topic: str,
        body: Dict[str, Any],
        message_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """
        Send one JSON message to a topic.

        Raises:
            ServiceBusError: The SDK rejected or failed to deliver the send
        """
        message = self.build_message(body, message_id=message_id, correlation_id=correlation_id)
        try:
            async with self._get_client().get_topic_sender(topic_name=topic) as sender:
                await sender.send_messages(message)
        except AzureServiceBusError as e:
            raise ServiceBusError(f"Failed to publish to {topic}: {e}") from e
        logger.debug(f"Message sent to Service Bus topic {topic}, correlation_id={correlation_id}")

    def get_request_receiver(self) -> ServiceBusReceiver:
        """Receiver on the request topic's worker subscription."""
        return self._get_client().get_subscription_receiver(
            topic_name=self.config.request_topic,
            subscription_name=self.config.request_subscription,
            max_wait_time=self.config.max_wait_seconds,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None
