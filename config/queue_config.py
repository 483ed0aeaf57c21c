"""
Azure Service Bus Queue Configuration.

Provides configuration for:
    - Service Bus connection settings
    - Request topic + subscription the worker listens on
    - Response topic load outcomes are published to
    - Message-level concurrency

Topic Architecture:
    - extract-load-request / extract-load-processor: inbound load requests
    - extract-load-response: one outcome message per request

Exports:
    QueueConfig: Pydantic queue configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import QueueDefaults


class QueueConfig(BaseModel):
    """
    Azure Service Bus configuration.

    Either a connection string (local development) or a fully qualified
    namespace (managed identity) must be set.
    """

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (QUEUECONNECTION)"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Fully qualified namespace for DefaultAzureCredential auth"
    )

    request_topic: str = Field(
        default=QueueDefaults.REQUEST_TOPIC,
        description="Topic carrying extract-load requests"
    )

    request_subscription: str = Field(
        default=QueueDefaults.REQUEST_SUBSCRIPTION,
        description="Subscription on the request topic owned by this worker"
    )

    response_topic: str = Field(
        default=QueueDefaults.RESPONSE_TOPIC,
        description="Topic load outcomes are published to"
    )

    max_concurrent_messages: int = Field(
        default=QueueDefaults.MAX_CONCURRENT_MESSAGES,
        ge=1,
        le=64,
        description="Loads processed concurrently by one worker"
    )

    max_wait_seconds: int = Field(
        default=QueueDefaults.MAX_WAIT_SECONDS,
        ge=1,
        le=60,
        description="Seconds a receive call waits for messages"
    )

    message_ttl_hours: int = Field(
        default=QueueDefaults.MESSAGE_TTL_HOURS,
        ge=1,
        description="Time-to-live of published outcome messages"
    )

    max_lock_renewal_seconds: int = Field(
        default=QueueDefaults.MAX_LOCK_RENEWAL_SECONDS,
        ge=60,
        description="Upper bound on message lock renewal while a load runs"
    )

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("QUEUECONNECTION"),
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE"),
            request_topic=os.environ.get("EXTRACT_LOAD_REQUEST_TOPIC", QueueDefaults.REQUEST_TOPIC),
            request_subscription=os.environ.get(
                "EXTRACT_LOAD_REQUEST_SUBSCRIPTION", QueueDefaults.REQUEST_SUBSCRIPTION
            ),
            response_topic=os.environ.get("EXTRACT_LOAD_RESPONSE_TOPIC", QueueDefaults.RESPONSE_TOPIC),
            max_concurrent_messages=int(
                os.environ.get("SERVICE_BUS_MAX_CONCURRENT_MESSAGES", str(QueueDefaults.MAX_CONCURRENT_MESSAGES))
            ),
            max_wait_seconds=int(os.environ.get("SERVICE_BUS_MAX_WAIT_SECONDS", str(QueueDefaults.MAX_WAIT_SECONDS))),
            max_lock_renewal_seconds=int(
                os.environ.get("SERVICE_BUS_MAX_LOCK_RENEWAL_SECONDS", str(QueueDefaults.MAX_LOCK_RENEWAL_SECONDS))
            ),
        )
