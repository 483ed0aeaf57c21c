# ============================================================================
# RESULT REPORTER
# ============================================================================
# STATUS: Core - load outcome publishing
# PURPOSE: Publish one success/failure message per request to the response topic
# EXPORTS: ResultReporter
# DEPENDENCIES: infrastructure.service_bus, extract_load.contracts
# ============================================================================
"""
Result Reporter

The outcome message reuses the request envelope (same messageId and
messageType) with data replaced by an ExtractLoadResponse. The Service Bus
correlation_id is the request's messageId.

By the time report() runs the load's outcome is final, so publish failures
are logged and swallowed.
"""

from typing import Optional

from infrastructure.service_bus import ServiceBusAdapter
from util_logger import LoggerFactory, ComponentType
from .contracts import ExtractLoadResponse, QueueMessage

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ResultReporter")


def _echo(value) -> Optional[str]:
    """Request fields are echoed as strings whatever type the sender used."""
    return None if value is None else str(value)


class ResultReporter:
    """Publishes load outcomes to the response topic."""

    def __init__(self, bus: ServiceBusAdapter, response_topic: str):
        self.bus = bus
        self.response_topic = response_topic

    def build_response(self, original_message: QueueMessage, success: bool, detail: str) -> QueueMessage:
        request_data = original_message.data or {}
        response = ExtractLoadResponse(
            message=detail,
            success=success,
            data_type=_echo(request_data.get("data_type")),
            file_upload_path=_echo(request_data.get("file_upload_path")),
            tdei_dataset_id=_echo(request_data.get("tdei_dataset_id")),
        )
        return original_message.model_copy(update={"data": response.model_dump()})

    async def report(self, original_message: QueueMessage, success: bool, detail: str) -> bool:
        """
        Publish the outcome of one load.

        Returns:
            True if the message was sent, False if publishing failed
        """
        logger.info(
            f"Reporting {'success' if success else 'failure'} for message {original_message.message_id}: {detail}"
        )
        try:
            outgoing = self.build_response(original_message, success, detail)
            await self.bus.publish(
                self.response_topic,
                outgoing.to_dict(),
                message_id=original_message.message_id,
                correlation_id=original_message.message_id,
            )
        except Exception as e:
            logger.error(
                f"Failed to publish outcome for message {original_message.message_id}: {e}",
                exc_info=True,
            )
            return False
        return True
