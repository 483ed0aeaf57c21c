# ============================================================================
# PERMISSION AUTHORIZER
# ============================================================================
# STATUS: Infrastructure - hosted permission check
# PURPOSE: Ask the auth service whether a user may load a data type for a
#          project group
# EXPORTS: HostedAuthorizer, ALLOWED_ROLES
# DEPENDENCIES: httpx, config.auth_config
# ============================================================================
"""
Hosted Authorizer

GET {AUTH_HOST}/api/v1/hasPermission with the user, project group and the
data type's allowed roles; the service answers with a JSON boolean. Any
role is sufficient (affirmative=false).

A failed call (timeout, non-2xx, unreadable body) counts as denied.
"""

from typing import Dict, List, Optional

import httpx

from config.auth_config import AuthConfig
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HostedAuthorizer")

ALLOWED_ROLES: Dict[str, List[str]] = {
    "osw": ["tdei_admin", "poc", "osw_data_generator"],
    "flex": ["tdei_admin", "poc", "flex_data_generator"],
    "pathways": ["tdei_admin", "poc", "pathways_data_generator"],
}


class HostedAuthorizer:
    """Permission check against the hosted auth service."""

    def __init__(self, config: AuthConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def has_permission(self, user_id: str, project_group_id: Optional[str], data_type: str) -> bool:
        """
        Check that user_id holds one of data_type's allowed roles.

        Returns:
            True when permitted or when the check is disabled
        """
        if not self.enabled:
            logger.debug("Permission check disabled (AUTH_HOST unset)")
            return True

        roles = ALLOWED_ROLES.get(data_type)
        if not roles:
            return False

        client = await self._get_client()
        params = {
            "userId": user_id,
            "projectGroupId": project_group_id or "",
            "permissions": roles,
            "affirmative": "false",
        }

        try:
            response = await client.get(self.config.permission_url, params=params)
            response.raise_for_status()
            granted = response.json() is True
        except httpx.TimeoutException as e:
            logger.warning(f"Permission check timed out for user {user_id}: {e}")
            return False
        except httpx.HTTPStatusError as e:
            logger.warning(f"Permission check returned {e.response.status_code} for user {user_id}")
            return False
        except httpx.RequestError as e:
            logger.warning(f"Permission check request failed for user {user_id}: {e}")
            return False
        except ValueError as e:
            logger.warning(f"Permission check returned an unreadable body: {e}")
            return False

        if not granted:
            logger.info(f"User {user_id} lacks {roles} for project group {project_group_id}")
        return granted
