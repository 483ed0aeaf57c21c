"""
Permission Check Configuration.

The worker asks the hosted auth service whether the requesting user holds
one of the roles allowed for the dataset's data type. Leaving AUTH_HOST
unset disables the check (local development).

Exports:
    AuthConfig: Pydantic auth configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import AuthDefaults


class AuthConfig(BaseModel):
    """Hosted permission service settings."""

    permission_url: Optional[str] = Field(
        default=None,
        description="Full hasPermission endpoint URL; None disables the check"
    )

    timeout_seconds: float = Field(
        default=AuthDefaults.TIMEOUT_SECONDS,
        gt=0,
        description="HTTP timeout for the permission call"
    )

    @property
    def enabled(self) -> bool:
        return bool(self.permission_url)

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        auth_host = os.environ.get("AUTH_HOST")
        return cls(
            permission_url=f"{auth_host.rstrip('/')}{AuthDefaults.PERMISSION_PATH}" if auth_host else None,
            timeout_seconds=float(os.environ.get("AUTH_TIMEOUT_SECONDS", str(AuthDefaults.TIMEOUT_SECONDS))),
        )
