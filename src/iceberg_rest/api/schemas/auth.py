"""Login/logout API schemas.

The login body is flat and camelCase; which fields are required depends on
authType. Scheme-specific checks live in LoginRequest.to_credentials() so
the client gets the same short messages for each missing field.
"""

from __future__ import annotations

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
]

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from iceberg_rest.constants import DEFAULT_OAUTH_SCOPE, DEFAULT_OAUTH_TOKEN_PATH, DEFAULT_SIGV4_SERVICE
from iceberg_rest.exceptions import LoginValidationError
from iceberg_rest.sessions.credentials import (
    AuthScheme,
    BearerCredentials,
    ClientCredentials,
    CredentialRecord,
    SigV4Credentials,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelModel):
    """Body of POST /api/auth/login."""

    endpoint: str | None = None
    auth_type: AuthScheme = AuthScheme.BEARER
    warehouse: str | None = None

    # bearer
    token: str | None = None

    # oauth2
    client_id: str | None = None
    client_secret: str | None = None
    oauth_endpoint: str | None = None
    oauth_scope: str | None = None

    # sigv4
    aws_access_key: str | None = None
    aws_secret_key: str | None = None
    aws_region: str | None = None
    aws_service: str | None = None

    def normalized_endpoint(self) -> str:
        """Catalog base URL without trailing slash.

        Raises:
            LoginValidationError: If missing or not an http(s) URL.
        """
        if not self.endpoint or not self.endpoint.strip():
            raise LoginValidationError("Missing endpoint")
        endpoint = self.endpoint.strip().rstrip("/")
        try:
            url = httpx.URL(endpoint)
        except httpx.InvalidURL as e:
            raise LoginValidationError("Invalid endpoint URL") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise LoginValidationError("Invalid endpoint URL")
        return endpoint

    def to_credentials(self, endpoint: str) -> CredentialRecord:
        """Build the credential record for the chosen scheme.

        Defaults: oauth2 token endpoint is <endpoint>/v1/oauth/tokens with
        scope PRINCIPAL_ROLE:ALL; sigv4 service is s3tables.

        Args:
            endpoint: Normalized catalog endpoint.

        Raises:
            LoginValidationError: If a required field is missing.
        """
        if self.auth_type is AuthScheme.BEARER:
            if not self.token:
                raise LoginValidationError("Missing bearer token")
            return BearerCredentials(token=self.token)

        if self.auth_type is AuthScheme.OAUTH2:
            if not self.client_id or not self.client_secret:
                raise LoginValidationError("Missing OAuth2 client ID or secret")
            return ClientCredentials(
                token_endpoint=self.oauth_endpoint or f"{endpoint}{DEFAULT_OAUTH_TOKEN_PATH}",
                client_id=self.client_id,
                client_secret=self.client_secret,
                scope=self.oauth_scope or DEFAULT_OAUTH_SCOPE,
            )

        if not self.aws_access_key or not self.aws_secret_key or not self.aws_region:
            raise LoginValidationError("Missing AWS credentials")
        return SigV4Credentials(
            access_key=self.aws_access_key,
            secret_key=self.aws_secret_key,
            region=self.aws_region,
            service=self.aws_service or DEFAULT_SIGV4_SERVICE,
        )


class LoginResponse(_CamelModel):
    """Session handle returned on successful login."""

    session_id: str
    expires_at: int


class LogoutResponse(BaseModel):
    success: bool = True
