"""Credentials for the blob container that holds pipeline media.

Exactly one of these must be configured under ``storage:``:

- ``connection_string``: account key or SAS; the usual choice locally
- ``use_managed_identity`` with ``account_url``: executors running in Azure
- ``tenant_id``, ``client_id``, ``client_secret`` and ``account_url``:
  a service principal, typically in CI

Keep secrets in REELGRAPH_STORAGE__* environment variables rather than
in the settings file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self
from urllib.parse import urlparse

from pydantic import BaseModel, model_validator

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

_AUTH_METHODS_HINT = (
    "connection_string, "
    "managed identity (use_managed_identity + account_url), or "
    "service principal (tenant_id + client_id + client_secret + account_url)"
)


class AzureAuthConfig(BaseModel):
    """Validated blob storage credentials.

    Built from StorageSettings.auth_config() only when the remote store
    is actually opened, e.g.:

        storage:
          use_managed_identity: true
          account_url: "https://reelgraphmedia.blob.core.windows.net"
          container: media
    """

    model_config = {"extra": "forbid", "frozen": True}

    connection_string: str | None = None
    use_managed_identity: bool = False
    account_url: str | None = None
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None

    @model_validator(mode="after")
    def validate_auth_method(self) -> Self:
        """Ensure exactly one auth method is configured.

        Raises:
            ValueError: If zero or multiple auth methods are configured,
                or a service principal is only partly configured.
        """
        has_conn_string = bool(self.connection_string and self.connection_string.strip())
        has_managed_identity = self.use_managed_identity and self.account_url is not None
        sp_fields = {
            "tenant_id": self.tenant_id,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "account_url": self.account_url,
        }
        has_service_principal = all(v is not None for v in sp_fields.values())

        active_count = sum([has_conn_string, has_managed_identity, has_service_principal])
        if active_count > 1:
            raise ValueError(
                "Multiple authentication methods configured. Provide exactly one of: "
                + _AUTH_METHODS_HINT
            )

        if self.use_managed_identity and not self.account_url:
            raise ValueError(
                "Managed Identity auth requires account_url. "
                "Example: https://mystorageaccount.blob.core.windows.net"
            )

        partial_sp = any(
            sp_fields[name] is not None for name in ("tenant_id", "client_id", "client_secret")
        )
        if partial_sp and not has_service_principal and active_count == 0:
            missing = [name for name, value in sp_fields.items() if value is None]
            raise ValueError(
                f"Service Principal auth requires all fields. Missing: {', '.join(missing)}"
            )

        if active_count == 0:
            raise ValueError(
                "No authentication method configured. Provide one of: " + _AUTH_METHODS_HINT
            )
        return self

    @property
    def auth_method(self) -> str:
        """One of: 'connection_string', 'managed_identity', 'service_principal'."""
        if self.connection_string:
            return "connection_string"
        if self.use_managed_identity:
            return "managed_identity"
        return "service_principal"

    @property
    def endpoint_host(self) -> str | None:
        """Host name of the blob endpoint, used to recognise https URLs."""
        if self.account_url:
            return urlparse(self.account_url).hostname
        if not self.connection_string:
            return None

        parts = dict(
            item.split("=", 1)
            for item in self.connection_string.split(";")
            if "=" in item
        )
        if "BlobEndpoint" in parts:
            return urlparse(parts["BlobEndpoint"]).hostname
        if "AccountName" in parts:
            suffix = parts.get("EndpointSuffix", "core.windows.net")
            return f"{parts['AccountName']}.blob.{suffix}"
        return None

    def create_blob_service_client(self) -> BlobServiceClient:
        """Create BlobServiceClient using the configured auth method."""
        from azure.storage.blob import BlobServiceClient

        if self.connection_string:
            return BlobServiceClient.from_connection_string(self.connection_string)

        if self.use_managed_identity:
            from azure.identity import DefaultAzureCredential

            assert self.account_url is not None  # Validated by model_validator
            return BlobServiceClient(self.account_url, credential=DefaultAzureCredential())

        from azure.identity import ClientSecretCredential

        assert self.tenant_id is not None  # Validated by model_validator
        assert self.client_id is not None  # Validated by model_validator
        assert self.client_secret is not None  # Validated by model_validator
        assert self.account_url is not None  # Validated by model_validator
        credential = ClientSecretCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        return BlobServiceClient(self.account_url, credential=credential)
