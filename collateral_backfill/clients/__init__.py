"""Backend clients."""

from .catalog import CatalogClient, ClientCredentialsAuth
from .documents import CosmosDocumentStore

__all__ = ["CatalogClient", "ClientCredentialsAuth", "CosmosDocumentStore"]
