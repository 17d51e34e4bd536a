"""Promotions document database client."""

import logging
from typing import Any, Dict, List, Optional

from azure.cosmos.aio import CosmosClient

from ..exceptions import ConfigurationError
from ..models.migration import DocumentStoreSettings

logger = logging.getLogger(__name__)


class CosmosDocumentStore:
    """
    Query and whole-document replace over one Cosmos DB container.

    Replace overwrites the full document. Callers read the document,
    change it in place and write all of it back.
    """

    def __init__(
        self,
        settings: DocumentStoreSettings,
        client: Optional[CosmosClient] = None
    ):
        """
        Initialize the store.

        Args:
            settings: Endpoint, key, database and container names
            client: Custom Cosmos client
        """
        self.settings = settings
        self._owns_client = client is None

        if client is None:
            if not settings.endpoint or not settings.key:
                raise ConfigurationError("Document store endpoint and key are required")
            client = CosmosClient(settings.endpoint, credential=settings.key)

        if not settings.database:
            raise ConfigurationError("Document store database is required")

        self._client = client
        self._container = client.get_database_client(settings.database).get_container_client(settings.container)

    async def __aenter__(self) -> "CosmosDocumentStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def query_all(self, query: str = "SELECT * FROM root") -> List[Dict[str, Any]]:
        """Run a query and return the full result set."""
        documents = [item async for item in self._container.query_items(query=query)]
        logger.info(f"Query returned {len(documents)} documents from {self.settings.container}")
        return documents

    async def replace(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite a whole document, matched by its id."""
        return await self._container.replace_item(item=document["id"], body=document)
