import httpx

from services.knowledge.KnowledgeService import KnowledgeService
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.embedding.EmbeddingService import EmbeddingService
from shared.helper.HelperConfig import HelperConfig


class KnowledgeRuntime:
    """
    Boots the configured backends and wires them into a KnowledgeService.

    Embedding providers are optional: one that fails its healthcheck is left
    out of the chain. The vector store is mandatory.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.embed_manager = EmbedClientManager(helper_config=helper_config)
        self.rag_client = RAGClientManager(helper_config=helper_config).get_client()
        self.embedding_service: EmbeddingService | None = None
        self.knowledge_service: KnowledgeService | None = None

    async def _boot_embed_client(self, client: EmbedClientInterface | None, transport: httpx.AsyncBaseTransport | None) -> EmbedClientInterface | None:
        if client is None:
            return None
        await client.boot(transport=transport)
        try:
            await client.do_healthcheck()
        except Exception as e:
            self.logging.warning("[Embed] %s is not healthy, leaving it out: %s", client.get_engine_name(), e)
            await client.close()
            return None
        return client

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> KnowledgeService:
        """
        Args:
            transport (httpx.AsyncBaseTransport | None): Transport override for every client.

        Returns:
            KnowledgeService: The service bound to the booted backends.

        Raises:
            Exception: If the vector store is unreachable or its collection cannot be created.
        """
        local_client = await self._boot_embed_client(self.embed_manager.get_local_client(), transport)
        remote_client = await self._boot_embed_client(self.embed_manager.get_remote_client(), transport)
        if local_client is None and remote_client is None:
            self.logging.warning("[Embed] No embedding provider available, queries will return no results")

        await self.rag_client.boot(transport=transport)
        await self.rag_client.do_healthcheck()

        self.embedding_service = EmbeddingService(
            helper_config=self.helper_config,
            local_provider=local_client,
            remote_client=remote_client,
        )
        await self.rag_client.do_ensure_collection(vector_size=self.embedding_service.get_dimensions())

        self.knowledge_service = KnowledgeService(
            helper_config=self.helper_config,
            store=self.rag_client,
            embedding_service=self.embedding_service,
        )
        return self.knowledge_service

    def has_embedder(self) -> bool:
        return self.embedding_service is not None and self.embedding_service.has_providers()

    async def close(self) -> None:
        for client in self.embed_manager.get_clients():
            await client.close()
        await self.rag_client.close()
