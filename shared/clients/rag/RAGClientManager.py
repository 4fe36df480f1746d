from shared.helper.HelperConfig import HelperConfig
from shared.clients.client_loader import load_client
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager:
    """
    Builds the vector store client named by RAG_ENGINE (e.g. "qdrant").
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("RAG_ENGINE", default="")
        if not engine:
            raise ValueError("No RAG engine specified in configuration.")
        self.client: RAGClientInterface = load_client("rag", engine, helper_config, label="RAG")
        self.logging.debug("[RAG] Using engine %s", self.client.get_engine_name())

    def get_client(self) -> RAGClientInterface:
        return self.client
