from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_BASE_URL = "http://localhost:11434"


class EmbedClientOllama(EmbedClientInterface):
    """
    Client for Ollama's native /api/embed endpoint, usually the local embedding stage.

    Config: EMBED_OLLAMA_BASE_URL, EMBED_OLLAMA_API_KEY (only needed behind an auth proxy).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=DEFAULT_BASE_URL)
        self._api_key = self.get_config_val("API_KEY", default="")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=DEFAULT_BASE_URL),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # ollama answers "Ollama is running" on its root
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts, "dimensions": self.embed_dimensions}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """
        Ollama returns {"embeddings": [[...], ...]} already in input order.

        Raises:
            ValueError: If no usable embedding is present.
        """
        embeddings = response_data.get("embeddings")
        if not isinstance(embeddings, list) or not embeddings or not all(embeddings):
            raise ValueError(f"Ollama returned no embeddings (keys: {sorted(response_data)})")
        return embeddings
