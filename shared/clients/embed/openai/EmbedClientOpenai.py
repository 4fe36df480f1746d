from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


def normalize_base_url(base_url: str, self_hosted: bool) -> str:
    """Return the API base for an OpenAI-compatible endpoint.

    Self-hosted OpenAI-compatible servers (Ollama, LM Studio, ...) expose the
    API under "/v1", which is appended when missing. Hosted endpoints are
    taken as configured.

    Args:
        base_url (str): The configured base URL.
        self_hosted (bool): Whether the endpoint is a self-hosted compatible server.

    Returns:
        str: The normalised base URL without a trailing slash.
    """
    base = base_url.strip().rstrip("/")
    if base.endswith("/v1"):
        return base
    return f"{base}/v1" if self_hosted else base


class EmbedClientOpenai(EmbedClientInterface):
    """OpenAI-compatible embedding client, typically serving the remote embedding stage."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._self_hosted = self.get_config_val("SELF_HOSTED", default=False, val_type="bool")
        self._base_url = normalize_base_url(
            self.get_config_val("BASE_URL", default="https://api.openai.com/v1", val_type="string"),
            self_hosted=self._self_hosted,
        )
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="SELF_HOSTED", val_type="bool", default=False),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the OpenAI-compatible embedding request body.

        A single text is sent as a plain string.

        Returns:
            dict: {"input": ..., "model": "...", "dimensions": n}
        """
        return {
            "input": texts[0] if len(texts) == 1 else texts,
            "model": self.embed_model,
            "dimensions": self.embed_dimensions,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an OpenAI-compatible response.

        Args:
            response_data (dict): {"data": [{"embedding": [...], "index": 0}, ...]}

        Returns:
            list[list[float]]: Embedding vectors sorted by their "index".

        Raises:
            ValueError: If no entry carries a non-empty embedding.
        """
        data = response_data.get("data")
        if not isinstance(data, list) or not data:
            raise ValueError(
                "Invalid response format from embedding API. "
                f"Response keys: {list(response_data.keys())}"
            )
        entries = sorted(
            (entry for entry in data if isinstance(entry, dict)),
            key=lambda entry: entry.get("index", 0),
        )
        embeddings = [entry.get("embedding") for entry in entries]
        if not embeddings or not embeddings[0]:
            raise ValueError("Empty embedding received from API")
        return embeddings
