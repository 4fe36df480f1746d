from shared.helper.HelperConfig import HelperConfig
from shared.clients.client_loader import load_client
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager:
    """
    Builds the embedding clients of the two provider stages.

    EMBED_LOCAL_ENGINE and EMBED_REMOTE_ENGINE each name an engine ("ollama",
    "openai"). An unset role leaves that stage out of the embedding chain.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.local_client = self._build_role("EMBED_LOCAL_ENGINE")
        self.remote_client = self._build_role("EMBED_REMOTE_ENGINE")

    def _build_role(self, env_key: str) -> EmbedClientInterface | None:
        engine = self.helper_config.get_string_val(env_key, default="")
        if not engine:
            self.logging.info("[Embed] %s not set, stage disabled", env_key)
            return None
        try:
            client = load_client("embed", engine, self.helper_config, label="Embed")
        except ValueError as e:
            raise ValueError(f"{e} (configured in {env_key})")
        self.logging.debug("[Embed] %s -> %s", env_key, client.get_engine_name())
        return client

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_local_client(self) -> EmbedClientInterface | None:
        return self.local_client

    def get_remote_client(self) -> EmbedClientInterface | None:
        return self.remote_client

    def get_clients(self) -> list[EmbedClientInterface]:
        return [client for client in (self.local_client, self.remote_client) if client is not None]
