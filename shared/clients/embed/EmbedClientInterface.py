from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface, ClientRequestError

from shared.helper.HelperConfig import HelperConfig


class EmbedRequestError(ClientRequestError):
    """An embedding request returned a non-200 status."""


class EmbedClientInterface(ClientInterface):
    """
    Base class of embedding backends.

    Model and dimension default to the process-wide embedding config and can be
    overridden per engine with EMBED_{ENGINE}_MODEL and EMBED_{ENGINE}_DIMENSIONS.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        defaults = helper_config.get_embedding_config()
        self.embed_model = self.get_config_val("MODEL", default=defaults.model)
        self.embed_dimensions = int(self.get_config_val("DIMENSIONS", default=defaults.dimensions, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "embed"

    def get_model_name(self) -> str:
        return self.embed_model

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests. E.g. "/api/embed"
        """
        pass

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """
        Returns the backend-specific request body for embedding the texts.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """
        Returns the vectors of a decoded embedding response, in input order.

        Raises:
            ValueError: If the response holds no usable embedding.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """
        Embeds one or more texts with a single request.

        Raises:
            EmbedRequestError: On a non-200 response. status_code decides whether a retry makes sense.
            ValueError: If the body is not JSON or holds no embeddings.
            httpx.HTTPError: On transport failures and timeouts.
        """
        batch = [texts] if isinstance(texts, str) else list(texts)
        endpoint = self.get_endpoint_embedding()
        self.logging.debug("[Embed] %s %s with %d input(s)", self.get_engine_name(), endpoint, len(batch))

        response = await self.do_request(method="POST", endpoint=endpoint, json=self.get_embed_payload(batch))
        if response.status_code != 200:
            self.logging.error("[Embed] %s answered %d: %s", self.get_engine_name(), response.status_code, response.text[:200])
            raise EmbedRequestError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
                url=str(response.request.url),
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ValueError(f"{self.get_engine_name()} returned a non-JSON embedding response: {exc}")
        if not isinstance(data, dict):
            raise ValueError(f"{self.get_engine_name()} returned an embedding response that is not an object.")
        return self.extract_embeddings_from_response(data)

    async def generate_embedding(self, text: str) -> list[float]:
        return (await self.do_embed([text]))[0]
