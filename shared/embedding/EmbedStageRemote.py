import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedRequestError
from shared.embedding.EmbedStageInterface import EmbedStageInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperVector import is_valid_vector
from shared.models.embedding import EmbeddingSource

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _is_transient(exc: BaseException) -> bool:
    """Transport errors, timeouts and rate-limit/5xx responses are worth retrying."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, EmbedRequestError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    return False


class EmbedStageRemote(EmbedStageInterface):
    """Remote embedding API call. Terminal: failures are raised."""

    def __init__(self, helper_config: HelperConfig, client: EmbedClientInterface):
        super().__init__(helper_config=helper_config)
        self._client = client
        self._max_attempts = max(1, int(helper_config.get_number_val("EMBED_REMOTE_MAX_ATTEMPTS", default=3)))
        self._backoff = float(helper_config.get_number_val("EMBED_REMOTE_BACKOFF", default=0.5))

    def get_source(self) -> EmbeddingSource:
        return EmbeddingSource.REMOTE

    def is_terminal(self) -> bool:
        return True

    async def attempt(self, text: str, cache_key: str | None) -> list[float] | None:
        """Request an embedding from the remote client.

        Raises:
            EmbedRequestError: On a non-200 response after all retries.
            ValueError: If the response carries no usable vector.
            httpx.HTTPError: On transport failures after all retries.
        """
        self.logging.info("[Embed] Attempting remote embedding generation via %s...", self._client.get_engine_name())
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._backoff, max=4),
                retry=retry_if_exception(_is_transient),
                reraise=True,
            ):
                with attempt:
                    embedding = await self._client.generate_embedding(text)
        except Exception as exc:
            self.logging.error(
                "[Embed] Remote embedding generation failed: %s: %s (text: %r)",
                type(exc).__name__, exc, text[:100],
            )
            raise

        if not is_valid_vector(embedding):
            raise ValueError(f"Invalid remote embedding response: {type(embedding).__name__}")

        self.logging.info("[Embed] Successfully generated remote embedding of size %d", len(embedding))
        return list(embedding)
