from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingSource


class EmbedStageInterface(ABC):
    """One step of the embedding resolution chain.

    Stages are tried in order until one returns a vector. A non-terminal
    stage reports failure by returning None; the terminal stage raises.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    @abstractmethod
    def get_source(self) -> EmbeddingSource:
        """
        Returns the source tag recorded for vectors produced by this stage.
        """
        pass

    def is_terminal(self) -> bool:
        """
        Returns True if a failure of this stage ends the chain with an error.
        """
        return False

    def is_provider(self) -> bool:
        """
        Returns True if this stage computes new vectors (which are then cached).
        """
        return True

    @abstractmethod
    async def attempt(self, text: str, cache_key: str | None) -> list[float] | None:
        """Try to resolve a vector.

        Args:
            text (str): The (truncated) raw text to embed.
            cache_key (str | None): Cache key derived from the preprocessed text, None when the text preprocesses to nothing.

        Returns:
            list[float] | None: The vector, or None if this stage could not produce one.

        Raises:
            Exception: Only terminal stages raise.
        """
        pass
