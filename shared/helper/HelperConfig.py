"""Environment-backed configuration for the knowledge retrieval engine."""

import logging
import os
from typing import Any, Callable

from shared.models.embedding import EmbeddingConfig, EmbeddingProvider, PROVIDER_DEFAULTS

_TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """
    Typed access to environment variables.

    Keys are case-insensitive. A variable that is unset or empty falls back to
    the given default; without a default it is treated as mandatory and a
    ValueError is raised.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger
        self._embedding_config: EmbeddingConfig | None = None

    def _resolve(self, key: str, default: Any, parse: Callable[[str, str], Any]) -> Any:
        name = key.upper()
        raw = (os.getenv(name) or "").strip()
        if raw:
            return parse(name, raw)
        if default is None:
            raise ValueError(f"Environment variable '{name}' is not set.")
        return default

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        return self._resolve(key, default, lambda name, raw: raw)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """
        Returns an int for integral literals ("8") and a float otherwise ("0.85").

        Raises:
            ValueError: If the variable is missing without default or not numeric.
        """
        def parse(name: str, raw: str) -> float | int:
            try:
                return float(raw) if any(c in raw for c in ".eE") else int(raw)
            except ValueError:
                raise ValueError(f"Environment variable '{name}' is not a valid number: '{raw}'.")

        return self._resolve(key, default, parse)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        return self._resolve(key, default, lambda name, raw: raw.lower() in _TRUE_VALUES)

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """
        Reads a bracketed list such as "[qdrant, ollama]".

        Args:
            key (str): Environment variable name.
            default (list[str] | None): Value used if the variable is unset.
            separator (str): Element delimiter.
            element_type (type): Cast applied to every element.

        Raises:
            ValueError: If the value is not bracketed or an element cannot be cast.
        """
        def parse(name: str, raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ValueError(f"Environment variable '{name}' must look like '[a{separator}b]'. Got: '{raw}'")
            try:
                return [element_type(part.strip()) for part in raw[1:-1].split(separator) if part.strip()]
            except ValueError as e:
                raise ValueError(f"Environment variable '{name}' holds an element that is not {element_type.__name__}: {e}")

        return self._resolve(key, default, parse)

    def get_embedding_config(self) -> EmbeddingConfig:
        """
        Returns the process-wide embedding configuration.

        EMBED_PROVIDER picks the provider defaults (BGE when unset), EMBED_MODEL
        and EMBED_DIMENSIONS override them. The result is read once and then
        shared, so every client and the vector store agree on the dimension.

        Raises:
            ValueError: If the provider is unknown or the dimension is not positive.
        """
        if self._embedding_config is not None:
            return self._embedding_config

        provider = EmbeddingProvider.from_name(self.get_string_val("EMBED_PROVIDER", default=EmbeddingProvider.BGE.value))
        model, dimensions = PROVIDER_DEFAULTS[provider]
        dimensions = int(self.get_number_val("EMBED_DIMENSIONS", default=dimensions))
        if dimensions <= 0:
            raise ValueError(f"Environment variable 'EMBED_DIMENSIONS' must be positive. Got: {dimensions}")

        self._embedding_config = EmbeddingConfig(
            provider=provider,
            model=self.get_string_val("EMBED_MODEL", default=model),
            dimensions=dimensions,
        )
        self._logger.debug("[Embed] Using %s / %s with %d dimensions", provider.value, self._embedding_config.model, dimensions)
        return self._embedding_config

    def get_logger(self) -> logging.Logger:
        return self._logger
