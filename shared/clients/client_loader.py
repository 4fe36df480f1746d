import importlib

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


def load_client(client_type: str, engine: str, helper_config: HelperConfig, label: str) -> ClientInterface:
    """
    Instantiates shared.clients.{type}.{engine}.{Prefix}Client{Engine}.

    Args:
        client_type (str): "embed" or "rag".
        engine (str): Engine name in any casing, e.g. "OLLAMA".
        helper_config (HelperConfig): Passed on to the client.
        label (str): Display name used in error messages, e.g. "Embed".

    Raises:
        ValueError: If no client class exists for the engine.
    """
    engine = engine.strip().lower()
    class_name = f"{label}Client{engine.capitalize()}"
    try:
        module = importlib.import_module(f"shared.clients.{client_type}.{engine}.{class_name}")
        client_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported {label} engine '{engine}': {e}")
    return client_class(helper_config=helper_config)
