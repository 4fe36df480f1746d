from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key, prefixed at lookup time with "{CLIENT_TYPE}_{ENGINE}_".
        val_type (str): Expected type of the value: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset. None marks the key as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
