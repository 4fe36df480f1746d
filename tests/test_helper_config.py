import pytest

from shared.models.embedding import EmbeddingProvider


def test_embedding_config_defaults_to_bge(helper_config):
    config = helper_config.get_embedding_config()

    assert config.provider == EmbeddingProvider.BGE
    assert config.dimensions == 384
    assert config.model == "BGE-small-en-v1.5"


@pytest.mark.parametrize("provider, model, dimensions", [
    ("openai", "text-embedding-3-small", 1536),
    ("OLLAMA", "mxbai-embed-large", 1024),
    ("gaianet", "nomic-embed", 768),
    ("Heurist", "BAAI/bge-large-en-v1.5", 1024),
])
def test_provider_defaults(helper_config, env, provider, model, dimensions):
    env.setenv("EMBED_PROVIDER", provider)
    config = helper_config.get_embedding_config()
    assert (config.model, config.dimensions) == (model, dimensions)


def test_overrides_and_memoisation(helper_config, env):
    env.setenv("EMBED_PROVIDER", "ollama")
    env.setenv("EMBED_DIMENSIONS", "512")
    env.setenv("EMBED_MODEL", "custom-model")

    config = helper_config.get_embedding_config()
    env.setenv("EMBED_DIMENSIONS", "64")

    assert (config.model, config.dimensions) == ("custom-model", 512)
    assert helper_config.get_embedding_config() is config


@pytest.mark.parametrize("key, value", [("EMBED_PROVIDER", "word2vec"), ("EMBED_DIMENSIONS", "0")])
def test_invalid_embedding_config(helper_config, env, key, value):
    env.setenv(key, value)
    with pytest.raises(ValueError):
        helper_config.get_embedding_config()


def test_typed_getters(helper_config, env):
    env.setenv("KNOWLEDGE_FLAG", "yes")
    env.setenv("KNOWLEDGE_RATIO", "0.5")
    env.setenv("KNOWLEDGE_LIST", "[a, b ,c]")

    assert helper_config.get_bool_val("knowledge_flag") is True
    assert helper_config.get_number_val("KNOWLEDGE_RATIO") == 0.5
    assert helper_config.get_list_val("KNOWLEDGE_LIST") == ["a", "b", "c"]
    assert helper_config.get_string_val("KNOWLEDGE_MISSING", default="x") == "x"
    with pytest.raises(ValueError):
        helper_config.get_string_val("KNOWLEDGE_MISSING")
