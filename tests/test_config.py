import pytest

from config import ConfigError, Settings, load_settings

BASE_ENV = {
    "CONVEX_URL": "https://happy-otter-123.convex.cloud/",
    "CONVEX_DEPLOY_KEY": "prod:deploy-key",
    "OPENAI_API_KEY": "sk-test",
}


def test_defaults():
    settings = load_settings(BASE_ENV)

    assert settings.convex_url == "https://happy-otter-123.convex.cloud"
    assert settings.model_provider == "openai"
    assert settings.model_name == "gpt-4.1"
    assert settings.auxiliary_model == "gpt-4.1"
    assert settings.routing_mode == "llm"
    assert settings.checkpoint_db == "checkpoint.db"
    assert settings.convex_timeout == 30.0


def test_missing_values_are_all_reported():
    with pytest.raises(ConfigError) as excinfo:
        load_settings({"CONVEX_URL": "  "})

    message = str(excinfo.value)
    assert "CONVEX_URL" in message
    assert "CONVEX_DEPLOY_KEY" in message
    assert "OPENAI_API_KEY" in message


def test_provider_key_follows_provider():
    env = dict(BASE_ENV, MODEL_PROVIDER="anthropic", MODEL_NAME="claude-sonnet-4-5")
    with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
        load_settings(env)

    env["ANTHROPIC_API_KEY"] = "sk-ant-test"
    settings = load_settings(env)
    assert settings.model_provider == "anthropic"
    assert settings.model_name == "claude-sonnet-4-5"


def test_optional_overrides():
    env = dict(
        BASE_ENV,
        AUX_MODEL_NAME="gpt-4.1-mini",
        ROUTING_MODE="keyword",
        CONVEX_TIMEOUT="5",
        CHECKPOINT_DB=":memory:",
    )
    settings = load_settings(env)

    assert settings.auxiliary_model == "gpt-4.1-mini"
    assert settings.routing_mode == "keyword"
    assert settings.convex_timeout == 5.0
    assert settings.checkpoint_db == ":memory:"


@pytest.mark.parametrize(
    "override",
    [{"ROUTING_MODE": "random"}, {"CONVEX_TIMEOUT": "-1"}, {"MODEL_PROVIDER": "cohere"}],
)
def test_invalid_values_fail_fast(override):
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_settings(dict(BASE_ENV, **override))


def test_settings_model_fields_allowed():
    settings = Settings(convex_url="https://x", convex_deploy_key="k", model_name="gpt-4.1-nano")
    assert settings.model_name == "gpt-4.1-nano"
