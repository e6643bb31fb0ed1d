import pytest

from textgen_sdk import TextGenConfig


@pytest.fixture
def config() -> TextGenConfig:
    return TextGenConfig(
        auth_key="test-key",
        base_url="http://localhost:3100",
        timeout=30.0,
        model="test-model",
        edit_model="test-edit-model",
    )


@pytest.fixture
def no_key_config(config: TextGenConfig) -> TextGenConfig:
    return TextGenConfig(auth_key=None, base_url=config.base_url)
