import pytest
from pydantic import ValidationError

from cherry.config.settings import Settings


def test_defaults_match_memory_and_retrieval_contract():
    s = Settings(GOOGLE_API_KEY="k", _env_file=None)

    assert (s.CHUNK_SIZE, s.CHUNK_OVERLAP) == (150, 10)
    assert s.RETRIEVAL_K == 3
    assert s.SEARCH_RESULTS_LIMIT == 5
    assert s.LLM_TEMPERATURE == 0.8


def test_api_key_is_secret():
    s = Settings(GOOGLE_API_KEY="super-secret", _env_file=None)

    assert "super-secret" not in repr(s)
    assert s.GOOGLE_API_KEY.get_secret_value() == "super-secret"


@pytest.mark.parametrize(
    "overrides",
    [
        {"CHUNK_SIZE": 0},
        {"CHUNK_SIZE": 100, "CHUNK_OVERLAP": 100},
        {"CHUNK_OVERLAP": -1},
        {"RETRIEVAL_K": 0},
        {"SEARCH_RESULTS_LIMIT": 0},
        {"LLM_TEMPERATURE": 3.5},
        {"HISTORY_PROMPT_WINDOW": -2},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(GOOGLE_API_KEY="k", _env_file=None, **overrides)
