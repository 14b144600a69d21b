"""凭证解析单元测试。"""

import pytest
from fastapi.datastructures import Headers

from nele_proxy.auth_service import extract_api_key, get_configured_api_key, require_api_key
from nele_proxy.exceptions import MissingApiKeyError


@pytest.mark.unit
class TestExtractApiKey:
    """凭证优先级测试。"""

    def test_bearer_wins_over_everything(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "configured")
        monkeypatch.setenv("NELE_API_KEY", "env")
        headers = Headers({"Authorization": "Bearer  token-a ", "X-Api-Key": "token-b"})
        assert extract_api_key(headers, settings) == "token-a"

    def test_bearer_scheme_is_case_insensitive(self, settings):
        assert extract_api_key(Headers({"Authorization": "bEaReR abc"}), settings) == "abc"

    def test_x_api_key_used_without_bearer(self, settings):
        headers = Headers({"Authorization": "Basic dXNlcjpwYXNz", "X-Api-Key": "  key-b  "})
        assert extract_api_key(headers, settings) == "key-b"

    def test_blank_x_api_key_ignored(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "configured")
        assert extract_api_key(Headers({"X-Api-Key": "   "}), settings) == "configured"

    def test_configured_key_before_environment(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "configured")
        monkeypatch.setenv("NELE_API_KEY", "env")
        assert extract_api_key(Headers({}), settings) == "configured"

    def test_environment_fallback(self, settings, monkeypatch):
        monkeypatch.setenv("NELE_API_KEY", "  env  ")
        assert extract_api_key(Headers({}), settings) == "env"

    def test_nothing_found(self, settings):
        assert extract_api_key(Headers({}), settings) is None
        assert get_configured_api_key(settings) is None


@pytest.mark.unit
class TestRequireApiKey:

    def test_missing_key_raises(self, settings):
        with pytest.raises(MissingApiKeyError) as exc_info:
            require_api_key(Headers({}), settings)
        assert exc_info.value.status_code == 401

    def test_empty_bearer_token_raises(self, settings, monkeypatch):
        monkeypatch.setenv("NELE_API_KEY", "env")
        with pytest.raises(MissingApiKeyError):
            require_api_key(Headers({"Authorization": "Bearer    "}), settings)

    def test_returns_key(self, settings):
        assert require_api_key(Headers({"X-Api-Key": "k"}), settings) == "k"
