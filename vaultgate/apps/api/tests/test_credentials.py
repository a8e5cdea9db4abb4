"""Tests for credential extraction and resolution.

Covers:
- Bearer header parsing (prefix is case-sensitive, token kept verbatim)
- apiKey query parsing (trimmed)
- Header wins over query
- Combined failure message when neither source is usable
"""

import pytest

from vaultgate_api.auth.credentials import (
    EMPTY_API_KEY,
    EMPTY_BEARER_TOKEN,
    MISSING_API_KEY,
    MISSING_AUTH_HEADER,
    MISSING_CREDENTIALS,
    ApiKey,
    BearerToken,
    extract_api_key,
    extract_bearer_token,
    resolve_credentials,
)
from vaultgate_api.errors import AuthenticationError


class TestExtractBearerToken:
    def test_valid_header(self):
        result = extract_bearer_token("Bearer abc123")
        assert result.is_present is True
        assert result.token == "abc123"
        assert result.error is None

    def test_token_is_not_trimmed(self):
        result = extract_bearer_token("Bearer  abc ")
        assert result.is_present is True
        assert result.token == " abc "

    @pytest.mark.parametrize("header", [None, "", "bearer abc", "Basic abc", "Bearerabc"])
    def test_missing_or_wrong_scheme(self, header):
        result = extract_bearer_token(header)
        assert result.is_present is False
        assert result.token is None
        assert result.error == MISSING_AUTH_HEADER

    @pytest.mark.parametrize("header", ["Bearer ", "Bearer    "])
    def test_empty_token(self, header):
        result = extract_bearer_token(header)
        assert result.is_present is False
        assert result.error == EMPTY_BEARER_TOKEN


class TestExtractApiKey:
    def test_valid_key_is_trimmed(self):
        result = extract_api_key("  key-123  ")
        assert result.is_present is True
        assert result.token == "key-123"

    def test_missing(self):
        assert extract_api_key(None).error == MISSING_API_KEY
        assert extract_api_key("").error == MISSING_API_KEY

    def test_whitespace_only(self):
        result = extract_api_key("   ")
        assert result.is_present is False
        assert result.error == EMPTY_API_KEY


class TestResolveCredentials:
    def test_bearer_header(self):
        credential = resolve_credentials("Bearer tok", None)
        assert credential == BearerToken("tok")
        assert credential.kind == "bearer_token"

    def test_api_key_query(self):
        credential = resolve_credentials(None, " key ")
        assert credential == ApiKey("key")
        assert credential.kind == "api_key"

    def test_header_wins_over_query(self):
        credential = resolve_credentials("Bearer tok", "key")
        assert isinstance(credential, BearerToken)
        assert credential.value == "tok"

    def test_invalid_header_falls_back_to_query(self):
        credential = resolve_credentials("Basic xyz", "key")
        assert credential == ApiKey("key")

    @pytest.mark.parametrize(
        "header,api_key",
        [(None, None), ("Bearer ", None), (None, "   "), ("token-without-scheme", "")],
    )
    def test_neither_source_usable(self, header, api_key):
        with pytest.raises(AuthenticationError) as exc_info:
            resolve_credentials(header, api_key)
        assert exc_info.value.message == MISSING_CREDENTIALS

    def test_repr_hides_secret(self):
        assert "supersecret" not in repr(BearerToken("supersecret"))
        assert "supersecret" not in repr(ApiKey("supersecret"))
