from datetime import timedelta
from unittest.mock import patch

from planejar.auth import create_access_token, decode_access_token, get_password_hash, verify_password
from planejar.config import settings


def test_access_token_round_trip():
    token = create_access_token({"sub": "ana@test.com"})
    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sub"] == "ana@test.com"
    assert "exp" in payload


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "ana@test.com"}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    with patch.object(settings, "SECRET_KEY", "outra-chave"):
        token = create_access_token({"sub": "ana@test.com"})
    assert decode_access_token(token) is None


def test_password_hashing():
    password_hash = get_password_hash("senha123")
    assert password_hash != "senha123"
    assert verify_password("senha123", password_hash) is True
    assert verify_password("errada", password_hash) is False
    assert verify_password("senha123", "nao-e-um-hash") is False
