import jwt
import pytest
from fastapi import HTTPException

from horde.core.config import settings
from horde.core.security import (
    create_access_token,
    create_verification_token,
    decode_access_token,
    generate_auth_code,
    generate_token,
    hash_password,
    user_id_from_token,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Str0ng!Pass")
    assert hashed != "Str0ng!Pass"
    assert verify_password("Str0ng!Pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("Str0ng!Pass", None)


def test_access_token_carries_subject():
    token = create_access_token(data={"sub": "user-1"})
    payload = decode_access_token(token)
    assert payload["sub"] == "user-1"
    assert "exp" in payload


def test_expired_token_is_rejected():
    token = create_access_token(data={"sub": "user-1"}, expires_minutes=-1)
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401


def test_token_signed_with_another_key_is_rejected():
    token = jwt.encode({"sub": "user-1"}, "not-the-secret", algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401


def test_random_tokens():
    assert len(generate_token(16)) == 32
    assert generate_token() != generate_token()

    code = generate_auth_code("user-1", "token")
    assert len(code) == 20
    assert code != generate_auth_code("user-1", "token")


def test_purpose_tokens_do_not_authenticate():
    assert user_id_from_token(create_access_token(data={"sub": "user-1"})) == "user-1"

    for token in (
        create_verification_token("pending-1", 60),
        create_access_token(data={"sub": "user-1", "purpose": "google_oauth"}),
    ):
        with pytest.raises(HTTPException) as exc:
            user_id_from_token(token)
        assert exc.value.status_code == 401
