from datetime import datetime, timedelta

from jose import jwt

from taskflow.core.config import settings
from taskflow.core.security import (
    create_access_token,
    generate_refresh_token,
    get_password_hash,
    hash_refresh_token,
    verify_access_token,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_garbage_hash():
    assert not verify_password("anything", "not-an-argon2-hash")


def test_access_token_resolves_to_user_id():
    assert verify_access_token(create_access_token(42)) == 42


def test_expired_access_token_is_rejected():
    token = create_access_token(42, expires_delta=timedelta(seconds=-1))
    assert verify_access_token(token) is None


def test_tampered_access_token_is_rejected():
    header, payload, signature = create_access_token(42).split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    assert verify_access_token(f"{header}.{payload}.{flipped}") is None
    assert verify_access_token("not.a.jwt") is None


def test_token_signed_with_another_key_is_rejected():
    forged = jwt.encode(
        {"sub": "42", "type": "access", "exp": datetime.utcnow() + timedelta(minutes=5)},
        "some-other-secret",
        algorithm=settings.ALGORITHM,
    )
    assert verify_access_token(forged) is None


def test_token_of_another_type_is_rejected():
    token = jwt.encode(
        {"sub": "42", "type": "refresh", "exp": datetime.utcnow() + timedelta(minutes=5)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert verify_access_token(token) is None


def test_refresh_token_is_random_and_stored_as_digest():
    now = datetime(2025, 1, 1)
    first = generate_refresh_token(now)
    second = generate_refresh_token(now)

    assert len(first.raw) == 64
    assert first.raw != second.raw
    assert first.hashed == hash_refresh_token(first.raw)
    assert first.hashed != first.raw
    assert first.expires_at == now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
