from worktime.core.auth.security import hash_password, verify_password, create_access_token, decode_access_token, generate_refresh_token, hash_refresh_token
import uuid

import pytest
from fastapi import HTTPException
from jose import JWTError


def test_password_hash_roundtrip():
    plain = "MyS3cure!Pass"
    hashed = hash_password(plain)
    assert verify_password(plain, hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_carries_company():
    user_id, company_id = uuid.uuid4(), uuid.uuid4()
    token = create_access_token(user_id, company_id)
    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["company_id"] == str(company_id)
    assert payload["type"] == "access"
    assert payload["role"] is None


def test_garbage_token_rejected():
    with pytest.raises(JWTError):
        decode_access_token("not-a-jwt")


def test_refresh_token_hash():
    raw, hashed = generate_refresh_token()
    assert hashed == hash_refresh_token(raw)


async def test_login_by_phone_and_refresh_rotates(db, make_user):
    from worktime.core.auth import service as auth_service
    user = await make_user("Wang Fang", password_hash=hash_password("secret-pass"))

    result = await auth_service.get_auth_provider().login(db, user.phone, "secret-pass")
    assert decode_access_token(result.access_token)["sub"] == str(user.id)

    rotated = await auth_service.refresh_tokens(db, result.refresh_token)
    assert rotated.refresh_token != result.refresh_token
    # the old refresh token is spent
    with pytest.raises(HTTPException) as exc:
        await auth_service.refresh_tokens(db, result.refresh_token)
    assert exc.value.status_code == 401


async def test_login_wrong_password(db, make_user):
    from worktime.core.auth import service as auth_service
    user = await make_user("Wang Fang", password_hash=hash_password("secret-pass"))
    with pytest.raises(HTTPException) as exc:
        await auth_service.get_auth_provider().login(db, user.phone, "nope-nope")
    assert exc.value.status_code == 401


async def test_inactive_user_cannot_login(db, make_user):
    from worktime.core.auth import service as auth_service
    user = await make_user("Li Lei", is_active=False, password_hash=hash_password("secret-pass"))
    with pytest.raises(HTTPException) as exc:
        await auth_service.get_auth_provider().login(db, user.phone, "secret-pass")
    assert exc.value.status_code == 403


async def test_change_password_revokes_refresh_tokens(db, make_user):
    from worktime.core.auth import service as auth_service
    user = await make_user("Wang Fang", password_hash=hash_password("secret-pass"))
    result = await auth_service.get_auth_provider().login(db, user.phone, "secret-pass")

    with pytest.raises(HTTPException):
        await auth_service.change_password(db, user, "wrong-pass", "new-secret-pass")
    await auth_service.change_password(db, user, "secret-pass", "new-secret-pass")

    assert verify_password("new-secret-pass", user.hashed_password)
    with pytest.raises(HTTPException):
        await auth_service.refresh_tokens(db, result.refresh_token)
