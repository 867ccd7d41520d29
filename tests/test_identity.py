# tests/test_identity.py
from __future__ import annotations

import pytest

from edumanager.auth import StoreIdentityProvider
from edumanager.auth.identity import hash_password, verify_password
from edumanager.exceptions import NotAuthenticatedError, StoreError, ValidationError
from edumanager.schemas.enums import Role
from tests import FlakyStore

from .conftest import FAST_ROUNDS, TEST_PASSWORD

pytestmark = pytest.mark.anyio


def test_password_hash_roundtrip():
    encoded = hash_password("s3cret", rounds=FAST_ROUNDS)
    assert encoded.startswith(f"pbkdf2_sha256${FAST_ROUNDS}$")
    assert verify_password("s3cret", encoded)
    assert not verify_password("other", encoded)
    assert not verify_password("s3cret", None)
    assert not verify_password("s3cret", "md5$abc")


async def test_sign_up_then_sign_in(identity):
    created = await identity.sign_up(
        " Dana@School.edu ", "pw-1", {"full_name": "Dana", "role": "teacher", "phone": "555"}
    )
    assert created.ok
    assert created.data.email == "dana@school.edu"
    assert created.data.role is Role.TEACHER
    assert not identity.current_caller.is_authenticated

    signed_in = await identity.sign_in("DANA@school.edu", "pw-1")
    assert signed_in.ok
    assert signed_in.data.caller_id == created.data.id
    assert identity.current_caller.role is Role.TEACHER

    assert (await identity.sign_out()).ok
    assert not identity.current_caller.is_authenticated


async def test_sign_in_rejects_bad_credentials(identity, school):
    wrong = await identity.sign_in("admin@school.edu", "nope")
    assert isinstance(wrong.error, NotAuthenticatedError)

    unknown = await identity.sign_in("nobody@school.edu", TEST_PASSWORD)
    assert isinstance(unknown.error, NotAuthenticatedError)


@pytest.mark.parametrize(
    "encoded",
    [
        "pbkdf2_sha256$many$abcd$00",
        "pbkdf2_sha256$1000$not-hex$00",
        "pbkdf2_sha256$0$abcd$00",
    ],
)
def test_malformed_hashes_never_verify(encoded):
    assert not verify_password("s3cret", encoded)


async def test_sign_in_with_a_corrupt_stored_hash_is_rejected(store, identity, school):
    await store.update("users", school.admin.caller_id, {"password_hash": "pbkdf2_sha256$x$zz$00"})

    result = await identity.sign_in("admin@school.edu", TEST_PASSWORD)
    assert isinstance(result.error, NotAuthenticatedError)


@pytest.mark.parametrize(
    "password, profile, field",
    [
        ("", {"full_name": "X"}, "password"),
        ("pw", {}, "full_name"),
        ("pw", {"full_name": "X", "role": "janitor"}, "role"),
    ],
)
async def test_sign_up_validation(identity, password, profile, field):
    result = await identity.sign_up("x@school.edu", password, profile)
    assert isinstance(result.error, ValidationError)
    assert result.error.field == field


async def test_sign_up_rejects_duplicate_email(identity, school):
    result = await identity.sign_up("ALICE@school.edu", "pw", {"full_name": "Alice Again"})
    assert isinstance(result.error, ValidationError)
    assert result.error.field == "email"


async def test_store_failure_is_returned(store):
    provider = StoreIdentityProvider(FlakyStore(store, fail_on=("select",)), rounds=FAST_ROUNDS)
    result = await provider.sign_in("admin@school.edu", "pw")
    assert isinstance(result.error, StoreError)
