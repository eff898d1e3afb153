"""Tests for the identity store: registration, sign-in, approval and passwords."""

from __future__ import annotations

import json

import pytest

from expenseflow.errors import (
    AccountNotApprovedError,
    AuthorizationError,
    DuplicateEmailError,
    InvalidCredentialsError,
    NoSuchAccountError,
    NotAdminError,
    NotAuthenticatedError,
    ProtectedAccountError,
    ValidationFailed,
    WrongCurrentPasswordError,
)
from expenseflow.services.session import SessionContext
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, CURRENT_USER_KEY, USERS_KEY


def test_first_run_seeds_exactly_one_approved_admin(identity, storage):
    users = identity.users
    assert len(users) == 1
    admin = users[0]
    assert admin.id == "admin"
    assert admin.email == ADMIN_EMAIL
    assert admin.role == "admin"
    assert admin.status == "approved"
    assert admin.password_hash != ADMIN_PASSWORD

    stored = json.loads(storage.get_item(USERS_KEY))
    assert [u["id"] for u in stored] == ["admin"]


def test_seed_is_not_repeated_on_restart(identity, identity_factory):
    identity.register("a@x.com", "Alice", "secret1")
    reloaded = identity_factory()
    assert [u.email for u in reloaded.users] == [ADMIN_EMAIL, "a@x.com"]


def test_register_creates_pending_user(identity):
    event = identity.register("a@x.com", "Alice", "secret1")
    user = event.user
    assert user.id.startswith("user-")
    assert user.role == "user"
    assert user.status == "pending"
    assert user.registration_date
    assert identity.get(user.id).model_dump() == user.model_dump()


def test_register_duplicate_email_fails_and_leaves_count(identity):
    identity.register("a@x.com", "Alice", "secret1")
    with pytest.raises(DuplicateEmailError):
        identity.register("a@x.com", "Another Alice", "secret2")
    assert len(identity.users) == 2


def test_email_comparison_is_case_sensitive(identity):
    identity.register("a@x.com", "Alice", "secret1")
    identity.register("A@x.com", "Upper Alice", "secret1")
    assert len(identity.users) == 3


def test_pending_user_cannot_authenticate(identity):
    identity.register("a@x.com", "Alice", "secret1")
    with pytest.raises(AccountNotApprovedError):
        identity.authenticate("a@x.com", "secret1")
    assert identity.current_user is None


def test_wrong_password_is_distinguishable_from_not_approved(identity):
    identity.register("a@x.com", "Alice", "secret1")
    with pytest.raises(InvalidCredentialsError) as excinfo:
        identity.authenticate("a@x.com", "wrong-password")
    assert not isinstance(excinfo.value, AccountNotApprovedError)
    with pytest.raises(InvalidCredentialsError):
        identity.authenticate("nobody@x.com", "secret1")


def test_approve_then_authenticate_sets_active_identity(identity, storage):
    user = identity.register("a@x.com", "Alice", "secret1").user
    identity.approve(user.id)

    signed_in = identity.authenticate("a@x.com", "secret1")

    assert signed_in.id == user.id
    assert signed_in.status == "approved"
    assert identity.current_user.id == user.id
    assert json.loads(storage.get_item(CURRENT_USER_KEY))["id"] == user.id


def test_approve_unknown_user_is_noop(identity):
    assert identity.approve("user-missing") is None
    assert len(identity.users) == 1


def test_sign_out_clears_session_and_storage(identity, storage, sign_in_admin):
    sign_in_admin()
    identity.sign_out()
    assert identity.current_user is None
    assert not identity.is_authenticated
    assert storage.get_item(CURRENT_USER_KEY) is None


def test_session_survives_restart(identity, identity_factory, sign_in_admin):
    sign_in_admin()
    restored = identity_factory(SessionContext())
    assert restored.current_user is not None
    assert restored.current_user.id == "admin"


def test_restored_session_for_deleted_account_is_dropped(
    identity, identity_factory, approved_user, storage
):
    alice = approved_user()
    identity.authenticate("alice@example.com", "secret1")
    # Remove Alice behind the session's back, as another process would.
    remaining = [u for u in json.loads(storage.get_item(USERS_KEY)) if u["id"] != alice.id]
    storage.set_item(USERS_KEY, json.dumps(remaining))

    restored = identity_factory(SessionContext())

    assert restored.current_user is None
    assert storage.get_item(CURRENT_USER_KEY) is None


def test_reject_removes_record(identity):
    user = identity.register("a@x.com", "Alice", "secret1").user
    event = identity.reject(user.id)
    assert event.user.email == "a@x.com"
    assert identity.get(user.id) is None
    assert len(identity.users) == 1


def test_delete_seed_admin_always_fails(identity, sign_in_admin, admin_id):
    with pytest.raises(ProtectedAccountError):
        identity.delete_user(admin_id)
    sign_in_admin()
    with pytest.raises(ProtectedAccountError):
        identity.delete_user(admin_id)
    assert identity.get(admin_id) is not None


def test_delete_other_user_removes_exactly_one(identity, approved_user, sign_in_admin):
    alice = approved_user()
    approved_user(email="bob@example.com", full_name="Bob")
    sign_in_admin()

    before = len(identity.users)
    identity.delete_user(alice.id)

    assert len(identity.users) == before - 1
    assert identity.get(alice.id) is None


def test_cannot_delete_signed_in_account(identity, approved_user):
    alice = approved_user()
    identity.authenticate("alice@example.com", "secret1")
    with pytest.raises(ProtectedAccountError):
        identity.delete_user(alice.id)


def test_update_profile_without_session_is_noop(identity):
    identity.update_profile("Nobody", "ID-1")
    assert identity.users[0].full_name == "Administrator"


def test_update_profile_merges_into_session_and_collection(identity, approved_user):
    alice = approved_user()
    identity.authenticate("alice@example.com", "secret1")

    identity.update_profile("Alice Cooper", "2024-0001")

    assert identity.current_user.full_name == "Alice Cooper"
    assert identity.current_user.id_number == "2024-0001"
    stored = identity.get(alice.id)
    assert stored.full_name == "Alice Cooper"
    assert stored.id_number == "2024-0001"


def test_non_admin_cannot_change_id_number_once_set(identity, approved_user):
    alice = approved_user(id_number="2024-0001")
    identity.authenticate("alice@example.com", "secret1")

    with pytest.raises(AuthorizationError):
        identity.update_profile("Alice", "2024-9999")
    identity.update_profile("Alice Renamed", "2024-0001")

    assert identity.get(alice.id).id_number == "2024-0001"
    assert identity.get(alice.id).full_name == "Alice Renamed"


def test_update_profile_requires_full_name(identity, sign_in_admin):
    sign_in_admin()
    with pytest.raises(ValidationFailed):
        identity.update_profile("   ")


def test_change_password_requires_session(identity):
    with pytest.raises(NotAuthenticatedError):
        identity.change_password(ADMIN_PASSWORD, "newpass1")


def test_change_password_checks_current_password(identity, sign_in_admin):
    sign_in_admin()
    with pytest.raises(WrongCurrentPasswordError):
        identity.change_password("not-it", "newpass1")

    identity.change_password(ADMIN_PASSWORD, "newpass1")
    identity.sign_out()

    with pytest.raises(InvalidCredentialsError):
        identity.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
    assert identity.authenticate(ADMIN_EMAIL, "newpass1").id == "admin"


def test_reset_password_issues_temporary_credential(identity, approved_user, temp_passwords):
    approved_user()
    event = identity.reset_password("alice@example.com")

    assert event.temporary_password == temp_passwords.issued[-1]
    with pytest.raises(InvalidCredentialsError):
        identity.authenticate("alice@example.com", "secret1")
    assert identity.authenticate("alice@example.com", event.temporary_password)


def test_reset_password_unknown_email(identity):
    with pytest.raises(NoSuchAccountError):
        identity.reset_password("ghost@x.com")


def test_admin_password_operations_require_admin(identity, approved_user):
    alice = approved_user()
    with pytest.raises(NotAdminError):
        identity.admin_change_password(alice.id, "whatever1")
    identity.authenticate("alice@example.com", "secret1")
    with pytest.raises(NotAdminError):
        identity.admin_reset_password(alice.id)


def test_admin_change_and_reset_password(identity, approved_user, sign_in_admin):
    alice = approved_user()
    sign_in_admin()

    identity.admin_change_password(alice.id, "changed1")
    temporary = identity.admin_reset_password(alice.id)
    identity.sign_out()

    with pytest.raises(InvalidCredentialsError):
        identity.authenticate("alice@example.com", "changed1")
    assert identity.authenticate("alice@example.com", temporary).id == alice.id


def test_admin_reset_password_unknown_user_returns_none(identity, sign_in_admin):
    sign_in_admin()
    assert identity.admin_reset_password("user-missing") is None


def test_admin_changing_own_password_keeps_session_in_sync(identity, sign_in_admin, admin_id):
    sign_in_admin()
    before = identity.current_user.password_hash
    identity.admin_change_password(admin_id, "rotated1")
    assert identity.current_user.password_hash != before
    assert identity.current_user.password_hash == identity.get(admin_id).password_hash


def test_search_and_status_queries(identity, approved_user):
    approved_user(id_number="STU-42")
    identity.register("bob@example.com", "Bob Builder", "secret1")

    assert [u.email for u in identity.pending_users()] == ["bob@example.com"]
    assert {u.email for u in identity.approved_users()} == {ADMIN_EMAIL, "alice@example.com"}
    assert [u.email for u in identity.search_users("stu-42")] == ["alice@example.com"]
    assert [u.email for u in identity.search_users("builder", status="pending")] == [
        "bob@example.com"
    ]
    assert identity.search_users("builder", status="approved") == []


def test_returned_users_are_detached_copies(identity):
    users = identity.users
    users[0].full_name = "Mutated"
    assert identity.users[0].full_name == "Administrator"


def test_legacy_records_default_to_approved(storage, identity_factory):
    storage.set_item(
        USERS_KEY,
        json.dumps(
            [
                {
                    "id": "legacy-1",
                    "email": "old@x.com",
                    "full_name": "Old Timer",
                    "password_hash": "not-a-real-hash",
                    "role": "user",
                }
            ]
        ),
    )
    store = identity_factory()
    legacy = store.get("legacy-1")
    assert legacy.status == "approved"
    assert legacy.registration_date


def test_non_list_users_payload_falls_back_to_seed(storage, identity_factory):
    storage.set_item(USERS_KEY, json.dumps({"not": "a list"}))
    store = identity_factory()
    assert [u.id for u in store.users] == ["admin"]


def test_reject_seed_admin_is_refused(identity, identity_factory, sign_in_admin, admin_id):
    sign_in_admin()
    with pytest.raises(ProtectedAccountError):
        identity.reject(admin_id)

    restarted = identity_factory(SessionContext())
    assert restarted.get(admin_id) is not None
    assert [u.id for u in restarted.users] == [admin_id]


def test_reject_only_removes_pending_accounts(identity, approved_user):
    alice = approved_user()
    assert identity.reject(alice.id) is None
    assert identity.get(alice.id).status == "approved"
    assert len(identity.users) == 2
