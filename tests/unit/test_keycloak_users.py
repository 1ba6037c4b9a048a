from unittest.mock import Mock

import pytest

from bct_backend.core.keycloak import (
    KeycloakAPIError,
    KeycloakClient,
    KeycloakError,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserService,
)
from tests.conftest import StubResponse

USERS = "/admin/realms/bct/users"


@pytest.fixture()
def kc():
    return Mock(spec=KeycloakClient)


@pytest.fixture()
def users(kc):
    return UserService(kc, "bct")


def test_list_users_without_pagination(kc, users):
    kc.get.return_value = StubResponse(200, [{"id": "1"}])

    assert users.list_users() == [{"id": "1"}]
    kc.get.assert_called_once_with(USERS, params=None)


def test_list_users_with_pagination(kc, users):
    kc.get.return_value = StubResponse(200, [])

    users.list_users(first=20, max_results=10)

    kc.get.assert_called_once_with(USERS, params={"first": 20, "max": 10})


def test_get_user_not_found(kc, users):
    kc.get.side_effect = KeycloakAPIError(404, "User not found", USERS + "/x")

    with pytest.raises(UserNotFoundError):
        users.get_user("x")


def test_get_user_other_errors_propagate(kc, users):
    kc.get.side_effect = KeycloakAPIError(500, "boom", USERS + "/x")

    with pytest.raises(KeycloakAPIError):
        users.get_user("x")


def test_search_uses_first_page_of_100(kc, users):
    kc.get.return_value = StubResponse(200, [])

    users.search_users("ali")

    kc.get.assert_called_once_with(USERS, params={"search": "ali", "first": 0, "max": 100})


def test_find_by_username_is_exact(kc, users):
    kc.get.return_value = StubResponse(200, [{"username": "alice"}])

    assert users.find_by_username("alice") == [{"username": "alice"}]
    kc.get.assert_called_once_with(USERS, params={"username": "alice", "exact": "true"})


def test_find_by_email_filters_case_insensitively(kc, users):
    kc.get.return_value = StubResponse(
        200,
        [
            {"id": "1", "email": "Alice@Example.com"},
            {"id": "2", "email": "alice@example.com.evil"},
            {"id": "3"},
        ],
    )

    found = users.find_by_email("alice@example.com")

    assert [user["id"] for user in found] == ["1"]


def test_create_user_returns_id_from_location(kc, users):
    kc.post.return_value = StubResponse(201, headers={"Location": f"http://kc.test{USERS}/abc-123"})

    assert users.create_user({"username": "alice"}) == "abc-123"
    kc.post.assert_called_once_with(USERS, json={"username": "alice"})


def test_create_user_conflict(kc, users):
    kc.post.side_effect = KeycloakAPIError(409, '{"errorMessage":"User exists with same username"}', USERS)

    with pytest.raises(UserAlreadyExistsError, match="Status 409"):
        users.create_user({"username": "alice"})


def test_create_user_unexpected_success_status(kc, users):
    kc.post.return_value = StubResponse(200, {"id": "?"})

    with pytest.raises(KeycloakAPIError) as exc_info:
        users.create_user({"username": "alice"})
    assert exc_info.value.status_code == 200


def test_create_user_without_location_header(kc, users):
    kc.post.return_value = StubResponse(201)

    with pytest.raises(KeycloakError, match="No Location header in Keycloak response"):
        users.create_user({"username": "alice"})


def test_delete_missing_user(kc, users):
    kc.delete.side_effect = KeycloakAPIError(404, "", USERS + "/x")

    with pytest.raises(UserNotFoundError):
        users.delete_user("x")


def test_reset_password_is_permanent_by_default(kc, users):
    users.reset_password("u1", "S3cret!")

    kc.put.assert_called_once_with(
        f"{USERS}/u1/reset-password",
        json={"type": "password", "value": "S3cret!", "temporary": False},
    )


def test_execute_actions_email(kc, users):
    users.execute_actions_email("u1", ["UPDATE_PASSWORD"])

    kc.put.assert_called_once_with(f"{USERS}/u1/execute-actions-email", json=["UPDATE_PASSWORD"])


@pytest.mark.parametrize("user_id", ["..", ".", ""])
def test_dot_segments_never_reach_keycloak(kc, users, user_id):
    with pytest.raises(KeycloakError, match="Invalid path segment"):
        users.delete_user(user_id)
    kc.delete.assert_not_called()


def test_user_id_is_percent_encoded(kc, users):
    users.update_user("../../x?y", {"enabled": False})

    kc.put.assert_called_once_with(f"{USERS}/..%2F..%2Fx%3Fy", json={"enabled": False})
