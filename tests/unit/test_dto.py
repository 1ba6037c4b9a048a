import pytest

from bct_backend.core.dto import CreateUserRequest, RoleDTO, UserDTO
from bct_backend.core.errors import ValidationError


def test_user_dto_from_keycloak_uses_camel_case_keys():
    dto = UserDTO.from_keycloak(
        {
            "id": "u1",
            "username": "alice",
            "email": "alice@example.com",
            "firstName": "Alice",
            "lastName": "Martin",
            "enabled": True,
            "emailVerified": False,
            "createdTimestamp": 1700000000000,
        },
        ["ROLE_ADMIN"],
    )

    assert dto.to_dict() == {
        "id": "u1",
        "username": "alice",
        "email": "alice@example.com",
        "firstName": "Alice",
        "lastName": "Martin",
        "enabled": True,
        "emailVerified": False,
        "createdTimestamp": 1700000000000,
        "roles": ["ROLE_ADMIN"],
    }


def test_user_dto_tolerates_sparse_representation():
    dto = UserDTO.from_keycloak({"id": "u1", "username": "svc"})

    assert dto.enabled is False
    assert dto.email is None
    assert dto.roles == []


def test_role_dto_from_keycloak():
    role = RoleDTO.from_keycloak({"id": "r1", "name": "ROLE_AGENT", "composite": False})
    assert role.to_dict() == {"id": "r1", "name": "ROLE_AGENT", "description": None}


def test_create_request_normalizes_input():
    request = CreateUserRequest.from_dict({
        "username": "  alice ",
        "email": " Alice@Example.COM ",
        "firstName": " Alice ",
        "lastName": None,
        "roles": ["ROLE_AGENT"],
    })

    assert request.username == "alice"
    assert request.email == "alice@example.com"
    assert request.first_name == "Alice"
    assert request.last_name == ""
    assert request.enabled is True
    assert request.roles == ["ROLE_AGENT"]


def test_create_request_from_none():
    request = CreateUserRequest.from_dict(None)

    assert request.username is None
    assert request.email is None
    assert request.roles == []


def test_create_request_keycloak_payload_is_email_verified():
    payload = CreateUserRequest.from_dict({"username": "bob", "email": "bob@example.com", "enabled": False}).to_keycloak()

    assert payload == {
        "username": "bob",
        "email": "bob@example.com",
        "firstName": "",
        "lastName": "",
        "enabled": False,
        "emailVerified": True,
    }


@pytest.mark.parametrize("raw, expected", [("false", False), ("FALSE", False), ("true", True), (0, False), (1, True)])
def test_enabled_flag_parses_strings_and_numbers(raw, expected):
    assert CreateUserRequest.from_dict({"enabled": raw}).enabled is expected
    assert UserDTO.from_dict({"enabled": raw}).enabled is expected


@pytest.mark.parametrize("raw", ["maybe", 2, [True]])
def test_enabled_flag_rejects_other_values(raw):
    with pytest.raises(ValidationError, match="Invalid enabled"):
        CreateUserRequest.from_dict({"enabled": raw})


@pytest.mark.parametrize("body", [["alice"], "alice", 42])
def test_request_body_must_be_object(body):
    with pytest.raises(ValidationError, match="Request body must be a JSON object"):
        CreateUserRequest.from_dict(body)
    with pytest.raises(ValidationError, match="Request body must be a JSON object"):
        UserDTO.from_dict(body)


def test_roles_must_be_a_list():
    with pytest.raises(ValidationError, match="Invalid roles"):
        UserDTO.from_dict({"roles": "ROLE_ADMIN"})
