import pytest

BASE = "/api/admin/declaration-types"


@pytest.fixture()
def headers(login_as):
    return login_as(["ROLE_ADMIN"])


def create(client, headers, **body):
    body.setdefault("code", "D1")
    return client.post(BASE, json=body, headers=headers)


def test_requires_admin(client, login_as):
    assert client.get(BASE).status_code == 401
    assert client.get(BASE, headers=login_as(["ROLE_AUDITOR"])).status_code == 403


def test_create_and_list(client, headers):
    response = create(client, headers, nom="Mensuelle TVA", format="XML", frequence="MENSUELLE", dateLimite="2025-02-15")

    assert response.status_code == 200
    created = response.get_json()
    assert created["code"] == "D1"
    assert created["dateLimite"] == "2025-02-15"
    assert created["actif"] is True

    listing = client.get(BASE, headers=headers).get_json()
    assert [item["id"] for item in listing] == [created["id"]]


def test_duplicate_code_is_409(client, headers):
    create(client, headers)

    response = create(client, headers)

    assert response.status_code == 409
    assert response.get_json() == {"error": "Declaration type with this code already exists"}


def test_invalid_payload_is_400(client, headers):
    response = client.post(BASE, json={"code": "D1", "format": "PDF"}, headers=headers)

    assert response.status_code == 400
    assert "Invalid format" in response.get_json()["error"]


def test_non_string_code_is_400(client, headers):
    response = client.post(BASE, json={"code": 123}, headers=headers)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid code: expected a string"}


def test_update(client, headers):
    type_id = create(client, headers).get_json()["id"]

    response = client.put(f"{BASE}/{type_id}", json={"code": "D1", "nom": "Renamed"}, headers=headers)

    assert response.status_code == 200
    assert response.get_json()["nom"] == "Renamed"


def test_toggle(client, headers):
    type_id = create(client, headers).get_json()["id"]

    response = client.patch(f"{BASE}/{type_id}/toggle", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["actif"] is False


def test_delete(client, headers):
    type_id = create(client, headers).get_json()["id"]

    response = client.delete(f"{BASE}/{type_id}", headers=headers)

    assert response.status_code == 200
    assert response.get_json() == {"message": "Declaration type deleted successfully"}
    assert client.get(BASE, headers=headers).get_json() == []


@pytest.mark.parametrize(
    "method, suffix, body",
    [("put", "", {"code": "X"}), ("delete", "", None), ("patch", "/toggle", None), ("get", "", None)],
)
def test_unknown_id_is_404(client, headers, method, suffix, body):
    response = getattr(client, method)(f"{BASE}/999{suffix}", json=body, headers=headers)

    assert response.status_code == 404
    assert response.get_json() == {"error": "Declaration type not found"}
