import pytest

from bct_backend.core.declaration_types import DeclarationTypeService
from bct_backend.core.errors import ConflictError, NotFoundError, ValidationError
from bct_backend.database import build_engine, build_session_factory, init_db


@pytest.fixture()
def service():
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    return DeclarationTypeService(build_session_factory(engine))


def test_create_and_list(service):
    created = service.create({"code": "D1", "nom": "Daily", "format": "TXT", "frequence": "JOURNALIERE"})

    assert created.id is not None
    assert [item.to_dict() for item in service.get_all()] == [{
        "id": created.id,
        "code": "D1",
        "nom": "Daily",
        "format": "TXT",
        "frequence": "JOURNALIERE",
        "dateLimite": None,
        "actif": True,
    }]


def test_duplicate_code_conflicts(service):
    service.create({"code": "D1"})

    with pytest.raises(ConflictError, match="Declaration type with this code already exists"):
        service.create({"code": "D1"})


def test_invalid_payload(service):
    with pytest.raises(ValidationError):
        service.create({"nom": "no code"})


def test_update_overwrites_every_field(service):
    created = service.create({"code": "D1", "nom": "Daily", "format": "TXT", "dateLimite": "2025-01-31"})

    updated = service.update(created.id, {"code": "D1-BIS", "frequence": "TRIMESTRIELLE", "actif": False})

    assert updated.to_dict() == {
        "id": created.id,
        "code": "D1-BIS",
        "nom": None,
        "format": None,
        "frequence": "TRIMESTRIELLE",
        "dateLimite": None,
        "actif": False,
    }


def test_update_to_code_of_another_type_conflicts(service):
    service.create({"code": "D1"})
    other = service.create({"code": "D2"})

    with pytest.raises(ConflictError):
        service.update(other.id, {"code": "D1"})


def test_update_keeping_own_code(service):
    created = service.create({"code": "D1", "nom": "Old"})

    assert service.update(created.id, {"code": "D1", "nom": "New"}).name == "New"


def test_toggle_status(service):
    created = service.create({"code": "D1"})

    assert service.toggle_status(created.id).active is False
    assert service.toggle_status(created.id).active is True


def test_delete(service):
    created = service.create({"code": "D1"})

    service.delete(created.id)

    assert service.get_all() == []


@pytest.mark.parametrize("operation", ["get", "delete", "toggle_status"])
def test_unknown_id_not_found(service, operation):
    with pytest.raises(NotFoundError, match="Declaration type not found"):
        getattr(service, operation)(999)


def test_update_unknown_id_not_found(service):
    with pytest.raises(NotFoundError):
        service.update(999, {"code": "D1"})
