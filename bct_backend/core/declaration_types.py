"""Declaration-type catalogue: the one piece of reference data owned locally."""
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from bct_backend.core.errors import ConflictError, NotFoundError
from bct_backend.core.validators import validate_declaration_type
from bct_backend.database import session_scope
from bct_backend.models import DeclarationType
from bct_backend.repositories import DeclarationTypeRepository

logger = logging.getLogger(__name__)

DUPLICATE_CODE = "Declaration type with this code already exists"
NOT_FOUND = "Declaration type not found"


class DeclarationTypeService:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create(self, payload: Optional[dict]) -> DeclarationType:
        """Insert a new type.

        Raises:
            ValidationError: Missing code or invalid format/frequence/dateLimite
            ConflictError: Another type already uses the code
        """
        fields = validate_declaration_type(payload)
        with session_scope(self.session_factory) as session:
            repo = DeclarationTypeRepository(session)
            if repo.find_by_code(fields["code"]) is not None:
                raise ConflictError(DUPLICATE_CODE)
            declaration_type = repo.save(DeclarationType(**fields))
        logger.info("Declaration type created: %s", declaration_type.code)
        return declaration_type

    def get_all(self) -> list[DeclarationType]:
        with session_scope(self.session_factory) as session:
            return DeclarationTypeRepository(session).find_all()

    def get(self, type_id: int) -> DeclarationType:
        with session_scope(self.session_factory) as session:
            return self._require(DeclarationTypeRepository(session), type_id)

    def update(self, type_id: int, payload: Optional[dict]) -> DeclarationType:
        """Overwrite every field of an existing type."""
        fields = validate_declaration_type(payload)
        with session_scope(self.session_factory) as session:
            repo = DeclarationTypeRepository(session)
            declaration_type = self._require(repo, type_id)

            other = repo.find_by_code(fields["code"])
            if other is not None and other.id != declaration_type.id:
                raise ConflictError(DUPLICATE_CODE)

            for name, value in fields.items():
                setattr(declaration_type, name, value)
            repo.save(declaration_type)
        logger.info("Declaration type updated: %s", type_id)
        return declaration_type

    def delete(self, type_id: int) -> None:
        with session_scope(self.session_factory) as session:
            repo = DeclarationTypeRepository(session)
            if not repo.exists_by_id(type_id):
                raise NotFoundError(NOT_FOUND)
            repo.delete_by_id(type_id)
        logger.info("Declaration type deleted: %s", type_id)

    def toggle_status(self, type_id: int) -> DeclarationType:
        with session_scope(self.session_factory) as session:
            repo = DeclarationTypeRepository(session)
            declaration_type = self._require(repo, type_id)
            declaration_type.active = not declaration_type.active
            repo.save(declaration_type)
        logger.info("Declaration type %s active=%s", type_id, declaration_type.active)
        return declaration_type

    @staticmethod
    def _require(repo: DeclarationTypeRepository, type_id: int) -> DeclarationType:
        declaration_type = repo.find_by_id(type_id)
        if declaration_type is None:
            raise NotFoundError(NOT_FOUND)
        return declaration_type
