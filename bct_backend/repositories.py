"""Query helpers over the local tables. Each repository wraps one Session."""
from __future__ import annotations
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bct_backend.models import DeclarationType, User


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_keycloak_id(self, keycloak_id: str) -> Optional[User]:
        return self.session.get(User, keycloak_id)

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.scalars(select(User).where(User.username == username)).first()

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return self.session.scalars(stmt).first()

    def exists_by_keycloak_id(self, keycloak_id: str) -> bool:
        return self.find_by_keycloak_id(keycloak_id) is not None

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def exists_by_email(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def find_all(self) -> list[User]:
        return list(self.session.scalars(select(User).order_by(User.username)))

    def save(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user

    def delete_by_keycloak_id(self, keycloak_id: str) -> bool:
        user = self.find_by_keycloak_id(keycloak_id)
        if user is None:
            return False
        self.session.delete(user)
        self.session.flush()
        return True


class DeclarationTypeRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all(self) -> list[DeclarationType]:
        return list(self.session.scalars(select(DeclarationType).order_by(DeclarationType.id)))

    def find_by_id(self, type_id: int) -> Optional[DeclarationType]:
        return self.session.get(DeclarationType, type_id)

    def find_by_code(self, code: str) -> Optional[DeclarationType]:
        stmt = select(DeclarationType).where(DeclarationType.code == code)
        return self.session.scalars(stmt).first()

    def exists_by_id(self, type_id: int) -> bool:
        return self.find_by_id(type_id) is not None

    def save(self, declaration_type: DeclarationType) -> DeclarationType:
        self.session.add(declaration_type)
        self.session.flush()
        return declaration_type

    def delete_by_id(self, type_id: int) -> None:
        declaration_type = self.find_by_id(type_id)
        if declaration_type is not None:
            self.session.delete(declaration_type)
            self.session.flush()
