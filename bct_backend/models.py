"""
SQLAlchemy models: local mirror of Keycloak users and the declaration-type catalogue.
"""
import enum
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DeclarationFormat(str, enum.Enum):
    TXT = "TXT"
    XML = "XML"


class DeclarationFrequency(str, enum.Enum):
    JOURNALIERE = "JOURNALIERE"
    MENSUELLE = "MENSUELLE"
    TRIMESTRIELLE = "TRIMESTRIELLE"


class User(Base):
    """Read-only copy of a Keycloak user; Keycloak stays the source of truth."""
    __tablename__ = "users"

    keycloak_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    role_links: Mapped[list["UserRole"]] = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def roles(self) -> set[str]:
        return {link.role for link in self.role_links}

    @roles.setter
    def roles(self, names) -> None:
        wanted = set(names)
        self.role_links = [link for link in self.role_links if link.role in wanted]
        present = {link.role for link in self.role_links}
        for name in sorted(wanted - present):
            self.role_links.append(UserRole(role=name))

    def to_dict(self) -> dict:
        return {
            "keycloakId": self.keycloak_id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": self.enabled,
            "emailVerified": self.email_verified,
            "roles": sorted(self.roles),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.keycloak_id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(255), primary_key=True)

    user: Mapped["User"] = relationship("User", back_populates="role_links")


class DeclarationType(Base):
    __tablename__ = "declaration_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    format: Mapped[DeclarationFormat | None] = mapped_column(
        Enum(DeclarationFormat, native_enum=False, length=16), nullable=True
    )
    frequency: Mapped[DeclarationFrequency | None] = mapped_column(
        Enum(DeclarationFrequency, native_enum=False, length=16), nullable=True
    )
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dict(self) -> dict:
        """Serialize with the field names the admin frontend expects."""
        return {
            "id": self.id,
            "code": self.code,
            "nom": self.name,
            "format": self.format.value if self.format else None,
            "frequence": self.frequency.value if self.frequency else None,
            "dateLimite": self.deadline.isoformat() if self.deadline else None,
            "actif": self.active,
        }
