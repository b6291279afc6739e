"""SQLAlchemy models for users and custodial wallets."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    false,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TelegramUser(Base):
    """User account linked to Telegram."""

    __tablename__ = "telegram_users"

    telegram_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Wallet(Base):
    """Custodial key pair owned by a Telegram user.

    private_key, public_key and address hold Fernet ciphertext. Rows are
    never removed; `deleted` is a tombstone.
    """

    __tablename__ = "aptos_wallets"
    # Names are unique among live wallets only, so a tombstoned name can be reused
    __table_args__ = (
        Index(
            "uq_wallets_user_name",
            "telegram_id",
            "wallet_name",
            unique=True,
            sqlite_where=text("deleted = 0"),
            postgresql_where=text("deleted = false"),
        ),
    )
    # Server-side timestamps are read back right after flush
    __mapper_args__ = {"eager_defaults": True}

    # Autoincrement id gives the stable insertion order used by listings
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[str] = mapped_column(
        ForeignKey("telegram_users.telegram_id"), nullable=False, index=True
    )
    wallet_name: Mapped[str] = mapped_column(String(20), nullable=False)
    private_key: Mapped[str] = mapped_column(Text, nullable=False)
    public_key: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
