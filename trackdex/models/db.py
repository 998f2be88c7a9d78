"""
SQLAlchemy ORM models for persistent storage.

Four durable row-sets: the rarity ladder, the item catalog, per-user
reward balances and the ledger of owned copies.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class RarityDB(Base):
    """
    One tier of the rarity ladder.

    Levels are unique and dense from 1 upward; the engine finds the next
    tier by looking up ``level + 1`` directly.
    """

    __tablename__ = "rarities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    color: Mapped[str] = mapped_column(String(7))
    level: Mapped[int] = mapped_column(Integer, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<RarityDB(name={self.name}, level={self.level})>"


class CollectionDB(Base):
    """
    A collection of items imported from a playlist.

    Populated by the import pipeline; the economy engine only samples it.
    """

    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500))
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items: Mapped[list["CollectionItemDB"]] = relationship(
        back_populates="collection", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<CollectionDB(id={self.id}, name={self.name})>"


class CollectionItemDB(Base):
    """A single collectible track inside a collection."""

    __tablename__ = "collection_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("collections.id", ondelete="CASCADE"), index=True
    )
    track_name: Mapped[str] = mapped_column(String(500))
    album_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    album_cover_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    collection: Mapped["CollectionDB"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<CollectionItemDB(id={self.id}, track={self.track_name})>"


class UserCollectionDB(Base):
    """
    A user's stake in a collection: the reward balance row.

    Created when the user takes the collection. Claim, recycle and free
    claim lock this row before touching ``unclaimed_rewards``.
    """

    __tablename__ = "user_collections"
    __table_args__ = (
        UniqueConstraint("user_id", "collection_id", name="uq_user_collection"),
        CheckConstraint("unclaimed_rewards >= 0", name="ck_unclaimed_rewards_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("collections.id", ondelete="CASCADE"), index=True
    )
    unclaimed_rewards: Mapped[int] = mapped_column(Integer, default=0)
    last_free_claim: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<UserCollectionDB(user={self.user_id}, collection={self.collection_id}, "
            f"rewards={self.unclaimed_rewards})>"
        )


class OwnedCopyDB(Base):
    """
    One physical copy of an item owned by a user.

    Duplicates of the same (user, item, rarity) are separate rows. At most
    one row per (user, item) may be stuck.
    """

    __tablename__ = "user_collection_items"
    __table_args__ = (
        Index("ix_owned_copies_user_item_rarity", "user_id", "item_id", "rarity_id"),
        Index(
            "uq_owned_copies_one_stuck",
            "user_id",
            "item_id",
            unique=True,
            postgresql_where=text("is_stuck"),
            sqlite_where=text("is_stuck = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("collection_items.id", ondelete="CASCADE")
    )
    rarity_id: Mapped[int] = mapped_column(Integer, ForeignKey("rarities.id"))
    is_stuck: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<OwnedCopyDB(user={self.user_id}, item={self.item_id}, "
            f"rarity={self.rarity_id}, stuck={self.is_stuck})>"
        )
