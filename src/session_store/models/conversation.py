from sqlalchemy import Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from session_store.database.base import Base


class Conversation(Base):
    """
    SQLAlchemy model for a Conversation.

    One analysis session owned by a single user: the analysis document, its chat
    transcript and the derived beauty plan. The three document columns hold
    serialized JSON text and are never interpreted by the store.

    Column names are camelCase in the database (the persisted layout); Python
    attributes are snake_case.
    """
    __tablename__ = "conversations"

    # Surrogate key. AUTOINCREMENT (see __table_args__) guarantees ids are never reused.
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Owning user (free-form, case-sensitive)
    user_name: Mapped[str] = mapped_column("userName", Text, nullable=False)

    # Caller-supplied analysis session identifier
    analysis_id: Mapped[str] = mapped_column("analysisId", Text, nullable=False)

    # Opaque JSON documents stored as text ("null" when absent)
    analysis_data: Mapped[str | None] = mapped_column("analysisData", Text, nullable=True)
    chat_messages: Mapped[str] = mapped_column("chatMessages", Text, nullable=False)
    beauty_plan: Mapped[str | None] = mapped_column("beautyPlan", Text, nullable=True)

    # ISO-8601 UTC timestamps, written by the repository (not the database)
    created_at: Mapped[str] = mapped_column("createdAt", Text, nullable=False)
    updated_at: Mapped[str] = mapped_column("updatedAt", Text, nullable=False)

    __table_args__ = (
        # At most one conversation per user per analysis session.
        # Named by column (the camelCase database name), not by attribute
        UniqueConstraint("userName", "analysisId"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id!r}, user_name={self.user_name!r}, "
            f"analysis_id={self.analysis_id!r})>"
        )


# Secondary indexes backing list-by-user and recency-ordered queries
Index("idx_conversations_userName", Conversation.user_name)
Index("idx_conversations_analysisId", Conversation.analysis_id)
Index("idx_conversations_updatedAt", Conversation.updated_at.desc())
