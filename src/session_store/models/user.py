from sqlalchemy import Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from session_store.database.base import Base


class User(Base):
    """
    SQLAlchemy model for User.

    Users are created implicitly on first login and never deleted. There is no
    relationship to Conversation: `current_analysis_id` is a soft pointer with no
    foreign key, so it may reference a conversation that has since been deleted.
    """
    __tablename__ = "users"

    # Primary identifier (trimmed at login, immutable afterwards)
    user_name: Mapped[str] = mapped_column("userName", Text, primary_key=True)

    # Analysis session most recently created, opened or updated by this user
    current_analysis_id: Mapped[str | None] = mapped_column(
        "currentAnalysisId", Text, nullable=True
    )

    # Set once, at first login
    created_at: Mapped[str] = mapped_column("createdAt", Text, nullable=False)

    # Refreshed on every login
    last_active_at: Mapped[str] = mapped_column("lastActiveAt", Text, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<User(user_name={self.user_name!r}, "
            f"current_analysis_id={self.current_analysis_id!r})>"
        )


Index("idx_users_lastActiveAt", User.last_active_at.desc())
