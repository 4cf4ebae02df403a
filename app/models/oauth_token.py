from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from app.db.base import Base


class OAuthToken(Base):
    """
    OAuth token pair persisted for a provider connection (e.g. Calendly), so a
    restart does not require the administrator to reconnect.
    """

    __tablename__ = "oauth_tokens"

    id = Column(Integer, primary_key=True, index=True)

    provider = Column(String(32), nullable=False, index=True)

    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("provider", name="uq_oauth_tokens_provider"),
    )

    def __repr__(self) -> str:
        return f"<OAuthToken id={self.id} provider={self.provider} updated_at={self.updated_at}>"
