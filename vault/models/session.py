"""Session model: one row per authenticated client."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vault.auth.fingerprint import IP_MAX_LENGTH, USER_AGENT_MAX_LENGTH, Fingerprint
from vault.database import Base


class Session(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_agent: Mapped[str] = mapped_column(String(USER_AGENT_MAX_LENGTH), nullable=False)
    ip: Mapped[str] = mapped_column(String(IP_MAX_LENGTH), nullable=False)
    max_age: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, doc="Absolute expiry, unix epoch seconds"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(user_agent=self.user_agent, ip=self.ip)
