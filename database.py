from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker

from events import ValidationEvent, ValidationOutcome

Base = declarative_base()

ATTEMPT_RESULTS = {
    ValidationOutcome.ONLINE_CHECK: "success",
    ValidationOutcome.NO_CACHE_OFFLINE: "failed",
    ValidationOutcome.GRACE_PERIOD: "offline",
    ValidationOutcome.EXPIRED_GRACE: "failed",
}


class ValidationAttempt(Base):
    __tablename__ = "validation_attempts"

    id = Column(Integer, primary_key=True, index=True)
    product_name = Column(String(255), nullable=False)

    # Attempt Result
    result = Column(String(20), nullable=False)  # success, failed, offline
    outcome = Column(String(32), nullable=False)
    reason = Column(String(100))
    error_message = Column(Text)

    # Context
    hardware_id = Column(String(255))
    attempted_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)


def init_db(database_url: str) -> sessionmaker:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class ValidationAttemptRecorder:
    """
    Event sink that keeps an audit trail of remote validation attempts.

    Cache hits are not recorded. The table is never read back by the agent.
    """

    def __init__(self, session_factory: sessionmaker, hardware_id: Optional[str] = None):
        self.session_factory = session_factory
        self.hardware_id = hardware_id

    def __call__(self, event: ValidationEvent) -> None:
        if not event.outcome.is_remote_attempt:
            return

        error = event.error
        if error is not None and getattr(error, "original_error", None) is not None:
            error_message = f"{error}: {error.original_error}"
        elif error is not None:
            error_message = str(error)
        else:
            error_message = None

        db = self.session_factory()
        try:
            db.add(ValidationAttempt(
                product_name=event.product_name,
                result=ATTEMPT_RESULTS[event.outcome],
                outcome=event.outcome.value,
                reason=event.reason,
                error_message=error_message,
                hardware_id=self.hardware_id,
                attempted_at=event.occurred_at,
            ))
            db.commit()
        finally:
            db.close()
