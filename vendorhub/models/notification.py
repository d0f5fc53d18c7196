from sqlalchemy import Boolean, Column, ForeignKey, Text
from vendorhub.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Text, primary_key=True)
    recipient_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    related_submission_id = Column(Text)
    related_document_id = Column(Text)
    priority = Column(Text, nullable=False, default="medium")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
