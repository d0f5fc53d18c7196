from sqlalchemy import Column, ForeignKey, Text
from vendorhub.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Text, primary_key=True)
    actor_id = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    actor_role = Column(Text)
    action = Column(Text, nullable=False)
    entity_type = Column(Text)
    entity_id = Column(Text)
    details = Column(Text)  # JSON
    created_at = Column(Text, nullable=False)
