from sqlalchemy import Boolean, Column, ForeignKey, Text
from vendorhub.database import Base


class Report(Base):
    __tablename__ = "reports"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    type = Column(Text, nullable=False)
    parameters = Column(Text, nullable=False, default="{}")  # JSON
    filters = Column(Text, nullable=False, default="{}")  # JSON
    created_by = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
