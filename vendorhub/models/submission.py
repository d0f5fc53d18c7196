from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from vendorhub.database import Base
from vendorhub.services.status_service import derive_submission_status


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Text, primary_key=True)
    vendor_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    period = Column(Text, nullable=False)
    month = Column(Text)
    year = Column(Integer)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    vendor = relationship("User", back_populates="submissions")
    documents = relationship(
        "SubmissionDocument",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionDocument.position",
    )

    @property
    def status(self) -> str:
        # Projection over the documents; never stored, so it cannot drift.
        return derive_submission_status([d.status for d in self.documents]).value
