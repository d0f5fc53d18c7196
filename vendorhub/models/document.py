from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from vendorhub.database import Base


class SubmissionDocument(Base):
    __tablename__ = "submission_documents"

    id = Column(Text, primary_key=True)
    submission_id = Column(Text, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    title = Column(Text, nullable=False)
    document_type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    review_notes = Column(Text)
    reviewer_id = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    review_date = Column(Text)
    version = Column(Integer, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    submission = relationship("Submission", back_populates="documents")
    reviewer = relationship("User", foreign_keys=[reviewer_id])
    files = relationship(
        "DocumentFile",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="[DocumentFile.uploaded_at, DocumentFile.sequence]",
    )
    remarks = relationship(
        "DocumentRemark",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="[DocumentRemark.created_at, DocumentRemark.sequence]",
    )

    # UPDATEs carry "WHERE version = :old" and bump it, so a concurrent
    # decision surfaces as StaleDataError instead of being overwritten.
    __mapper_args__ = {"version_id_col": version}


class DocumentFile(Base):
    __tablename__ = "document_files"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("submission_documents.id", ondelete="CASCADE"), nullable=False)
    original_filename = Column(Text, nullable=False)
    stored_path = Column(Text, nullable=False, unique=True)
    file_hash = Column(Text, nullable=False)
    file_size_bytes = Column(Integer, nullable=False)
    mime_type = Column(Text)
    uploaded_at = Column(Text, nullable=False)
    sequence = Column(Integer, nullable=False, default=0)

    document = relationship("SubmissionDocument", back_populates="files")


class DocumentRemark(Base):
    """Append-only review remark; never updated or deleted in normal flow."""

    __tablename__ = "document_remarks"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("submission_documents.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(Text, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    sequence = Column(Integer, nullable=False, default=0)

    document = relationship("SubmissionDocument", back_populates="remarks")
    author = relationship("User")
