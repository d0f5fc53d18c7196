from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.orm import relationship
from vendorhub.database import Base

ROLES = ("vendor", "consultant", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    role = Column(Text, nullable=False)
    company = Column(Text)
    phone = Column(Text)
    address = Column(Text)
    password_hash = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    requires_login_approval = Column(Boolean, nullable=False, default=False)
    assigned_consultant_id = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    # Weak reference: lookup only, the consultant does not own the vendor.
    assigned_consultant = relationship("User", remote_side=[id], foreign_keys=[assigned_consultant_id])
    submissions = relationship("Submission", back_populates="vendor", cascade="all, delete-orphan")
