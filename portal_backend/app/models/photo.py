from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String

from app.models.base import Base


class StudentPhoto(Base):
    __tablename__ = "student_photos"

    id = Column(Integer, primary_key=True, index=True)
    # One photo per student; uploads overwrite
    autonomous_roll_no = Column(String, nullable=False, unique=True, index=True)
    filename = Column(String, nullable=True)
    content_type = Column(String, nullable=False)
    data = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
