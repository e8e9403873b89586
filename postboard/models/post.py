"""
Post model: text fields plus an ordered list of stored image filenames.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    userid = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    imgs = Column(JSON, nullable=False, default=list)  # entries may be null
    created_at = Column(DateTime, nullable=True, default=lambda: datetime.now(timezone.utc), index=True)

    # Relationships
    user = relationship("User", back_populates="posts")

    @property
    def image_names(self):
        """Stored filenames with empty slots dropped."""
        return [img for img in (self.imgs or []) if img]
