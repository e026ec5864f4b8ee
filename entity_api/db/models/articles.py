from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Article(Base):
    __tablename__ = 'articles'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False, default='')
    # 'draft' | 'published'
    status = Column(String(20), nullable=False, default='draft')
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    author = relationship("User")

    __table_args__ = (
        Index('idx_articles_author_id', 'author_id'),
        Index('idx_articles_status', 'status'),
    )
