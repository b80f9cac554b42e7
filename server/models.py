"""
SQLAlchemy models for the Repo Health API
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class Repository(Base):
    """A GitHub repository, identified by (owner, name)"""
    __tablename__ = "repositories"
    __table_args__ = (UniqueConstraint("owner", "name", name="uq_repositories_owner_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String, nullable=False)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    analyses = relationship("Analysis", back_populates="repository", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Repository(id={self.id}, owner='{self.owner}', name='{self.name}')>"


class Analysis(Base):
    """One AI code-health analysis of a repository"""
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default="processing")  # pending | processing | completed | failed

    # Result payloads, empty until the analysis completes
    code_health = Column(JSON, nullable=False, default=dict)
    issues = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)
    metrics = Column(JSON, nullable=False, default=dict)

    duration = Column(Integer)  # seconds
    analyzed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    repository = relationship("Repository", back_populates="analyses")

    def __repr__(self):
        return f"<Analysis(id={self.id}, repository_id={self.repository_id}, status='{self.status}')>"
