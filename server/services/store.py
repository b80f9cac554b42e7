"""
Persistence operations for repositories and analyses.

SQLAlchemy errors are wrapped in StorageError so the API layer can map
them to a 500 without knowing about the ORM.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from errors import InvalidTransition, StorageError
from models import Analysis, Repository
from schemas import AnalysisResult, AnalysisStatus

logger = logging.getLogger(__name__)


# =============================================================================
# REPOSITORIES
# =============================================================================

def find_repository(session: Session, owner: str, name: str) -> Repository | None:
    try:
        return (
            session.query(Repository)
            .filter(Repository.owner == owner, Repository.name == name)
            .first()
        )
    except SQLAlchemyError as e:
        raise StorageError("Database error: Failed to look up repository", details=str(e)) from e


def create_repository(
    session: Session, owner: str, name: str, url: str, description: str | None = None
) -> Repository:
    """Insert a repository row. IntegrityError propagates for the caller to resolve."""
    repository = Repository(owner=owner, name=name, url=url, description=description)
    session.add(repository)
    session.commit()
    session.refresh(repository)
    return repository


def get_or_create_repository(
    session: Session, owner: str, name: str, url: str, description: str | None = None
) -> Repository:
    """Get existing repository or create new one. Handles concurrent inserts."""
    repository = find_repository(session, owner, name)
    if repository:
        return repository

    try:
        repository = create_repository(session, owner, name, url, description)
        logger.info(f"Created repository {owner}/{name} (id={repository.id})")
        return repository
    except IntegrityError:
        # Another concurrent request created it - rollback and query again
        session.rollback()
        repository = find_repository(session, owner, name)
        if not repository:
            raise StorageError("Database error: Failed to create repository")
        logger.info(f"Repository {owner}/{name} was created concurrently, reusing id={repository.id}")
        return repository
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Database error: Failed to create repository", details=str(e)) from e


# =============================================================================
# ANALYSES
# =============================================================================

def create_analysis(session: Session, repository_id: int) -> Analysis:
    try:
        analysis = Analysis(
            repository_id=repository_id,
            status=AnalysisStatus.PROCESSING.value,
            code_health={},
            issues=[],
            recommendations=[],
            metrics={},
            analyzed_at=datetime.utcnow(),
        )
        session.add(analysis)
        session.commit()
        session.refresh(analysis)
        return analysis
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Database error: Failed to create analysis", details=str(e)) from e


def get_analysis(session: Session, analysis_id: int) -> Analysis | None:
    try:
        return (
            session.query(Analysis)
            .options(joinedload(Analysis.repository))
            .filter(Analysis.id == analysis_id)
            .first()
        )
    except SQLAlchemyError as e:
        raise StorageError("Failed to fetch analysis", details=str(e)) from e


def _transition(session: Session, analysis_id: int, target: AnalysisStatus) -> Analysis:
    analysis = session.get(Analysis, analysis_id)
    if analysis is None:
        raise StorageError(f"Analysis {analysis_id} does not exist")

    current = AnalysisStatus(analysis.status)
    if current.is_terminal:
        raise InvalidTransition(
            f"Analysis {analysis_id} is already {current.value}, cannot mark it {target.value}"
        )

    analysis.status = target.value
    return analysis


def complete_analysis(
    session: Session, analysis_id: int, result: AnalysisResult, duration: int
) -> Analysis:
    """Store the result payloads and mark the analysis completed."""
    try:
        analysis = _transition(session, analysis_id, AnalysisStatus.COMPLETED)
        payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)
        analysis.code_health = payload["codeHealth"]
        analysis.issues = payload["issues"]
        analysis.recommendations = payload["recommendations"]
        analysis.metrics = payload["metrics"]
        analysis.duration = duration
        analysis.analyzed_at = datetime.utcnow()
        session.commit()
        session.refresh(analysis)
        return analysis
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Database error: Failed to update analysis", details=str(e)) from e


def fail_analysis(session: Session, analysis_id: int) -> Analysis:
    try:
        analysis = _transition(session, analysis_id, AnalysisStatus.FAILED)
        session.commit()
        session.refresh(analysis)
        return analysis
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError("Database error: Failed to update analysis status", details=str(e)) from e
