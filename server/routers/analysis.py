import logging
import time

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from errors import AnalysisFailed, NotFoundError, StorageError, UpstreamError, ValidationError
from schemas import AnalysisOut, AnalysisStatus, AnalyzeRequest, AnalyzeResponse
from services import store
from services.analyzer import analyze_repository
from services.github import GitHubClient, parse_repo_url
from services.providers import TextProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyze", tags=["analysis"])
limiter = Limiter(key_func=get_remote_address)


def get_github_client(settings: Settings = Depends(get_settings)) -> GitHubClient:
    return GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        timeout=settings.github_timeout,
    )


def get_text_provider(request: Request) -> TextProvider | None:
    # Selected once at startup, see main.lifespan
    return getattr(request.app.state, "provider", None)


@router.post("", response_model=AnalyzeResponse)
@limiter.limit("10/minute")
async def analyze(
    request: Request,
    body: AnalyzeRequest,
    db: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
    provider: TextProvider | None = Depends(get_text_provider),
):
    """
    Analyze a GitHub repository.

    Fetches metadata from GitHub, asks the configured AI provider for a
    code-health report and stores it. The request is held open until the
    analysis is complete.
    """
    if not body.repo_url or not body.repo_url.strip():
        raise ValidationError("Repository URL is required")

    repo_url = body.repo_url.strip()
    logger.info(f"Received repo URL: {repo_url}")

    owner, repo_name = parse_repo_url(repo_url)
    logger.info(f"Parsed - Owner: {owner}, Repo: {repo_name}")

    repository = store.find_repository(db, owner, repo_name)
    logger.info(f"Repository {owner}/{repo_name} in DB: {'found' if repository else 'not found'}")

    try:
        repo_info = await github.get_repository_info(owner, repo_name)
    except UpstreamError as e:
        raise UpstreamError(
            f"Failed to fetch repository from GitHub: {e.message}",
            upstream_status=e.upstream_status,
        ) from e

    if not repository:
        repository = store.get_or_create_repository(
            db, owner, repo_name, url=repo_url, description=repo_info.description
        )

    start_time = time.monotonic()
    try:
        languages, issues = await github.fetch_languages_and_issues(owner, repo_name)
    except UpstreamError as e:
        raise UpstreamError(
            f"Failed to fetch repository data from GitHub: {e.message}",
            upstream_status=e.upstream_status,
        ) from e
    logger.info(f"Fetched {len(languages)} languages, {len(issues)} issues for {repo_info.full_name}")

    analysis = store.create_analysis(db, repository.id)
    logger.info(f"Analysis record created: {analysis.id}", extra={"analysis_id": analysis.id})

    try:
        result = await analyze_repository(repo_info, languages, issues, provider)
        duration = int(time.monotonic() - start_time)
        store.complete_analysis(db, analysis.id, result, duration)
    except Exception as e:
        logger.exception(f"Analysis {analysis.id} failed", extra={"analysis_id": analysis.id})
        try:
            store.fail_analysis(db, analysis.id)
        except StorageError as update_error:
            logger.error(
                f"Failed to update analysis status: {update_error.message}",
                extra={"analysis_id": analysis.id},
            )
        raise AnalysisFailed(f"Analysis failed: {e}") from e

    logger.info(
        f"Analysis {analysis.id} complete in {duration} seconds",
        extra={"analysis_id": analysis.id, "duration": duration},
    )

    return AnalyzeResponse(
        analysis_id=analysis.id,
        repository_id=repository.id,
        status=AnalysisStatus.COMPLETED,
    )


@router.get("", response_model=AnalysisOut)
@limiter.limit("60/minute")
def get_analysis(
    request: Request,
    analysis_id: int | None = Query(None, alias="id"),
    db: Session = Depends(get_db),
):
    """Get an analysis with its repository. Polled by the dashboard."""
    if analysis_id is None:
        raise ValidationError("Analysis ID is required")

    analysis = store.get_analysis(db, analysis_id)
    if not analysis:
        raise NotFoundError("Analysis not found")

    return AnalysisOut.model_validate(analysis)
