import asyncio
import logging
import re
from dataclasses import dataclass

import httpx

from errors import InvalidRepoUrl, UpstreamError

logger = logging.getLogger(__name__)

GITHUB_URL_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/\s]+)")


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """
    Extract (owner, repo) from a free-form GitHub URL.

    Accepts https and ssh forms (github.com/owner/repo, github.com:owner/repo),
    with or without a trailing .git. Raises InvalidRepoUrl on no match.
    """
    match = GITHUB_URL_PATTERN.search(repo_url or "")
    if not match:
        raise InvalidRepoUrl(repo_url)

    owner, repo_name = match.group(1), match.group(2)
    repo_name = re.sub(r"\.git$", "", repo_name).strip()
    if not repo_name:
        raise InvalidRepoUrl(repo_url)
    return owner, repo_name


@dataclass
class RepoInfo:
    owner: str
    name: str
    full_name: str
    description: str | None
    stars: int
    forks: int
    language: str | None
    url: str
    default_branch: str
    size: int | None = None  # KB, as reported by GitHub


@dataclass
class RepoIssue:
    number: int
    title: str
    state: str
    url: str | None = None


class GitHubClient:
    """Thin async client over the GitHub REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _get(self, path: str, params: dict | None = None):
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
            # Renamed or transferred repositories answer with 301
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                message = _error_message(e.response)
                logger.warning(f"GitHub API error {e.response.status_code} on {path}: {message}")
                raise UpstreamError(message, upstream_status=e.response.status_code) from e
            except httpx.RequestError as e:
                logger.warning(f"GitHub API request failed on {path}: {e}")
                raise UpstreamError(str(e) or e.__class__.__name__) from e

            try:
                return response.json()
            except ValueError as e:
                logger.warning(f"GitHub API returned a non-JSON body on {path}")
                raise UpstreamError("GitHub returned an invalid response", upstream_status=response.status_code) from e

    async def get_repository_info(self, owner: str, repo: str) -> RepoInfo:
        data = await self._get(f"/repos/{owner}/{repo}")
        try:
            return RepoInfo(
                owner=data["owner"]["login"],
                name=data["name"],
                full_name=data["full_name"],
                description=data.get("description"),
                stars=data.get("stargazers_count", 0),
                forks=data.get("forks_count", 0),
                language=data.get("language"),
                url=data["html_url"],
                default_branch=data.get("default_branch", "main"),
                size=data.get("size"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"Unexpected repository payload from GitHub: missing {e}") from e

    async def get_repo_languages(self, owner: str, repo: str) -> dict[str, int]:
        return await self._get(f"/repos/{owner}/{repo}/languages")

    async def get_repo_issues(
        self, owner: str, repo: str, state: str = "open", per_page: int = 100
    ) -> list[RepoIssue]:
        data = await self._get(
            f"/repos/{owner}/{repo}/issues",
            params={"state": state, "per_page": per_page},
        )
        return [
            RepoIssue(
                number=item["number"],
                title=item["title"],
                state=item["state"],
                url=item.get("html_url"),
            )
            for item in data
        ]

    async def fetch_languages_and_issues(self, owner: str, repo: str) -> tuple[dict[str, int], list[RepoIssue]]:
        """Fetch languages and open issues concurrently."""
        languages, issues = await asyncio.gather(
            self.get_repo_languages(owner, repo),
            self.get_repo_issues(owner, repo),
        )
        return languages, issues


def _error_message(response: httpx.Response) -> str:
    """Prefer GitHub's own 'message' field over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"HTTP {response.status_code}"
