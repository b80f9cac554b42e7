"""
Repo Health services

- github: URL parsing and the GitHub REST client
- providers: hosted text-generation providers (Gemini, Groq)
- analyzer: prompt construction and AI response normalization
- store: repository and analysis persistence
"""

from .github import GitHubClient, RepoInfo, RepoIssue, parse_repo_url
from .analyzer import analyze_repository, parse_model_json, fallback_result
from .providers import TextProvider, build_provider

__all__ = [
    "GitHubClient",
    "RepoInfo",
    "RepoIssue",
    "parse_repo_url",
    "analyze_repository",
    "parse_model_json",
    "fallback_result",
    "TextProvider",
    "build_provider",
]
