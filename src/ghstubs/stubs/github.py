"""Descriptors for the GitHub REST endpoints the client uses."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ghstubs.stubs.page import Page
from ghstubs.stubs.service import Service, delete, get, patch, post, put

REACTIONS_ACCEPT = "application/vnd.github.squirrel-girl-preview+json"


class UserService(Service):
    """Users and followers."""

    @get("/user")
    def get_authenticated_user(self) -> httpx.Response:
        """Fetch the user the token belongs to."""

    @get("/users/{username}")
    def get_user(self, username: str) -> httpx.Response:
        """Fetch a user profile."""

    @get("/users/{username}/followers", paged=True)
    def list_followers(self, username: str, page: Optional[int] = None) -> Page:
        """List a user's followers."""

    @get("/users/{username}/following", paged=True)
    def list_following(self, username: str, page: Optional[int] = None) -> Page:
        """List the users a user follows."""


class RepositoryService(Service):
    """Repositories, branches and stars."""

    @get("/repos/{owner}/{repo}")
    def get_repository(self, owner: str, repo: str) -> httpx.Response:
        """Fetch a repository."""

    @get("/users/{username}/repos", paged=True)
    def list_user_repositories(
        self,
        username: str,
        type: Optional[str] = None,
        sort: Optional[str] = None,
        page: Optional[int] = None,
    ) -> Page:
        """List a user's public repositories."""

    @get("/repos/{owner}/{repo}/branches", paged=True)
    def list_branches(self, owner: str, repo: str, page: Optional[int] = None) -> Page:
        """List the branches of a repository."""

    @get("/user/starred/{owner}/{repo}")
    def check_starred(self, owner: str, repo: str) -> httpx.Response:
        """204 if the authenticated user starred the repository, 404 otherwise."""

    @put("/user/starred/{owner}/{repo}")
    def star_repository(self, owner: str, repo: str) -> httpx.Response:
        """Star a repository."""

    @delete("/user/starred/{owner}/{repo}")
    def unstar_repository(self, owner: str, repo: str) -> httpx.Response:
        """Remove a star from a repository."""


class IssueService(Service):
    """Issues, comments and reactions."""

    @get("/repos/{owner}/{repo}/issues", paged=True)
    def list_issues(
        self,
        owner: str,
        repo: str,
        state: Optional[str] = None,
        labels: Optional[str] = None,
        page: Optional[int] = None,
    ) -> Page:
        """List the issues of a repository."""

    @get("/repos/{owner}/{repo}/issues/{number}")
    def get_issue(self, owner: str, repo: str, number: int) -> httpx.Response:
        """Fetch one issue."""

    @post("/repos/{owner}/{repo}/issues")
    def create_issue(self, owner: str, repo: str, body: dict[str, Any]) -> httpx.Response:
        """Open an issue; *body* carries ``title`` and optionally ``body``."""

    @patch("/repos/{owner}/{repo}/issues/{number}")
    def edit_issue(
        self, owner: str, repo: str, number: int, body: dict[str, Any]
    ) -> httpx.Response:
        """Edit an issue."""

    @get("/repos/{owner}/{repo}/issues/{number}/comments", paged=True)
    def list_comments(
        self, owner: str, repo: str, number: int, page: Optional[int] = None
    ) -> Page:
        """List the comments on an issue."""

    @get("/repos/{owner}/{repo}/issues/{number}/reactions", paged=True, accept=REACTIONS_ACCEPT)
    def list_reactions(
        self, owner: str, repo: str, number: int, page: Optional[int] = None
    ) -> Page:
        """List the reactions to an issue."""


class SearchService(Service):
    """Search."""

    @get("/search/repositories", paged=True)
    def search_repositories(
        self,
        q: str,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        page: Optional[int] = None,
    ) -> Page:
        """Search repositories."""

    @get("/search/issues", paged=True)
    def search_issues(
        self,
        q: str,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        page: Optional[int] = None,
    ) -> Page:
        """Search issues and pull requests."""

    @get("/search/users", paged=True)
    def search_users(self, q: str, page: Optional[int] = None) -> Page:
        """Search users."""


SERVICES: dict[str, type[Service]] = {
    "users": UserService,
    "repos": RepositoryService,
    "issues": IssueService,
    "search": SearchService,
}
