import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

import requests
from pydantic import ValidationError

from .. import __version__
from ..sync.models import IssueThread, RemoteComment, RemoteRecord
from .auth import Credential, TokenProvider
from .errors import AuthenticationRequired, RateLimitExceeded, RemoteAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
PER_PAGE = 100
# Fixed policy: at most 200 issues per pass.
MAX_PAGES = 2


class GitHubClient:
    """REST client for GitHub issues and comments.

    The client holds no token: every request asks the provider for a
    fresh credential.  Nothing is retried; callers decide whether to try
    again on a later pass.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        api_url: str = DEFAULT_API_URL,
        timeout: tuple[float, float] = (10, 60),
        session: requests.Session | None = None,
    ):
        self.token_provider = token_provider
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._current_user: str | None = None
        self._warned_no_account = False

    @property
    def current_user(self) -> str | None:
        """Login of the account behind the most recent credential."""
        return self._current_user

    def _get_credential(self) -> Credential:
        credential = self.token_provider.get_credential()
        if credential is None or not credential.token:
            raise AuthenticationRequired()
        if credential.account:
            self._current_user = credential.account
        elif not self._warned_no_account:
            logger.warning(
                "GitHub login unknown (set GITHUB_USER); open issues "
                "assigned to you will be filed under backlog"
            )
            self._warned_no_account = True
        return credential

    def _headers(self, credential: Credential) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credential.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"kanban-sync/{__version__}",
        }

    def _api_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an authenticated request and return the decoded JSON body.
        """
        credential = self._get_credential()
        try:
            response = self.session.request(
                method,
                f"{self.api_url}{path}",
                params=params,
                json=body,
                headers=self._headers(credential),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteAPIError(method, path, 0, str(exc)) from exc

        if response.status_code == 403:
            remaining = response.headers.get("X-RateLimit-Remaining")
            if remaining == "0":
                raise RateLimitExceeded(
                    _parse_reset(response.headers.get("X-RateLimit-Reset"))
                )

        if not response.ok:
            raise RemoteAPIError(
                method, path, response.status_code, response.text
            )

        logger.debug("%s %s -> %d", method, path, response.status_code)
        if not response.content:
            return None
        return response.json()

    # Issues

    def fetch_all(
        self, repo: str, errors: list[str] | None = None
    ) -> Iterator[RemoteRecord]:
        """
        Lazily yield the repository's issues, newest pages first.

        Pull requests are skipped.  At most ``MAX_PAGES`` pages of
        ``PER_PAGE`` items are requested; a short page ends the listing.
        Items that cannot be decoded are skipped and described in
        *errors* when given.

        Raises:
            AuthenticationRequired: If no credential can be obtained
            RateLimitExceeded: If the rate limit is spent
            RemoteAPIError: For any other failed request
        """
        for page in range(1, MAX_PAGES + 1):
            items = self._api_request(
                "GET",
                f"/repos/{repo}/issues",
                params={"state": "all", "per_page": PER_PAGE, "page": page},
            )
            items = items or []
            for item in items:
                if item.get("pull_request") is not None:
                    continue
                try:
                    remote = RemoteRecord.from_api(item)
                except (KeyError, TypeError, ValidationError) as exc:
                    message = (
                        f"Issue #{item.get('number', '?')}: "
                        f"malformed data ({exc})"
                    )
                    logger.warning(message)
                    if errors is not None:
                        errors.append(message)
                    continue
                yield remote
            if len(items) < PER_PAGE:
                break

    def fetch_issue(self, repo: str, remote_id: int) -> RemoteRecord:
        """
        Get a single issue by number.
        """
        data = self._api_request("GET", f"/repos/{repo}/issues/{remote_id}")
        return RemoteRecord.from_api(data)

    def fetch_thread(self, repo: str, remote_id: int) -> IssueThread:
        """
        Get an issue's body, author, reactions and first 100 comments.

        Raises:
            RemoteAPIError: If either request fails
        """
        issue = self.fetch_issue(repo, remote_id)
        raw_comments = self._api_request(
            "GET",
            f"/repos/{repo}/issues/{remote_id}/comments",
            params={"per_page": PER_PAGE},
        )
        comments = [RemoteComment.from_api(c) for c in raw_comments or []]
        return IssueThread(
            body=issue.body,
            author=issue.author,
            author_avatar=issue.author_avatar,
            created_at=issue.created_at,
            reactions=issue.reactions,
            comments=comments,
        )

    def push(
        self,
        repo: str,
        remote_id: int,
        title: str,
        body: str,
        state: str,
    ) -> RemoteRecord:
        """
        Update an issue's title, body and state.

        Args:
            repo: ``owner/repo``
            remote_id: Issue number
            title: New title
            body: New body (Markdown)
            state: ``"open"`` or ``"closed"``

        Returns:
            The issue as returned by GitHub after the update

        Raises:
            ValueError: If state is not open/closed
            RemoteAPIError: If the update is rejected
        """
        if state not in ("open", "closed"):
            raise ValueError(f"Invalid issue state '{state}'")
        data = self._api_request(
            "PATCH",
            f"/repos/{repo}/issues/{remote_id}",
            body={"title": title, "body": body, "state": state},
        )
        return RemoteRecord.from_api(data)


def _parse_reset(value: str | None) -> datetime | None:
    """Convert an ``X-RateLimit-Reset`` header (unix seconds) to a datetime."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None
