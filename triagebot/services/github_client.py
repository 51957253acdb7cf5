"""
GitHub REST client for the operations the triage flows need.

Authenticates as a GitHub App installation (RS256 App JWT exchanged for a
short-lived installation token) unless a legacy token is configured.
HTTP failures are classified into the error taxonomy here so callers can
recover by exception type.
"""

import base64
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import jwt

from triagebot.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    UpstreamError,
)
from triagebot.models.changed_file import ChangedFile
from triagebot.utils.logging import get_logger, log_api_call
from triagebot.utils.resilience import retry_with_backoff


logger = get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"

# Refresh installation tokens this many seconds before GitHub expires them
TOKEN_REFRESH_MARGIN = 60


class InstallationTokenProvider:
    """Mints and caches GitHub App installation access tokens."""

    def __init__(
        self,
        app_id: int,
        private_key: str,
        installation_id: int,
        http: httpx.AsyncClient,
        static_token: Optional[str] = None,
    ):
        self.app_id = app_id
        self.installation_id = installation_id
        self._private_key = private_key
        self._http = http
        self._static_token = static_token
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def create_app_jwt(self, now: Optional[int] = None) -> str:
        """Create the App JWT used to request installation tokens."""
        now = int(now if now is not None else time.time())
        payload = {
            "iat": now - 60,  # tolerate clock drift
            "exp": now + 540,
            "iss": str(self.app_id),
        }
        return jwt.encode(payload, self._private_key, algorithm="RS256")

    async def get_token(self) -> str:
        if self._static_token:
            return self._static_token

        if self._token and time.time() < self._expires_at - TOKEN_REFRESH_MARGIN:
            return self._token

        endpoint = f"/app/installations/{self.installation_id}/access_tokens"
        response = await self._http.post(
            endpoint,
            headers={"Authorization": f"Bearer {self.create_app_jwt()}"},
        )
        if response.status_code >= 400:
            raise classify_response(response)

        data = response.json()
        self._token = data["token"]
        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))
        self._expires_at = expires_at.astimezone(timezone.utc).timestamp()
        logger.info(f"Minted installation token for installation {self.installation_id}")
        return self._token


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("message", "")) + "".join(
            f" {err.get('message', '')}" for err in data.get("errors", []) if isinstance(err, dict)
        )
    return response.text


def _is_rate_limited(response: httpx.Response) -> bool:
    return (
        response.headers.get("x-ratelimit-remaining") == "0"
        or "retry-after" in response.headers
    )


def classify_response(response: httpx.Response) -> UpstreamError:
    """
    Map a failed GitHub response onto the error taxonomy.
    
    Only a 422 naming a non-collaborator is a ``PermissionDeniedError``;
    a plain 403 (missing App permission) is an ``UpstreamError`` and a
    rate-limited 403 is transient.
    
    Returns (does not raise) the exception so callers can ``raise`` it.
    """
    status = response.status_code
    message = f"GitHub API {response.request.method} {response.request.url.path} returned {status}: {_error_message(response)}"

    if status == 404:
        return NotFoundError(message, status_code=status)
    if status == 422 and "not a collaborator" in message.lower():
        return PermissionDeniedError(message, status_code=status)
    if status == 429 or status >= 500 or (status == 403 and _is_rate_limited(response)):
        return TransientError(message, status_code=status)
    return UpstreamError(message, status_code=status)


def _changed_files(raw_files: List[Dict[str, Any]]) -> List[ChangedFile]:
    return [
        ChangedFile(
            filename=f["filename"],
            status=f.get("status"),
            patch=f.get("patch"),
        )
        for f in raw_files
    ]


class GitHubClient:
    """
    Async client for the GitHub REST API.
    
    Wraps the endpoints used for comments, file and commit retrieval,
    labels, reviewer requests and check runs.
    """

    def __init__(
        self,
        token_provider: InstallationTokenProvider,
        http: httpx.AsyncClient,
    ):
        self._tokens = token_provider
        self._http = http

    @classmethod
    def from_settings(cls, settings) -> "GitHubClient":
        """Build a client (and its token provider) from application settings."""
        http = httpx.AsyncClient(
            base_url=settings.github_api_url,
            timeout=settings.http_timeout_seconds,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": "triagebot",
            },
        )
        provider = InstallationTokenProvider(
            app_id=settings.github_app_id,
            private_key=settings.private_key_pem(),
            installation_id=settings.github_installation_id,
            http=http,
            static_token=settings.github_token,
        )
        return cls(provider, http)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        token = await self._tokens.get_token()
        start_time = time.time()

        try:
            response = await self._http.request(
                method,
                endpoint,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as e:
            log_api_call(logger, "github", endpoint, method, error=str(e),
                         duration_ms=(time.time() - start_time) * 1000)
            raise TransientError(f"GitHub API {method} {endpoint} failed: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 400:
            error = classify_response(response)
            log_api_call(logger, "github", endpoint, method,
                         status_code=response.status_code, duration_ms=duration_ms, error=str(error))
            raise error

        log_api_call(logger, "github", endpoint, method,
                     status_code=response.status_code, duration_ms=duration_ms)
        if not response.content:
            return None
        return response.json()

    async def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> Dict[str, Any]:
        """Post a comment on an issue or pull request."""
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )

    @retry_with_backoff(max_retries=3, base_delay=1.0, max_delay=10.0)
    async def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")

    @retry_with_backoff(max_retries=3, base_delay=1.0, max_delay=10.0)
    async def list_pull_request_files(self, owner: str, repo: str, number: int) -> List[ChangedFile]:
        """
        List the files a pull request touches.
        
        Reads only the first page (up to 100 files). The result feeds the label
        prompt, which needs filenames only, so larger PRs are truncated.
        """
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls/{number}/files",
            params={"per_page": 100},
        )
        return _changed_files(data or [])

    @retry_with_backoff(max_retries=3, base_delay=1.0, max_delay=10.0)
    async def get_commit(self, owner: str, repo: str, ref: str) -> Dict[str, Any]:
        """Fetch a commit's metadata and file list."""
        return await self._request("GET", f"/repos/{owner}/{repo}/commits/{ref}")

    async def list_commit_files(self, owner: str, repo: str, ref: str) -> List[ChangedFile]:
        """List the files changed by a single commit."""
        commit = await self.get_commit(owner, repo, ref)
        return _changed_files(commit.get("files") or [])

    @retry_with_backoff(max_retries=3, base_delay=1.0, max_delay=10.0)
    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        """
        Fetch a file's text at a ref.
        
        Raises:
            UpstreamError: If the path is a directory or carries no inline content
        """
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            params={"ref": ref},
        )
        if not isinstance(data, dict) or data.get("content") is None:
            raise UpstreamError(f"No inline content for {path}@{ref}")
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    async def add_labels(self, owner: str, repo: str, issue_number: int, labels: List[str]) -> List[Dict[str, Any]]:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/labels",
            json={"labels": list(labels)},
        )

    async def create_label(self, owner: str, repo: str, name: str, color: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/labels",
            json={"name": name, "color": color},
        )

    async def request_reviewers(self, owner: str, repo: str, number: int, reviewers: List[str]) -> Dict[str, Any]:
        """
        Request reviews on a pull request.
        
        Raises:
            PermissionDeniedError: If a reviewer is not a collaborator
        """
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/requested_reviewers",
            json={"reviewers": list(reviewers)},
        )

    async def create_check_run(
        self,
        owner: str,
        repo: str,
        name: str,
        head_sha: str,
        status: str,
        conclusion: str,
        title: str,
        summary: str,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/check-runs",
            json={
                "name": name,
                "head_sha": head_sha,
                "status": status,
                "conclusion": conclusion,
                "output": {"title": title, "summary": summary},
            },
        )
