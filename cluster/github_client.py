"""
Minimal GitHub REST v3 client for the calls a node makes: quota checks,
repository probes and creation, and file content reads and writes.
"""
import requests

from cluster.logging import log_event

GITHUB_API = "https://api.github.com"


class GitHubError(Exception):
    """A non-2xx response from the GitHub API."""
    def __init__(self, status, message=""):
        self.status = status
        self.message = message
        super().__init__(f"GitHub API error {status}: {message}")


class RepoNotFoundError(GitHubError):
    """404 from the GitHub API: the repository or path does not exist."""
    pass


class GitHubClient:
    def __init__(self, token=None, session=None, base_url=GITHUB_API, timeout=30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github.v3+json"})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if response.status_code == 404:
            raise RepoNotFoundError(404, path)
        if not 200 <= response.status_code < 300:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise GitHubError(response.status_code, message)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def rate_limit_remaining(self):
        data = self._request("GET", "/rate_limit")
        return int(data["rate"]["remaining"])

    def get_repo(self, owner, name):
        return self._request("GET", f"/repos/{owner}/{name}")

    def repo_exists(self, owner, name):
        """True if owner/name exists. Errors other than 404 propagate."""
        try:
            self.get_repo(owner, name)
        except RepoNotFoundError:
            return False
        return True

    def create_repo_in_org(self, org, name, auto_init=True):
        log_event(f"Creating repository {org}/{name}", level="DEBUG")
        return self._request("POST", f"/orgs/{org}/repos", json={"name": name, "auto_init": auto_init})

    def create_repo_for_user(self, name, auto_init=True):
        log_event(f"Creating repository {name} for the authenticated user", level="DEBUG")
        return self._request("POST", "/user/repos", json={"name": name, "auto_init": auto_init})

    def _get_contents(self, owner, repo, path):
        return self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")

    def get_file_content(self, owner, repo, path):
        """Returns the base64 content of a file, as the contents API serves it."""
        data = self._get_contents(owner, repo, path)
        if not isinstance(data, dict) or "content" not in data:
            raise GitHubError(400, f"{path} is not a file")
        return data["content"].replace("\n", "")

    def put_file_content(self, owner, repo, path, content_b64, message):
        """Creates or updates a file with already base64-encoded content."""
        body = {"message": message, "content": content_b64}
        try:
            existing = self._get_contents(owner, repo, path)
        except RepoNotFoundError:
            existing = None
        if isinstance(existing, dict) and existing.get("sha"):
            body["sha"] = existing["sha"]
        return self._request("PUT", f"/repos/{owner}/{repo}/contents/{path}", json=body)
