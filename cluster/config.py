"""
Runtime settings for a cluster node, read from the environment.

A local `.env` file is merged in first so the same code runs inside the
scheduled workflow (secrets injected as env vars) and on a developer machine.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_OWNER = "GOA-neurons"
DEFAULT_CORE_REPO = "delta-brain-sync"
UNKNOWN_NODE = "unknown-node"
DEFAULT_MAX_SLOTS = 10
DEFAULT_HTTP_TIMEOUT = 30


class ConfigError(Exception):
    """Raised when a credential or setting is malformed. Fatal at startup."""
    pass


def node_name_from_repository(repository: Optional[str]) -> str:
    """Returns the repo part of an ``owner/name`` identifier."""
    if not repository or "/" not in repository:
        return UNKNOWN_NODE
    name = repository.split("/")[1].strip()
    return name or UNKNOWN_NODE


def _int_setting(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e
    if parsed < 1:
        raise ConfigError(f"{key} must be positive, got {parsed}")
    return parsed


def _parse_firebase_key(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        credentials = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"FIREBASE_KEY is not valid JSON: {e.msg}") from e
    if not isinstance(credentials, dict):
        raise ConfigError("FIREBASE_KEY must be a JSON object")
    return credentials


@dataclass
class Settings:
    github_token: Optional[str] = None
    repo_owner: str = DEFAULT_OWNER
    core_repo: str = DEFAULT_CORE_REPO
    node_name: str = UNKNOWN_NODE
    database_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    firebase_credentials: Optional[Dict[str, Any]] = field(default=None, repr=False)
    max_slots: int = DEFAULT_MAX_SLOTS
    http_timeout: int = DEFAULT_HTTP_TIMEOUT

    @property
    def instruction_url(self) -> str:
        return f"https://raw.githubusercontent.com/{self.repo_owner}/{self.core_repo}/main/instruction.json"

    def missing(self):
        """Names of the secrets a full cycle needs but that are not set."""
        required = {
            "GH_TOKEN": self.github_token,
            "NEON_KEY": self.database_url,
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_SERVICE_ROLE_KEY": self.supabase_key,
            "FIREBASE_KEY": self.firebase_credentials,
        }
        return [name for name, value in required.items() if not value]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Builds Settings from the process environment (after loading `.env`),
    or from an explicit mapping when one is given.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    return Settings(
        github_token=environ.get("GH_TOKEN") or environ.get("GITHUB_TOKEN"),
        repo_owner=environ.get("CLUSTER_OWNER") or DEFAULT_OWNER,
        core_repo=environ.get("CLUSTER_CORE_REPO") or DEFAULT_CORE_REPO,
        node_name=node_name_from_repository(environ.get("GITHUB_REPOSITORY")),
        database_url=environ.get("NEON_KEY"),
        supabase_url=environ.get("SUPABASE_URL"),
        supabase_key=environ.get("SUPABASE_SERVICE_ROLE_KEY"),
        firebase_credentials=_parse_firebase_key(environ.get("FIREBASE_KEY")),
        max_slots=_int_setting(environ, "CLUSTER_MAX_SLOTS", DEFAULT_MAX_SLOTS),
        http_timeout=_int_setting(environ, "CLUSTER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
    )
