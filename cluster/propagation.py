"""
Propagation controller: when the core asks for replication, find the first
unused slot name in the owner's namespace, create a repository there, and seed
it with the node manifest.

Slot discovery probes the hosting API one name at a time. Two runs overlapping
in time can both see the same slot as free; the second creation then fails and
falls through to the user-account path.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from cluster.github_client import RepoNotFoundError
from cluster.logging import log_event

MAX_SLOTS = 10
SLOT_PREFIX = "swarm-node-"
SLOT_WIDTH = 7
MANIFEST = ("pyproject.toml", "cluster_sync.py", ".github/workflows/sync.yml")


def slot_name(index):
    """Candidate repository name for a 1-based slot index."""
    if index < 1:
        raise ValueError(f"slot index must be >= 1, got {index}")
    return f"{SLOT_PREFIX}{index:0{SLOT_WIDTH}d}"


def _owner_login(created, default):
    if isinstance(created, dict):
        login = (created.get("owner") or {}).get("login")
        if login:
            return login
    return default


@dataclass
class PropagationResult:
    skipped: bool = False
    exhausted: bool = False
    spawned: Optional[str] = None
    spawned_owner: Optional[str] = None
    created_under: Optional[str] = None
    probed: List[str] = field(default_factory=list)
    copied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def spawned_node(self):
        return self.spawned is not None


class PropagationController:
    def __init__(self, hosting, owner, source_repo, max_slots=MAX_SLOTS, manifest=MANIFEST, namer=slot_name):
        self.hosting = hosting
        self.owner = owner
        self.source_repo = source_repo
        self.max_slots = max_slots
        self.manifest = tuple(manifest)
        self.namer = namer

    def propagate(self, replicate):
        """
        Creates at most one new node. Returns a PropagationResult describing
        what was probed, created and copied.
        """
        result = PropagationResult()
        if not replicate:
            result.skipped = True
            return result

        for index in range(1, self.max_slots + 1):
            name = self.namer(index)
            result.probed.append(name)
            if self._slot_taken(name):
                continue

            log_event(f"Free slot found: spawning {name}...", level="INFO")
            result.created_under, result.spawned_owner = self._create(name)
            result.spawned = name
            self._seed(result.spawned_owner, name, result)
            return result

        result.exhausted = True
        log_event(f"All {self.max_slots} slots are occupied; no node spawned this cycle.", level="WARNING")
        return result

    def _slot_taken(self, name):
        try:
            return self.hosting.repo_exists(self.owner, name)
        except RepoNotFoundError:
            return False

    def _create(self, name):
        """
        Creates the repository in the organization, else under the user.
        Returns which path won and the owner the repository landed under.
        """
        try:
            created = self.hosting.create_repo_in_org(self.owner, name, auto_init=True)
            return "org", _owner_login(created, self.owner)
        except Exception as e:
            log_event(f"Organization create for {name} failed ({e}); falling back to user account.", level="WARNING")
        created = self.hosting.create_repo_for_user(name, auto_init=True)
        return "user", _owner_login(created, self.owner)

    def _seed(self, target_owner, name, result):
        for path in self.manifest:
            try:
                content = self.hosting.get_file_content(self.owner, self.source_repo, path)
                self.hosting.put_file_content(
                    target_owner, name, path, content,
                    message=f"Initializing node: {path}",
                )
                result.copied.append(path)
                log_event(f"   Copied {path} into {target_owner}/{name}", level="DEBUG")
            except Exception as e:
                result.failed.append(path)
                log_event(f"   Failed to copy {path} into {target_owner}/{name}: {e}", level="ERROR")
