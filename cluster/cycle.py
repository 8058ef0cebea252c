"""
One scheduled run of a node, from connecting to the registry to propagation.

Collaborators are passed in through CycleDependencies and live only for the
run. The registry connection is closed on every exit path. Statements are not
wrapped in a transaction, so a failure mid-cycle leaves earlier writes in place.
"""
import json
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from cluster import analysis
from cluster.instruction import Instruction
from cluster.logging import log_event, ScopedDiagnosticLogger
from cluster.mirror import MirrorStats, fetch_rows, mirror_rows
from cluster.propagation import PropagationController, PropagationResult
from cluster.status import NodeStatus, report_status

ANALYZED_STATUS = "ANALYZED"


def _utcnow():
    return datetime.now(timezone.utc)


@dataclass
class CycleDependencies:
    connect_registry: Callable[[], Any]
    fetch_instruction: Callable[[str], Instruction]
    hosting: Any
    status_db: Any
    row_store: Any = None
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime] = _utcnow
    timer: Callable[[], float] = time.monotonic


@dataclass
class CycleReport:
    node: str
    latency_ms: Optional[int] = None
    api_remaining: Optional[int] = None
    instruction: Optional[Instruction] = None
    domain: Optional[str] = None
    mirror: Optional[MirrorStats] = None
    propagation: Optional[PropagationResult] = None
    error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None


def run_cycle(settings, deps, propagate=True):
    """
    Runs the full sequence once. Errors end the cycle, are logged, and are
    recorded on the returned report rather than raised.
    """
    report = CycleReport(node=settings.node_name)
    registry = None
    try:
        started = deps.timer()
        registry = deps.connect_registry()

        instruction = deps.fetch_instruction(settings.instruction_url)
        report.instruction = instruction
        report.latency_ms = int((deps.timer() - started) * 1000)
        report.api_remaining = deps.hosting.rate_limit_remaining()

        registry.heartbeat(settings.node_name.upper())

        if deps.row_store is not None:
            report.mirror = mirror_rows(fetch_rows(deps.row_store), registry)
        else:
            log_event("No row store configured; skipping mirror.", level="DEBUG")

        with ScopedDiagnosticLogger("analysis"):
            domain = analysis.pick_domain(deps.rng)
            computation = analysis.compute(domain, deps.rng)
            now = deps.clock()
            payload = analysis.build_payload(domain, computation, now)
            registry.upsert_dna(analysis.analysis_gen_id(domain, now), json.dumps(payload), ANALYZED_STATUS)
        report.domain = domain
        log_event(f"Analyzed & computed: {domain}", level="INFO")

        status = NodeStatus(
            command=instruction.command,
            last_analysis=domain,
            coherence=computation.coherence,
            latency_ms=report.latency_ms,
            api_remaining=report.api_remaining,
        )
        report_status(deps.status_db, settings.node_name, status)

        controller = PropagationController(
            deps.hosting,
            owner=settings.repo_owner,
            source_repo=settings.node_name,
            max_slots=settings.max_slots,
        )
        report.propagation = controller.propagate(propagate and instruction.replicate)

        log_event(f"Cycle complete. Latency: {report.latency_ms}ms.", level="INFO")
    except Exception as e:
        report.error = f"{type(e).__name__}: {e}"
        log_event(f"Cycle failed: {report.error}", level="ERROR")
    finally:
        if registry is not None:
            try:
                registry.close()
            except Exception as e:
                log_event(f"Failed to close registry connection: {e}", level="WARNING")
    return report
