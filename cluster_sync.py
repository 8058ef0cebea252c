#!/usr/bin/env python3
"""
Scheduled entry point for a cluster node. One invocation runs one cycle.

Exit status is 1 only for a fatal startup error (malformed credentials);
a failed cycle is logged and the next scheduled run is the recovery path.
"""
import argparse
import sys
from functools import partial

import requests
from rich.console import Console
from rich.panel import Panel

from cluster import __version__
from cluster.config import ConfigError, load_settings
from cluster.cycle import CycleDependencies, run_cycle
from cluster.github_client import GitHubClient
from cluster.instruction import fetch_instruction
from cluster.logging import log_event, setup_global_logging
from cluster.mirror import create_row_store
from cluster.registry import NodeRegistry
from cluster.status import init_firestore

console = Console()


def build_dependencies(settings, session):
    """Constructs the real collaborators for one run around a shared HTTP session."""
    hosting = GitHubClient(token=settings.github_token, session=session, timeout=settings.http_timeout)
    status_db = init_firestore(settings.firebase_credentials)
    row_store = None
    if settings.supabase_url and settings.supabase_key:
        row_store = create_row_store(settings.supabase_url, settings.supabase_key)
    return CycleDependencies(
        connect_registry=partial(NodeRegistry.connect, settings.database_url),
        fetch_instruction=partial(fetch_instruction, session=session, timeout=settings.http_timeout),
        hosting=hosting,
        status_db=status_db,
        row_store=row_store,
    )


def render_report(report):
    lines = [f"Node: [bold]{report.node}[/bold]"]
    if report.latency_ms is not None:
        lines.append(f"Latency: {report.latency_ms}ms  API remaining: {report.api_remaining}")
    if report.domain:
        lines.append(f"Analysis: {report.domain}")
    if report.mirror:
        lines.append(f"Mirrored: {report.mirror.mirrored}/{report.mirror.fetched} (failed {report.mirror.failed})")
    prop = report.propagation
    if prop is not None:
        if prop.skipped:
            lines.append("Propagation: not requested")
        elif prop.exhausted:
            lines.append("Propagation: all slots occupied")
        else:
            lines.append(f"Propagation: spawned {prop.spawned_owner}/{prop.spawned} via {prop.created_under} "
                         f"({len(prop.copied)} copied, {len(prop.failed)} failed)")
    if report.ok:
        console.print(Panel("\n".join(lines), title="[bold green]Cycle complete[/bold green]", border_style="green"))
    else:
        lines.append(f"[red]{report.error}[/red]")
        console.print(Panel("\n".join(lines), title="[bold red]Cycle failed[/bold red]", border_style="red"))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run one cluster node sync cycle.")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    parser.add_argument("--max-slots", type=int, default=None, help="Override the number of propagation slots.")
    parser.add_argument("--no-propagate", action="store_true", help="Never create a new node this run.")
    args = parser.parse_args(argv)

    setup_global_logging(version_name=__version__, verbose=args.verbose)

    try:
        settings = load_settings()
        if args.max_slots is not None:
            if args.max_slots < 1:
                raise ConfigError("--max-slots must be positive")
            settings.max_slots = args.max_slots
        missing = settings.missing()
        if missing:
            log_event(f"Missing secrets: {', '.join(missing)}", level="WARNING")
    except ConfigError as e:
        log_event(f"Fatal configuration error: {e}", level="CRITICAL")
        return 1

    with requests.Session() as session:
        try:
            deps = build_dependencies(settings, session)
        except ConfigError as e:
            log_event(f"Fatal configuration error: {e}", level="CRITICAL")
            return 1
        report = run_cycle(settings, deps, propagate=not args.no_propagate)
    render_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
