"""
Copies rows from the hosted row store (Supabase) into the registry's DNA table.
"""
from dataclasses import dataclass

from cluster.config import ConfigError
from cluster.logging import log_event

SOURCE_TABLE = "neural_sync"
MIRROR_STATUS = "UPGRADING"


@dataclass
class MirrorStats:
    fetched: int = 0
    mirrored: int = 0
    failed: int = 0


def create_row_store(url, key):
    """Builds the Supabase client. A rejected URL or key is a fatal startup error."""
    from supabase import create_client
    try:
        return create_client(url, key)
    except Exception as e:
        raise ConfigError(f"Supabase credentials rejected: {e}") from e


def fetch_rows(client, table=SOURCE_TABLE):
    """Returns every row of `table`. A read error is logged and yields no rows."""
    try:
        response = client.table(table).select("*").execute()
    except Exception as e:
        log_event(f"Row store read from '{table}' failed: {e}", level="WARNING")
        return []
    return list(response.data or [])


def mirror_rows(rows, registry):
    """Upserts each row into the registry; a bad row is logged and skipped."""
    stats = MirrorStats(fetched=len(rows))
    for row in rows:
        try:
            registry.upsert_dna(row["gen_id"], row["logic_payload"], MIRROR_STATUS)
            stats.mirrored += 1
        except Exception as e:
            stats.failed += 1
            gen_id = row.get("gen_id") if isinstance(row, dict) else None
            log_event(f"Failed to mirror row {gen_id!r}: {e}", level="ERROR")
    if rows:
        log_event(f"Mirrored {stats.mirrored}/{stats.fetched} rows from the row store.", level="INFO")
    return stats
