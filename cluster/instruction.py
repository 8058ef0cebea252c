"""
The remote instruction document published by the core repository.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from cluster.logging import log_event


@dataclass
class Instruction:
    command: Optional[Any] = None
    replicate: bool = False
    raw: Any = field(default=None, repr=False)

    @classmethod
    def from_document(cls, doc):
        """
        Reads the fields we act on. The document is untrusted and not validated;
        only a JSON boolean `true` turns replication on.
        """
        if not isinstance(doc, dict):
            return cls(command=None, replicate=False, raw=doc)
        return cls(command=doc.get("command"), replicate=doc.get("replicate") is True, raw=doc)


def fetch_instruction(url, session=None, timeout=30):
    """Fetches and decodes the instruction JSON. Network and decode errors propagate."""
    http = session or requests
    response = http.get(url, timeout=timeout)
    response.raise_for_status()
    instruction = Instruction.from_document(response.json())
    log_event(f"Instruction received: command={instruction.command!r} replicate={instruction.replicate}", level="DEBUG")
    return instruction
