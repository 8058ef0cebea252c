"""
Per-node status document in Firestore.
"""
from dataclasses import dataclass
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from cluster.config import ConfigError
from cluster.logging import log_event

STATUS_COLLECTION = "cluster_nodes"
LINKED_STATUS = "LINKED_TO_CORE"


def init_firestore(service_account):
    """
    Initializes the default Firebase app once per process and returns a
    Firestore client. A bad service account is a fatal startup error.
    """
    try:
        app = firebase_admin.get_app()
    except ValueError:
        try:
            app = firebase_admin.initialize_app(credentials.Certificate(service_account))
        except (ValueError, KeyError) as e:
            raise ConfigError(f"Firebase credentials rejected: {e}") from e
        log_event("Firebase connected.", level="INFO")
    return firestore.client(app)


@dataclass
class NodeStatus:
    command: Optional[Any]
    last_analysis: str
    coherence: str
    latency_ms: int
    api_remaining: int

    def to_document(self):
        return {
            "status": LINKED_STATUS,
            "command": self.command,
            "last_analysis": self.last_analysis,
            "coherence": self.coherence,
            "latency": f"{self.latency_ms}ms",
            "api_remaining": self.api_remaining,
            "last_ping": firestore.SERVER_TIMESTAMP,
        }


def report_status(db, node_name, status, collection=STATUS_COLLECTION):
    db.collection(collection).document(node_name).set(status.to_document(), merge=True)
    log_event(f"Status for {node_name} written to '{collection}'.", level="DEBUG")
