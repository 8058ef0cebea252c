import os
import sys
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cluster.instruction import Instruction, fetch_instruction


def test_replicate_requires_json_true():
    assert Instruction.from_document({"command": "SYNC", "replicate": True}).replicate is True
    assert Instruction.from_document({"command": "SYNC", "replicate": "true"}).replicate is False
    assert Instruction.from_document({"command": "SYNC", "replicate": 1}).replicate is False
    assert Instruction.from_document({"command": "SYNC"}).replicate is False


def test_non_object_document():
    instruction = Instruction.from_document(["replicate"])
    assert instruction.command is None
    assert instruction.replicate is False
    assert instruction.raw == ["replicate"]


def test_fetch_instruction_uses_session():
    session = MagicMock()
    session.get.return_value.json.return_value = {"command": "EXPAND", "replicate": True, "extra": 1}
    instruction = fetch_instruction("https://example.test/instruction.json", session=session, timeout=7)

    session.get.assert_called_once_with("https://example.test/instruction.json", timeout=7)
    session.get.return_value.raise_for_status.assert_called_once()
    assert instruction.command == "EXPAND"
    assert instruction.replicate is True
    assert instruction.raw["extra"] == 1


def test_fetch_instruction_http_error_propagates():
    session = MagicMock()
    session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Client Error")
    with pytest.raises(requests.exceptions.HTTPError):
        fetch_instruction("https://example.test/missing.json", session=session)
