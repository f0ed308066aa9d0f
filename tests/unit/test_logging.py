# ============================================================================
# tests/unit/test_logging.py
# ============================================================================
"""
Tests for the JSON formatter and the per-line log adapter
"""

import json
import logging

from prescription_resolution.utils.logging import JsonFormatter, LogAdapter


def _record(**extra):
    logger = logging.getLogger("tests.logging")
    return logger.makeRecord(logger.name, logging.INFO, __file__, 1, "Exact match", None, None, extra=extra)


def test_json_formatter_emits_line_context():
    data = json.loads(JsonFormatter().format(_record(line_index=2, stage="ExactMatchResolver")))

    assert data["message"] == "Exact match"
    assert data["line_index"] == 2
    assert data["stage"] == "ExactMatchResolver"


def test_json_formatter_omits_unset_context():
    data = json.loads(JsonFormatter().format(_record()))

    assert "line_index" not in data
    assert "stage" not in data


def test_log_adapter_prefixes_line():
    adapter = LogAdapter(logging.getLogger("tests.logging"), {"line_index": 3, "stage": "MatchScorer"})

    msg, kwargs = adapter.process("scored 2 candidates", {})

    assert msg == "[line 3] scored 2 candidates"
    assert kwargs["extra"] == {"line_index": 3, "stage": "MatchScorer"}
