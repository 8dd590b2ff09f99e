"""Unit tests for structured logging"""

import json
import logging
import sys

from screener.app.core.logging import JSONFormatter, setup_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("screener.test", logging.INFO, __file__, 10, "Task %s done", ("t1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        
        assert data["level"] == "INFO"
        assert data["logger"] == "screener.test"
        assert data["message"] == "Task t1 done"
        assert "timestamp" in data
    
    def test_context_fields_are_included(self):
        data = json.loads(JSONFormatter().format(make_record(candidate_id="cand-1", task_id="t1", attempt=2)))
        
        assert data["candidate_id"] == "cand-1"
        assert data["task_id"] == "t1"
        assert data["attempt"] == 2
        assert "worker_id" not in data
    
    def test_exception_text(self):
        try:
            raise ValueError("bad pdf")
        except ValueError:
            record = logging.LogRecord("screener.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        
        data = json.loads(JSONFormatter().format(record))
        
        assert "ValueError: bad pdf" in data["exception"]


def test_setup_logging_quiets_third_party_loggers():
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    try:
        setup_logging("DEBUG")
        
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
