from __future__ import annotations

import json
import logging

from xen_calendar.monitoring.logger import (
    StructuredFormatter,
    configure_logging,
    correlation_scope,
    current_correlation_id,
    scan_correlation_id,
)
from xen_calendar.monitoring.metrics import METRICS


def test_prometheus_export_sanitizes_metric_names() -> None:
    METRICS.increment("reader.retries")
    METRICS.increment("positions.cointool", 4)
    METRICS.gauge("scan.networks", 3)
    METRICS.observe("scan.network.duration_seconds", 0.5)

    output = METRICS.export_prometheus()
    lines = [line for line in output.splitlines() if line]

    assert "# TYPE reader_retries counter" in lines
    assert "positions_cointool 4.0" in lines
    assert "reader.retries" not in output
    assert any(line.startswith("scan_networks") for line in lines)
    assert 'scan_network_duration_seconds{quantile="p50"} 0.5' in lines
    assert "scan_network_duration_seconds_count 1.0" in lines


def test_snapshot_and_reset() -> None:
    METRICS.increment("rpc.calls", 2)

    assert METRICS.snapshot()["counters"] == {"rpc.calls": 2.0}
    METRICS.reset()
    assert METRICS.get("rpc.calls") == 0.0


def test_correlation_scope_nests_and_restores() -> None:
    assert current_correlation_id() == "-"
    with correlation_scope("Ethereum:0xabab"):
        assert current_correlation_id() == "Ethereum:0xabab"
        with correlation_scope(None):
            assert current_correlation_id() == "-"
        assert current_correlation_id() == "Ethereum:0xabab"
    assert current_correlation_id() == "-"


def test_structured_formatter_emits_json_with_extras() -> None:
    record = logging.LogRecord("xen_calendar.test", logging.INFO, __file__, 1, "progress %d/%d", (3, 4), None)
    record.correlation_id = "BSC:0x1234"
    record.fetcher = "cointool"

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["message"] == "progress 3/4"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "BSC:0x1234"
    assert payload["extra"] == {"fetcher": "cointool"}
    assert payload["thread"] == record.threadName


def test_handler_tags_records_with_the_scan_in_progress() -> None:
    configure_logging()
    handler = next(h for h in logging.getLogger().handlers if isinstance(h.formatter, StructuredFormatter))
    record = logging.LogRecord("xen_calendar.test", logging.INFO, __file__, 1, "done", (), None)
    tag = scan_correlation_id("Polygon", "0x" + "ab" * 20)

    with correlation_scope(tag):
        assert handler.filter(record)

    assert tag == "Polygon:0xabababab"
    assert json.loads(handler.format(record))["correlation_id"] == "Polygon:0xabababab"
