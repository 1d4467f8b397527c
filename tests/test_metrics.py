"""Tests for Prometheus metrics."""

from headnav.metrics import MetricsCollector


class TestMetricsCollector:
    def test_record_signal(self):
        m = MetricsCollector()
        m.record_signal("left_column")
        m.record_signal("left_column")
        m.record_signal("up")
        assert m.signal_counts == {"left_column": 2, "up": 1}

    def test_summary(self):
        m = MetricsCollector()
        m.record_packet()
        m.record_packet()
        m.record_rejected("nan")
        m.record_dropped()
        m.record_history_reset()
        m.record_command("focus-column-left", ok=True)
        m.record_command("focus-column-left", ok=False)
        m.record_suppressed()
        assert m.summary() == {
            "packets": 2,
            "rejected": 1,
            "dropped": 1,
            "history_resets": 1,
            "signals": 0,
            "commands": 1,
            "suppressed": 1,
        }

    def test_render_prometheus_format(self):
        m = MetricsCollector()
        m.record_signal("down")
        m.record_rejected("length")
        m.record_command("focus-window-or-workspace-down", ok=True)

        output = m.render()
        assert 'headnav_signals_total{signal="down"} 1' in output
        assert 'headnav_packets_rejected_total{reason="length"} 1' in output
        assert 'command="focus-window-or-workspace-down",result="ok"' in output
        assert "# HELP" in output
        assert "# TYPE" in output

    def test_histogram_buckets(self):
        m = MetricsCollector()
        for _ in range(10):
            m.observe_latency(0.00003)
        m.observe_latency(1.0)
        output = m.render()
        assert 'headnav_classify_latency_seconds_bucket{le="5e-05"} 10' in output
        assert 'headnav_classify_latency_seconds_bucket{le="+Inf"} 11' in output
        assert "headnav_classify_latency_seconds_count 11" in output

    def test_write(self, tmp_path):
        m = MetricsCollector()
        m.record_packet()
        path = tmp_path / "metrics.prom"
        m.write(path)
        assert "headnav_packets_total 1" in path.read_text()
