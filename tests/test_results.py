"""Test result aggregation and report generation."""

import csv
import json
from datetime import datetime, timezone

import pytest

from storagemark.core.config import ReportFormat, TestType
from storagemark.core.monitoring import MetricsSnapshot
from storagemark.core.results import (
    CSV_HEADER,
    BenchmarkResult,
    ReportGenerator,
    results_frame,
    summarize,
)


def _snapshot(second, cpu=10.0):
    return MetricsSnapshot(
        timestamp=datetime(2024, 5, 1, 12, 0, second, tzinfo=timezone.utc),
        cpu_percent=cpu,
        ram_percent=40.0,
        disk_utilization_percent=75.5,
        disk_temperature_c=38.0 if second % 2 else None,
    )


class TestBenchmarkResult:
    """Test benchmark result."""

    def test_derived_elapsed(self, make_result):
        result = make_result()
        assert result.elapsed_ms == 10.0
        assert result.elapsed_seconds == 0.01

    def test_dict_round_trip(self, make_result):
        result = make_result(run_id=3, test_type=TestType.RAND_READ, throughput=123.456789)

        data = result.to_dict()
        assert data['test_type'] == "RAND_READ"
        assert data['elapsed_ms'] == 10.0
        assert BenchmarkResult.from_dict(data) == result

    def test_to_json(self, make_result):
        data = json.loads(make_result().to_json())
        assert data['run_id'] == 1
        assert data['timestamp'] == "2024-05-01T12:00:01+00:00"


class TestSummarize:
    """Test per test type statistics."""

    def test_groups_in_first_appearance_order(self, make_result):
        results = [
            make_result(1, TestType.SEQ_WRITE, throughput=100.0, latency=1.0, iops=10.0),
            make_result(2, TestType.SEQ_WRITE, throughput=200.0, latency=2.0, iops=20.0),
            make_result(3, TestType.SEQ_WRITE, throughput=300.0, latency=3.0, iops=30.0),
            make_result(4, TestType.RAND_READ, throughput=50.0, latency=4.0, iops=40.0),
        ]

        summaries = summarize(results)

        assert [s.test_type for s in summaries] == [TestType.SEQ_WRITE, TestType.RAND_READ]

        seq = summaries[0]
        assert seq.runs == 3
        assert seq.throughput_mean == pytest.approx(200.0)
        assert seq.throughput_min == 100.0
        assert seq.throughput_max == 300.0
        assert seq.throughput_std == pytest.approx(100.0)
        assert seq.latency_mean_ms == pytest.approx(2.0)
        assert seq.iops_mean == pytest.approx(20.0)

        rand = summaries[1]
        assert rand.runs == 1
        assert rand.throughput_std == 0.0

    def test_empty(self):
        assert summarize([]) == []

    def test_results_frame_columns(self, make_result):
        frame = results_frame([make_result()])
        assert list(frame.columns) == CSV_HEADER
        assert frame.iloc[0]['ElapsedMs'] == 10.0


class TestReportGenerator:
    """Test report writing."""

    def test_write_csv(self, make_config, paths, make_result):
        generator = ReportGenerator(make_config(), paths)

        csv_path = generator.write_csv([make_result(1), make_result(2, TestType.SEQ_READ, throughput=99.999)])

        assert csv_path.name == "report.sm-test.csv"
        with open(csv_path, newline='') as f:
            rows = list(csv.reader(f))

        assert rows[0] == CSV_HEADER
        assert rows[1] == [
            "1", "SEQ_WRITE", str(8 * 1024 * 1024), "10.00", "800.00", "0.08", "12800.00",
            "2024-05-01T12:00:01+00:00",
        ]
        assert rows[2][1] == "SEQ_READ"
        assert rows[2][4] == "100.00"

    def test_empty_csv_has_header(self, make_config, paths):
        csv_path = ReportGenerator(make_config(), paths).write_csv([])
        assert csv_path.read_text().strip() == ",".join(CSV_HEADER)

    def test_json_round_trip(self, make_config, paths, make_result):
        """Test results and snapshots survive a JSON round trip unchanged."""
        results = [
            make_result(1, TestType.SEQ_WRITE, throughput=812.3456789),
            make_result(2, TestType.RAND_WRITE, latency=0.1234567, iops=4321.987),
        ]
        snapshots = [_snapshot(1), _snapshot(2, cpu=99.5)]
        generator = ReportGenerator(make_config(), paths)

        json_path = generator.write_json(results, snapshots)
        loaded = ReportGenerator.load_json(json_path)

        assert json_path.name == "report.sm-test.json"
        assert loaded.session_id == "sm-test"
        assert loaded.results == results
        assert loaded.metrics == snapshots

        payload = json.loads(json_path.read_text())
        assert set(payload) == {"sessionId", "results", "metrics", "summary"}
        assert [s['test_type'] for s in payload['summary']] == ["SEQ_WRITE", "RAND_WRITE"]

    def test_write_all_without_html(self, make_config, paths, make_result):
        written = ReportGenerator(make_config(), paths).write_all([make_result()])

        assert set(written) == {ReportFormat.CSV, ReportFormat.JSON}
        assert all(path.exists() for path in written.values())
        assert not paths.report_file_path("html").exists()

    def test_html_report(self, make_config, paths, make_result):
        config = make_config(report_formats=(ReportFormat.CSV, ReportFormat.JSON, ReportFormat.HTML))

        written = ReportGenerator(config, paths).write_all([make_result()], [_snapshot(1)])

        html_path = written[ReportFormat.HTML]
        content = html_path.read_text()
        assert html_path.name == "report.sm-test.html"
        assert "Session sm-test" in content
        assert "SEQ_WRITE" in content
        assert "cpu=10.0%" in content
        assert "data:image/png" not in content
        assert not paths.charts_dir.exists()

    def test_html_with_charts(self, make_config, paths, make_result):
        config = make_config(
            report_formats=(ReportFormat.CSV, ReportFormat.JSON, ReportFormat.HTML),
            embed_charts=True,
        )
        results = [make_result(1), make_result(2)]

        html_path = ReportGenerator(config, paths).write_html(results, [_snapshot(1), _snapshot(2)])

        content = html_path.read_text()
        assert content.count("data:image/png;base64,") == 2
        assert (paths.charts_dir / "results.png").exists()
        assert (paths.charts_dir / "metrics.png").exists()

    def test_html_without_metrics(self, make_config, paths, make_result):
        config = make_config(
            report_formats=(ReportFormat.CSV, ReportFormat.JSON, ReportFormat.HTML),
            embed_charts=True,
        )

        content = ReportGenerator(config, paths).write_html([make_result()]).read_text()

        assert "No metrics captured" in content
        assert content.count("data:image/png;base64,") == 1
