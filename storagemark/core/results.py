"""Benchmark results, per-type summaries and report generation."""

import base64
import html
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Union
import pandas as pd
import matplotlib.pyplot as plt

from .config import BenchmarkConfig, ReportFormat, TestType
from .monitoring import CHART_STYLE, MetricsSnapshot, plot_snapshots
from .paths import BenchmarkPaths
from ..utils.logging import LoggerMixin
from ..utils.timer import NANOS_PER_MILLI, NANOS_PER_SECOND

CSV_HEADER = [
    "RunId", "TestType", "BytesProcessed", "ElapsedMs",
    "ThroughputMBps", "AvgLatencyMs", "IOPS", "Timestamp",
]


@dataclass(frozen=True)
class BenchmarkResult:
    """Outcome of a single run."""
    run_id: int
    test_type: TestType
    bytes_processed: int
    elapsed_ns: int
    throughput_mbps: float
    avg_latency_ms: float
    iops: float
    timestamp: datetime  # run completion, UTC

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_ns / NANOS_PER_MILLI

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_ns / NANOS_PER_SECOND

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            'run_id': self.run_id,
            'test_type': self.test_type.value,
            'bytes_processed': self.bytes_processed,
            'elapsed_ns': self.elapsed_ns,
            'elapsed_ms': self.elapsed_ms,
            'throughput_mbps': self.throughput_mbps,
            'avg_latency_ms': self.avg_latency_ms,
            'iops': self.iops,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BenchmarkResult':
        return cls(
            run_id=int(data['run_id']),
            test_type=TestType(data['test_type']),
            bytes_processed=int(data['bytes_processed']),
            elapsed_ns=int(data['elapsed_ns']),
            throughput_mbps=float(data['throughput_mbps']),
            avg_latency_ms=float(data['avg_latency_ms']),
            iops=float(data['iops']),
            timestamp=datetime.fromisoformat(data['timestamp']),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class TestTypeSummary:
    """Aggregated statistics over all runs of one test type."""
    __test__ = False

    test_type: TestType
    runs: int
    throughput_mean: float
    throughput_min: float
    throughput_max: float
    throughput_std: float
    latency_mean_ms: float
    latency_min_ms: float
    latency_max_ms: float
    iops_mean: float
    iops_min: float
    iops_max: float

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data['test_type'] = self.test_type.value
        return data


class LoadedReport(NamedTuple):
    session_id: str
    results: List[BenchmarkResult]
    metrics: List[MetricsSnapshot]


def results_frame(results: Sequence[BenchmarkResult]) -> pd.DataFrame:
    """Results as a DataFrame using the CSV column names."""
    return pd.DataFrame(
        [
            {
                'RunId': r.run_id,
                'TestType': r.test_type.value,
                'BytesProcessed': r.bytes_processed,
                'ElapsedMs': r.elapsed_ms,
                'ThroughputMBps': r.throughput_mbps,
                'AvgLatencyMs': r.avg_latency_ms,
                'IOPS': r.iops,
                'Timestamp': r.timestamp.isoformat(),
            }
            for r in results
        ],
        columns=CSV_HEADER,
    )


def summarize(results: Sequence[BenchmarkResult]) -> List[TestTypeSummary]:
    """Per test type statistics, in order of first appearance."""
    if not results:
        return []

    df = results_frame(results)
    order = list(dict.fromkeys(df['TestType']))
    grouped = df.groupby('TestType', sort=False)

    stats = grouped.agg(
        runs=('RunId', 'count'),
        throughput_mean=('ThroughputMBps', 'mean'),
        throughput_min=('ThroughputMBps', 'min'),
        throughput_max=('ThroughputMBps', 'max'),
        throughput_std=('ThroughputMBps', 'std'),
        latency_mean_ms=('AvgLatencyMs', 'mean'),
        latency_min_ms=('AvgLatencyMs', 'min'),
        latency_max_ms=('AvgLatencyMs', 'max'),
        iops_mean=('IOPS', 'mean'),
        iops_min=('IOPS', 'min'),
        iops_max=('IOPS', 'max'),
    ).fillna(0.0)

    summaries = []
    for test_type in order:
        row = stats.loc[test_type]
        summaries.append(TestTypeSummary(
            test_type=TestType(test_type),
            runs=int(row['runs']),
            **{name: float(row[name]) for name in stats.columns if name != 'runs'}
        ))
    return summaries


def plot_results(results: Sequence[BenchmarkResult], save_path: Union[str, Path]) -> Optional[Path]:
    """Bar chart of throughput and IOPS per run."""
    if not results:
        return None

    labels = [f"{r.run_id}\n{r.test_type.value}" for r in results]
    save_path = Path(save_path)

    with plt.style.context(CHART_STYLE):
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(max(8, len(results) * 0.8), 8))

        ax1.bar(labels, [r.throughput_mbps for r in results], color='steelblue')
        ax1.set_ylabel('Throughput (MB/s)')
        ax1.set_title('Throughput per Run')
        ax1.grid(True, axis='y', alpha=0.3)

        ax2.bar(labels, [r.iops for r in results], color='darkorange')
        ax2.set_ylabel('IOPS')
        ax2.set_title('IOPS per Run')
        ax2.grid(True, axis='y', alpha=0.3)

        fig.tight_layout()
        fig.savefig(save_path, dpi=120, bbox_inches='tight')
        plt.close(fig)
    return save_path


class ReportGenerator(LoggerMixin):
    """Writes CSV, JSON and optional HTML reports for a session."""

    def __init__(self, config: BenchmarkConfig, paths: BenchmarkPaths):
        super().__init__()
        self.config = config
        self.paths = paths

    def write_all(
        self,
        results: Sequence[BenchmarkResult],
        snapshots: Sequence[MetricsSnapshot] = ()
    ) -> Dict[ReportFormat, Path]:
        """Write every configured format and return the written paths."""
        written = {
            ReportFormat.CSV: self.write_csv(results),
            ReportFormat.JSON: self.write_json(results, snapshots),
        }
        html_path = self.write_html(results, snapshots)
        if html_path is not None:
            written[ReportFormat.HTML] = html_path
        return written

    def write_csv(self, results: Sequence[BenchmarkResult]) -> Path:
        csv_path = self.paths.report_file_path("csv")
        results_frame(results).to_csv(csv_path, index=False, float_format='%.2f')
        self.logger.info(f"Wrote CSV report: {csv_path}")
        return csv_path

    def write_json(
        self,
        results: Sequence[BenchmarkResult],
        snapshots: Sequence[MetricsSnapshot] = ()
    ) -> Path:
        json_path = self.paths.report_file_path("json")
        payload = {
            'sessionId': self.config.session_id,
            'results': [r.to_dict() for r in results],
            'metrics': [s.to_dict() for s in snapshots],
            'summary': [s.to_dict() for s in summarize(results)],
        }
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        self.logger.info(f"Wrote JSON report: {json_path}")
        return json_path

    @staticmethod
    def load_json(file_path: Union[str, Path]) -> LoadedReport:
        """Parse a JSON report back into results and snapshots."""
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return LoadedReport(
            session_id=data['sessionId'],
            results=[BenchmarkResult.from_dict(r) for r in data.get('results', [])],
            metrics=[MetricsSnapshot.from_dict(m) for m in data.get('metrics', [])],
        )

    def write_html(
        self,
        results: Sequence[BenchmarkResult],
        snapshots: Sequence[MetricsSnapshot] = ()
    ) -> Optional[Path]:
        """Write the HTML report. Skipped unless HTML is a configured format."""
        if not self.config.wants_html:
            return None

        html_path = self.paths.report_file_path("html")
        charts = self._render_charts(results, snapshots) if self.config.embed_charts else []

        with open(html_path, 'w', encoding='utf-8') as f:
            f.write(self._render_html(results, snapshots, charts))

        self.logger.info(f"Wrote HTML report: {html_path}")
        return html_path

    def _render_charts(
        self,
        results: Sequence[BenchmarkResult],
        snapshots: Sequence[MetricsSnapshot]
    ) -> List[Path]:
        charts_dir = self.paths.ensure_charts_dir()
        charts = [
            plot_results(results, charts_dir / "results.png"),
            plot_snapshots(snapshots, charts_dir / "metrics.png"),
        ]
        return [chart for chart in charts if chart is not None]

    def _render_html(
        self,
        results: Sequence[BenchmarkResult],
        snapshots: Sequence[MetricsSnapshot],
        charts: Sequence[Path]
    ) -> str:
        esc = html.escape
        session = esc(self.config.session_id)

        result_rows = "\n".join(
            f"<tr><td>{r.run_id}</td><td>{esc(r.test_type.value)}</td>"
            f"<td>{r.bytes_processed}</td><td>{r.elapsed_ms:.2f}</td>"
            f"<td>{r.throughput_mbps:.2f}</td><td>{r.avg_latency_ms:.4f}</td>"
            f"<td>{r.iops:.2f}</td><td>{esc(r.timestamp.isoformat())}</td></tr>"
            for r in results
        )

        summary_rows = "\n".join(
            f"<tr><td>{esc(s.test_type.value)}</td><td>{s.runs}</td>"
            f"<td>{s.throughput_mean:.2f}</td><td>{s.throughput_std:.2f}</td>"
            f"<td>{s.latency_mean_ms:.4f}</td><td>{s.iops_mean:.2f}</td></tr>"
            for s in summarize(results)
        )

        metric_items = "\n".join(f"<li>{esc(str(s))}</li>" for s in snapshots)
        if not metric_items:
            metric_items = "<li>No metrics captured</li>"

        chart_blocks = "\n".join(
            f'<figure><img alt="{esc(chart.stem)}" src="data:image/png;base64,'
            f'{base64.b64encode(chart.read_bytes()).decode("ascii")}"/>'
            f'<figcaption>{esc(chart.name)}</figcaption></figure>'
            for chart in charts
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Storage Benchmark Report - {session}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
table {{ border-collapse: collapse; margin-bottom: 2em; }}
th, td {{ border: 1px solid #ccc; padding: 4px 8px; text-align: right; }}
th {{ background: #f0f0f0; }}
img {{ max-width: 100%; }}
</style>
</head>
<body>
<h1>Benchmark Report - Session {session}</h1>
<p>Directory: {esc(str(self.config.test_directory))} |
File size: {self.config.file_size_bytes} bytes |
Block size: {self.config.block_size_bytes} bytes |
Threads: {self.config.threads} | Queue depth: {self.config.queue_depth} |
I/O mode: {self.config.io_mode.value}</p>
<h2>Results</h2>
<table>
<tr><th>RunId</th><th>TestType</th><th>Bytes</th><th>Elapsed ms</th><th>Throughput MB/s</th><th>Latency ms</th><th>IOPS</th><th>Timestamp</th></tr>
{result_rows}
</table>
<h2>Summary</h2>
<table>
<tr><th>TestType</th><th>Runs</th><th>Mean MB/s</th><th>Std MB/s</th><th>Mean latency ms</th><th>Mean IOPS</th></tr>
{summary_rows}
</table>
{chart_blocks}
<h2>Metrics Snapshots</h2>
<ul>
{metric_items}
</ul>
</body>
</html>
"""
