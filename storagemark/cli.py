"""Command line interface for the storage benchmark."""

import sys
from typing import Any, Dict, Optional, Sequence, Tuple
import click
import matplotlib
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.config import BenchmarkConfig, ConfigLoader, ReportFormat, enum_names, merge_configs
from .core.coordinator import BenchmarkCoordinator
from .core.monitoring import ResourceSampler, summarize_snapshots
from .core.paths import BenchmarkPaths
from .core.results import BenchmarkResult, ReportGenerator, summarize
from .utils.logging import setup_logging, verbosity_to_level


console = Console()


@click.group()
@click.option('--log-level', default=None, help='Logging level (overrides the configured verbosity)')
@click.option('--log-file', help='Log file path')
@click.pass_context
def cli(ctx, log_level, log_file):
    """Storage benchmark CLI."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file
    # Charts are only ever written to files
    matplotlib.use("Agg")

    setup_logging(level=log_level or 'INFO', log_file=log_file, component="cli")


@cli.command()
@click.option('--directory', '-d', help='Test directory')
@click.option('--test', '-t', 'tests', multiple=True,
              help='Test type (SEQ_READ, SEQ_WRITE, RAND_READ, RAND_WRITE); repeatable or comma-separated')
@click.option('--size', '-s', help='Test file size, e.g. 1GiB or 2g')
@click.option('--block', '-b', help='Block size, e.g. 4k or 128KiB')
@click.option('--threads', '-n', type=int, help='Worker streams per run')
@click.option('--iterations', '-i', type=int, help='Measured iterations per test type')
@click.option('--warmup', '-w', type=int, help='Warmup iterations per test type')
@click.option('--queue', '-q', type=int, help='Maximum in-flight operations')
@click.option('--io-mode', '-m', type=click.Choice(['SYNC', 'ASYNC'], case_sensitive=False),
              help='I/O dispatch mode')
@click.option('--seed', type=int, help='Random seed for reproducible offsets and payloads')
@click.option('--verbosity', '-v', type=click.IntRange(0, 2), help='0=quiet, 1=info, 2=debug')
@click.option('--retain', '-r', is_flag=True, help='Keep test data files after the session')
@click.option('--html', is_flag=True, help='Also write an HTML report')
@click.option('--charts', is_flag=True, help='Embed charts in the HTML report (implies --html)')
@click.option('--no-metrics', is_flag=True, help='Disable system resource sampling')
@click.option('--metrics-interval', type=float, help='Resource sampling interval in seconds')
@click.option('--session-id', help='Session identifier used in file names')
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='YAML configuration file; command line options override it')
@click.pass_context
def run(ctx, directory, tests, size, block, threads, iterations, warmup, queue, io_mode, seed,
        verbosity, retain, html, charts, no_metrics, metrics_interval, session_id, config_file):
    """Run a storage benchmark session."""
    try:
        console.print("[bold blue]Loading configuration...[/bold blue]")
        base = ConfigLoader.load_benchmark(config_file) if config_file else BenchmarkConfig()

        overrides: Dict[str, Any] = {
            'test_directory': directory,
            'test_types': ",".join(tests) if tests else None,
            'file_size_bytes': size,
            'block_size_bytes': block,
            'threads': threads,
            'iterations': iterations,
            'warmup_iterations': warmup,
            'queue_depth': queue,
            'io_mode': io_mode,
            'random_seed': seed,
            'verbosity': verbosity,
            'metrics_interval': metrics_interval,
            'session_id': session_id,
        }
        if retain:
            overrides['retain_test_files'] = True
        if no_metrics:
            overrides['collect_system_metrics'] = False
        if html or charts:
            overrides['report_formats'] = _with_html(base.report_formats)
        if charts:
            overrides['embed_charts'] = True

        config = merge_configs(base, overrides)
        setup_logging(
            level=ctx.obj.get('log_level') or verbosity_to_level(config.verbosity),
            log_file=ctx.obj.get('log_file')
        )

        results, snapshots, reports = _run_session(config)

        _display_results_summary(config, results, snapshots)

        console.print("\n[green]✓ Benchmark completed successfully![/green]")
        for report_format, path in reports.items():
            console.print(f"{report_format.value} report: {escape(str(path))}")

    except Exception as e:
        console.print(f"[red]✗ Benchmark failed: {escape(str(e))}[/red]")
        sys.exit(1)


def _with_html(formats: Sequence[ReportFormat]) -> Tuple[ReportFormat, ...]:
    if ReportFormat.HTML in formats:
        return tuple(formats)
    return tuple(formats) + (ReportFormat.HTML,)


def _run_session(config: BenchmarkConfig):
    """Run every test type, clean up data files and write the reports."""
    paths = BenchmarkPaths(config.test_directory, config.session_id)
    console.print(paths.header(), markup=False)

    console.print(f"[green]✓[/green] Test types: {enum_names(config.test_types)}")
    console.print(f"[green]✓[/green] File size: {config.file_size_bytes:,} bytes, "
                  f"block size: {config.block_size_bytes:,} bytes")
    console.print(f"[green]✓[/green] Threads: {config.threads}, queue depth: {config.queue_depth}, "
                  f"I/O mode: {config.io_mode.value}")

    sampler = ResourceSampler() if config.collect_system_metrics else None
    coordinator = BenchmarkCoordinator(config, paths, sampler=sampler)

    console.print("\n[bold blue]Starting benchmark...[/bold blue]")
    try:
        results = coordinator.run_all()
    finally:
        # Report names carry the session id, so clean up before writing them
        paths.cleanup_session_files(config.retain_test_files)

    snapshots = coordinator.snapshots()
    reports = ReportGenerator(config, paths).write_all(results, snapshots)
    return results, snapshots, reports


def _display_results_summary(config: BenchmarkConfig, results: Sequence[BenchmarkResult], snapshots):
    """Display per test type statistics."""
    console.print(f"\n[bold]Benchmark Results Summary - {escape(config.session_id)}[/bold]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Test Type", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Throughput (MB/s)", style="green", justify="right")
    table.add_column("Min / Max (MB/s)", justify="right")
    table.add_column("Avg Latency (ms)", style="green", justify="right")
    table.add_column("IOPS", style="green", justify="right")

    for summary in summarize(results):
        table.add_row(
            summary.test_type.value,
            str(summary.runs),
            f"{summary.throughput_mean:.2f} ± {summary.throughput_std:.2f}",
            f"{summary.throughput_min:.2f} / {summary.throughput_max:.2f}",
            f"{summary.latency_mean_ms:.4f}",
            f"{summary.iops_mean:.0f}",
        )

    console.print(table)

    stats = summarize_snapshots(snapshots)
    if stats.samples:
        console.print(
            f"System: {stats.samples} samples, avg CPU {stats.cpu['avg']:.1f}%, "
            f"max CPU {stats.cpu['max']:.1f}%, avg RAM {stats.ram['avg']:.1f}%, "
            f"avg disk busy {stats.disk['avg']:.1f}%"
        )


@cli.command()
@click.option('--config', '-c', 'config_file', required=True, help='YAML configuration file to validate')
def validate(config_file):
    """Validate a configuration file."""
    try:
        console.print(f"[blue]Validating configuration: {escape(config_file)}[/blue]")
        config = ConfigLoader.load_benchmark(config_file)
        console.print(f"[green]✓ Valid configuration: session {escape(config.session_id)}[/green]")
        console.print(_config_table(config))

    except Exception as e:
        console.print(f"[red]✗ Validation failed: {escape(str(e))}[/red]")
        sys.exit(1)


def _config_table(config: BenchmarkConfig) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Test Directory", escape(str(config.test_directory)))
    table.add_row("Test Types", enum_names(config.test_types))
    table.add_row("File Size", f"{config.file_size_bytes:,} bytes")
    table.add_row("Block Size", f"{config.block_size_bytes:,} bytes")
    table.add_row("Blocks per File", f"{config.blocks_per_file:,}")
    table.add_row("Threads", str(config.threads))
    table.add_row("Iterations", f"{config.iterations} (+{config.warmup_iterations} warmup)")
    table.add_row("I/O Mode", config.io_mode.value)
    table.add_row("Queue Depth", str(config.queue_depth))
    table.add_row("Random Seed", "none" if config.random_seed is None else str(config.random_seed))
    table.add_row("Report Formats", enum_names(config.report_formats))
    table.add_row("System Metrics",
                  f"every {config.metrics_interval}s" if config.collect_system_metrics else "disabled")
    table.add_row("Retain Test Files", str(config.retain_test_files))
    return table


def main(argv: Optional[Sequence[str]] = None):
    """Entry point for the storagemark CLI."""
    cli(args=argv)


if __name__ == '__main__':
    main()
