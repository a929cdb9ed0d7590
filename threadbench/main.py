from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .counter import COUNTER_KINDS
from .harness.config import DemoConfig, default_demo_config, with_overrides
from .harness.controller import PERFORMANCE, SYNCHRONIZATION, DemoController
from .processor import WORKLOADS
from .sink import ConsoleSink, DispatchingSink

LOGGER = logging.getLogger("threadbench")

TEST_CHOICES = {
    "all": (PERFORMANCE, SYNCHRONIZATION),
    PERFORMANCE: (PERFORMANCE,),
    SYNCHRONIZATION: (SYNCHRONIZATION,),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Thread performance and synchronization demo"
    )
    parser.add_argument(
        "--test",
        choices=sorted(TEST_CHOICES),
        default="all",
        help="Which test(s) to run",
    )
    parser.add_argument(
        "--units", type=int, help="Number of work units per performance pass"
    )
    parser.add_argument(
        "--parallelism",
        type=int,
        help="Worker pool size for the parallel pass (default: available CPUs)",
    )
    parser.add_argument(
        "--workload",
        choices=sorted(WORKLOADS),
        help="Work unit implementation for the performance test",
    )
    parser.add_argument(
        "--threads", type=int, help="Worker threads for the synchronization test"
    )
    parser.add_argument(
        "--increments", type=int, help="Increments per synchronization worker"
    )
    parser.add_argument(
        "--counter",
        choices=sorted(COUNTER_KINDS),
        help="Counter implementation for the synchronization test",
    )
    parser.add_argument(
        "--repeat", type=int, default=1, help="Run the selected test(s) this many times"
    )
    parser.add_argument(
        "--chart-path",
        type=Path,
        help="Render the performance timings to this PNG file",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> DemoConfig:
    return with_overrides(
        default_demo_config(),
        tests=TEST_CHOICES[args.test],
        repeat=args.repeat,
        chart_path=args.chart_path,
        performance_unit_count=args.units,
        performance_parallelism=args.parallelism,
        performance_workload=args.workload,
        synchronization_thread_count=args.threads,
        synchronization_increments_per_thread=args.increments,
        synchronization_counter_kind=args.counter,
    )


def run_demo(config: DemoConfig, controller: DemoController, console: ConsoleSink) -> None:
    with DispatchingSink(console, name="presentation") as sink:
        for round_num in range(1, config.repeat + 1):
            for kind in config.tests:
                LOGGER.info("Round %d/%d: starting %s test", round_num, config.repeat, kind)
                thread = controller.start(kind, sink)
                if thread is not None:
                    thread.join()


def render_charts(config: DemoConfig, controller: DemoController, console: ConsoleSink) -> None:
    if config.chart_path is None:
        return
    # imported lazily so plain console runs never load matplotlib
    from .harness.charts import render_history_chart, render_timing_chart

    history = controller.history.performance_frame()
    if len(history) > 1:
        render_history_chart(history, config.chart_path)
    elif console.chart_data is not None:
        render_timing_chart(*console.chart_data, config.chart_path)
    else:
        LOGGER.warning("No performance timings to chart; run the performance test")


def log_history(controller: DemoController) -> None:
    if len(controller.history) <= 1:
        return
    performance = controller.history.performance_frame()
    if not performance.empty:
        LOGGER.info(
            "Performance runs:\n%s",
            performance.drop(columns=["recorded_ts"]).to_string(index=False),
        )
    synchronization = controller.history.synchronization_frame()
    if not synchronization.empty:
        LOGGER.info(
            "Synchronization runs:\n%s",
            synchronization.drop(columns=["recorded_ts"]).to_string(index=False),
        )


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
    except ValueError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2

    LOGGER.info(
        "Performance: %d units, %d worker(s), workload=%s",
        config.performance.unit_count,
        config.performance.resolved_parallelism(),
        config.performance.workload,
    )
    LOGGER.info(
        "Synchronization: %d threads x %d increments, counter=%s",
        config.synchronization.thread_count,
        config.synchronization.increments_per_thread,
        config.synchronization.counter_kind,
    )

    controller = DemoController(config)
    console = ConsoleSink()
    run_demo(config, controller, console)
    log_history(controller)
    render_charts(config, controller, console)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
