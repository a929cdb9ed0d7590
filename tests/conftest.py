"""
Shared pytest fixtures for threadbench.

Every test here starts real threads, so the autouse fixture below fails any
test that leaves one running instead of letting pytest hang at exit.
"""

import os
import sys
import threading

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

# Add parent directory to path so we can import threadbench without installing it
_threadbench_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _threadbench_path not in sys.path:
    sys.path.insert(0, _threadbench_path)

from threadbench.harness.config import PerformanceConfig, SynchronizationConfig
from threadbench.harness.diagnostics import DiagnosticChannel
from threadbench.sink import RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def diagnostics():
    return DiagnosticChannel()


@pytest.fixture
def small_performance_config():
    return PerformanceConfig(unit_count=8, parallelism=2, workload="matrix", matrix_size=16)


@pytest.fixture
def small_synchronization_config():
    return SynchronizationConfig(thread_count=10, increments_per_thread=100)


@pytest.fixture(autouse=True)
def _check_thread_cleanup(request):
    """Fail a test that leaves any thread it started still alive."""
    initial_threads = set(threading.enumerate())

    yield

    new_threads = set(threading.enumerate()) - initial_threads
    main_thread = threading.main_thread()
    alive_threads = [t for t in new_threads if t is not main_thread and t.is_alive()]

    if alive_threads and not request.node.get_closest_marker("intentionally_leaves_dangling_threads"):
        thread_info = ", ".join(
            f"{t.name} ({'daemon' if t.daemon else 'NON-DAEMON'}, ident={t.ident})" for t in alive_threads
        )
        pytest.fail(
            f"Test {request.node.nodeid} left {len(alive_threads)} thread(s) running: {thread_info}. "
            f"All threads must be joined before test completion."
        )
