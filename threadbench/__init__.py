"""Single- vs multi-threaded timing demo and shared-counter stress test."""

__version__ = "0.1.0"
