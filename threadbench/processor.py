from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

import numpy as np

INT64_MIN = -(1 << 63)
UINT64_RANGE = 1 << 64

UNIT_COUNT_DEFAULT = 200
MATRIX_SIZE_DEFAULT = 160
MATRIX_VALUE_BOUND = 8


class Processor(Protocol):
    """One work unit: produces a signed 64-bit integer per invocation."""

    def process(self) -> int:  # pragma: no cover
        ...


ProcessorFactory = Callable[[int], Processor]


def wrap_int64(value: int) -> int:
    """Fold ``value`` into the signed 64-bit range with two's-complement wrap."""
    return (value - INT64_MIN) % UINT64_RANGE + INT64_MIN


@dataclass(frozen=True)
class MatrixProcessor:
    """CPU-bound unit: sums ``a @ a.T`` for a matrix seeded by the unit index.

    The product runs inside BLAS, which releases the GIL, so distinct
    processors genuinely overlap on a thread pool.
    """

    index: int
    size: int = MATRIX_SIZE_DEFAULT

    def process(self) -> int:
        rng = np.random.default_rng(self.index)
        matrix = rng.integers(
            -MATRIX_VALUE_BOUND, MATRIX_VALUE_BOUND, size=(self.size, self.size)
        ).astype(np.float64)
        product = matrix @ matrix.T
        # entries stay well below 2**53, so the float sum is exact
        return wrap_int64(int(product.sum()))


@dataclass(frozen=True)
class IndexProcessor:
    index: int

    def process(self) -> int:
        return wrap_int64(self.index)


@dataclass(frozen=True)
class ConstantProcessor:
    value: int

    def process(self) -> int:
        return wrap_int64(self.value)


def _matrix_factory(matrix_size: int, constant_value: int) -> ProcessorFactory:
    return lambda index: MatrixProcessor(index=index, size=matrix_size)


def _index_factory(matrix_size: int, constant_value: int) -> ProcessorFactory:
    return IndexProcessor


def _constant_factory(matrix_size: int, constant_value: int) -> ProcessorFactory:
    return lambda index: ConstantProcessor(value=constant_value)


WORKLOADS: dict[str, Callable[[int, int], ProcessorFactory]] = {
    "matrix": _matrix_factory,
    "index": _index_factory,
    "constant": _constant_factory,
}


def build_processor_factory(
    workload: str,
    matrix_size: int = MATRIX_SIZE_DEFAULT,
    constant_value: int = 0,
) -> ProcessorFactory:
    try:
        builder = WORKLOADS[workload]
    except KeyError:
        raise ValueError(
            f"Unknown workload {workload!r}; expected one of {', '.join(sorted(WORKLOADS))}"
        ) from None
    return builder(matrix_size, constant_value)


__all__ = [
    "UNIT_COUNT_DEFAULT",
    "MATRIX_SIZE_DEFAULT",
    "Processor",
    "ProcessorFactory",
    "MatrixProcessor",
    "IndexProcessor",
    "ConstantProcessor",
    "WORKLOADS",
    "build_processor_factory",
    "wrap_int64",
]
