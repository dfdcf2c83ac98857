from __future__ import annotations

import threading
import time

import pytest

from finlens.pmap import p_map


def test_preserves_input_order_under_concurrency() -> None:
    def slow_then_fast(n: int) -> int:
        time.sleep(0.02 if n == 0 else 0)
        return n * 10

    assert p_map(range(6), slow_then_fast, concurrency=3) == [0, 10, 20, 30, 40, 50]


def test_concurrency_bound_is_respected() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def work(_: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    p_map(range(10), work, concurrency=2)
    assert peak <= 2


def test_single_worker_runs_on_calling_thread() -> None:
    caller = threading.get_ident()
    assert p_map([1, 2, 3], lambda _: threading.get_ident(), concurrency=1) == [caller] * 3


@pytest.mark.parametrize("concurrency", [1, 3])
def test_mapper_error_propagates(concurrency: int) -> None:
    def boom(n: int) -> int:
        if n == 1:
            raise KeyError(n)
        return n

    with pytest.raises(KeyError):
        p_map([0, 1, 2], boom, concurrency=concurrency)


def test_empty_input() -> None:
    assert p_map([], lambda n: n, concurrency=4) == []


def test_rejects_bad_concurrency() -> None:
    with pytest.raises(ValueError):
        p_map([1], lambda n: n, concurrency=0)
