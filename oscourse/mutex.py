"""Busy-waiting mutual exclusion: lock variable, Peterson's solution, strict alternation."""

from __future__ import annotations

import argparse
import sys
import threading
import time
from collections.abc import Callable, Sequence
from typing import TextIO

__all__ = [
    "SpinLock",
    "lock_variable_count",
    "PetersonLock",
    "peterson_count",
    "StrictAlternation",
    "wait_turn_run",
    "main",
]

LOCK_VARIABLE_ITERATIONS = 100_000
PETERSON_ITERATIONS = 10_000_000
FAST_NON_CRITICAL = 10
SLOW_NON_CRITICAL = 10_000_000


def _spin() -> None:
    """Give other threads a chance while busy waiting."""
    time.sleep(0)


class _Counter:
    """A shared, deliberately unsynchronised integer."""

    def __init__(self) -> None:
        self.value = 0


def _run_threads(targets: Sequence[Callable[[], None]]) -> None:
    threads = [threading.Thread(target=target, daemon=True) for target in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        while thread.is_alive():
            thread.join(timeout=0.1)


def _check_process(process: int) -> int:
    if process not in (0, 1):
        raise ValueError(f"process must be 0 or 1, got {process}")
    return process


class SpinLock:
    """A plain lock variable. Test-then-set is not atomic, so it can fail."""

    def __init__(self) -> None:
        self.locked = False

    def acquire(self) -> None:
        while self.locked:
            _spin()
        self.locked = True

    def release(self) -> None:
        self.locked = False

    def __enter__(self) -> SpinLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def lock_variable_count(iterations: int = LOCK_VARIABLE_ITERATIONS, threads: int = 2) -> int:
    """Increment a shared counter from several threads guarded by a lock variable."""
    lock = SpinLock()
    counter = _Counter()

    def worker() -> None:
        for _ in range(iterations):
            lock.acquire()
            counter.value += 1
            lock.release()

    _run_threads([worker] * threads)
    return counter.value


class PetersonLock:
    """Peterson's solution for two processes numbered 0 and 1."""

    def __init__(self) -> None:
        self.turn = 0
        self.interested = [False, False]

    def enter_section(self, process: int) -> None:
        other = 1 - _check_process(process)
        self.interested[process] = True
        self.turn = process
        while self.turn == process and self.interested[other]:
            _spin()

    def leave_section(self, process: int) -> None:
        self.interested[_check_process(process)] = False


def peterson_count(iterations: int = PETERSON_ITERATIONS, output: TextIO | None = None) -> int:
    """Two threads increment a shared counter under Peterson's lock.

    Inside the critical section each thread writes ``Thread <n> <value>`` to
    ``output`` when one is given. Returns the final counter value.
    """
    lock = PetersonLock()
    counter = _Counter()

    def worker(process: int) -> Callable[[], None]:
        def run() -> None:
            for _ in range(iterations):
                lock.enter_section(process)
                counter.value += 1
                if output is not None:
                    print(f"Thread {process} {counter.value}", file=output)
                lock.leave_section(process)

        return run

    _run_threads([worker(0), worker(1)])
    return counter.value


class StrictAlternation:
    """Strict alternation: processes 0 and 1 take turns through a shared variable."""

    def __init__(self) -> None:
        self.turn = 0

    def wait_turn(self, process: int) -> None:
        _check_process(process)
        while self.turn != process:
            _spin()

    def pass_turn(self, process: int) -> None:
        self.turn = 1 - _check_process(process)


def _non_critical_section(length: int) -> None:
    for _ in range(length - 1):
        pass


def wait_turn_run(rounds: int | None = None, output: TextIO | None = None) -> int:
    """Run two alternating threads, a fast one and a slow one.

    Each thread performs ``rounds`` critical sections (forever when None),
    writing ``Thread 1 <value>`` or ``Thread 2 <value>`` to ``output``.
    Returns the final counter value.
    """
    alternation = StrictAlternation()
    counter = _Counter()

    def worker(process: int, non_critical: int) -> Callable[[], None]:
        def run() -> None:
            done = 0
            while rounds is None or done < rounds:
                alternation.wait_turn(process)
                counter.value += 1
                if output is not None:
                    print(f"Thread {process + 1} {counter.value}", file=output)
                alternation.pass_turn(process)
                _non_critical_section(non_critical)
                done += 1

        return run

    _run_threads([worker(0, FAST_NON_CRITICAL), worker(1, SLOW_NON_CRITICAL)])
    return counter.value


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the mutual exclusion demonstrations."""
    parser = argparse.ArgumentParser(prog="mutex", description=__doc__)
    parser.add_argument("demo", choices=["lock", "peterson", "turn"])
    parser.add_argument("-n", "--iterations", type=int, default=None)
    args = parser.parse_args(argv)

    try:
        if args.demo == "lock":
            iterations = args.iterations or LOCK_VARIABLE_ITERATIONS
            print(f"Final value of x: {lock_variable_count(iterations, 2)}")
        elif args.demo == "peterson":
            peterson_count(args.iterations or PETERSON_ITERATIONS, sys.stdout)
        else:
            wait_turn_run(args.iterations, sys.stdout)
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())