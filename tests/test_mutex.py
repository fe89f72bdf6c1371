import io

import pytest

from oscourse.mutex import (
    PetersonLock,
    SpinLock,
    StrictAlternation,
    lock_variable_count,
    main,
    peterson_count,
    wait_turn_run,
)


def test_spinlock_acquire_and_release():
    lock = SpinLock()
    lock.acquire()
    assert lock.locked is True
    lock.release()
    assert lock.locked is False


def test_spinlock_context_manager():
    lock = SpinLock()
    with lock:
        assert lock.locked is True
    assert lock.locked is False


def test_lock_variable_single_thread_is_exact():
    assert lock_variable_count(1000, 1) == 1000


def test_lock_variable_two_threads_bounded():
    result = lock_variable_count(2000, 2)
    assert 0 < result <= 4000


def test_peterson_rejects_bad_process():
    lock = PetersonLock()
    with pytest.raises(ValueError):
        lock.enter_section(2)
    with pytest.raises(ValueError):
        lock.leave_section(-1)


def test_peterson_enter_and_leave_marks_interest():
    lock = PetersonLock()
    lock.enter_section(1)
    assert lock.interested == [False, True]
    assert lock.turn == 1
    lock.leave_section(1)
    assert lock.interested == [False, False]


def test_peterson_count_is_exact_and_ordered():
    output = io.StringIO()
    iterations = 300
    result = peterson_count(iterations, output)
    assert result == 2 * iterations
    lines = output.getvalue().splitlines()
    values = [int(line.split()[2]) for line in lines]
    assert values == list(range(1, 2 * iterations + 1))
    assert sum(line.startswith("Thread 0 ") for line in lines) == iterations
    assert sum(line.startswith("Thread 1 ") for line in lines) == iterations


def test_strict_alternation_passes_turn():
    alternation = StrictAlternation()
    alternation.wait_turn(0)
    alternation.pass_turn(0)
    assert alternation.turn == 1
    alternation.wait_turn(1)
    alternation.pass_turn(1)
    assert alternation.turn == 0


def test_strict_alternation_rejects_bad_process():
    with pytest.raises(ValueError):
        StrictAlternation().wait_turn(5)


def test_wait_turn_run_alternates():
    output = io.StringIO()
    assert wait_turn_run(2, output) == 4
    assert output.getvalue().splitlines() == [
        "Thread 1 1",
        "Thread 2 2",
        "Thread 1 3",
        "Thread 2 4",
    ]


def test_main_lock_demo(capsys):
    assert main(["lock", "-n", "100"]) == 0
    out = capsys.readouterr().out
    value = int(out.strip().rsplit(" ", 1)[1])
    assert out.startswith("Final value of x: ")
    assert 0 < value <= 200


def test_main_peterson_demo(capsys):
    assert main(["peterson", "-n", "5"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 10