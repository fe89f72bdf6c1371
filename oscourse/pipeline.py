"""Connect two commands with a pipe, like ``cmd1 | cmd2`` in a shell."""

from __future__ import annotations

import shlex
import subprocess
import sys
from collections.abc import Sequence

__all__ = ["pipeline", "main"]

DEFAULT_PRODUCER = "cat main.cpp"
DEFAULT_CONSUMER = "grep hello"


def _split(command: str | Sequence[str]) -> list[str]:
    args = shlex.split(command) if isinstance(command, str) else list(command)
    if not args:
        raise ValueError("empty command")
    return args


def _describe(command: str | Sequence[str]) -> str:
    return command if isinstance(command, str) else shlex.join(command)


def pipeline(process1: str | Sequence[str], process2: str | Sequence[str]) -> int:
    """Run ``process1`` with its standard output feeding ``process2``.

    Commands are either shell-like strings or argument sequences. The second
    process inherits this process's standard output. Returns the exit status
    of the second process; raises RuntimeError if either cannot be started.
    """
    producer_args = _split(process1)
    consumer_args = _split(process2)

    try:
        producer = subprocess.Popen(producer_args, stdout=subprocess.PIPE)
    except OSError as exc:
        raise RuntimeError(f"Failed to execute {_describe(process1)}") from exc

    try:
        consumer = subprocess.Popen(consumer_args, stdin=producer.stdout)
    except OSError as exc:
        producer.stdout.close()
        producer.kill()
        producer.wait()
        raise RuntimeError(f"Failed to execute {_describe(process2)}") from exc

    # Only the consumer should hold the read end now.
    producer.stdout.close()
    consumer.wait()
    producer.wait()
    return consumer.returncode


def main(argv: Sequence[str] | None = None) -> int:
    """Run two commands connected by a pipe; defaults to ``cat main.cpp | grep hello``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        args = [DEFAULT_PRODUCER, DEFAULT_CONSUMER]
    if len(args) != 2:
        print("usage: pipeline COMMAND1 COMMAND2", file=sys.stderr)
        return 2
    try:
        return pipeline(args[0], args[1])
    except (RuntimeError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())