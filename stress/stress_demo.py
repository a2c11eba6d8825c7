"""Demo stress unit: file writes and in-memory sorting."""

import os
import random
import tempfile
from pathlib import Path

from stresslib.benchmark import StressContext, stress_test


@stress_test
def write_1kb_file(ctx: StressContext):
    data = b"\0" * 1024
    ctx.set_bytes(len(data))
    fd, name = tempfile.mkstemp(prefix="stress_")
    os.close(fd)
    path = Path(name)

    ctx.measure(lambda: path.write_bytes(data))

    path.unlink()


@stress_test
def sort_100k_ints(ctx: StressContext):
    values = [random.random() for _ in range(100_000)]
    ctx.set_elements(len(values))
    ctx.tag("algorithm", "timsort")

    ctx.measure_mut(values, lambda v: v.sort())


@stress_test(ignore=True)
def write_64mb_file(ctx: StressContext):
    data = os.urandom(64 * 1024 * 1024)
    ctx.set_bytes(len(data))
    fd, name = tempfile.mkstemp(prefix="stress_")
    os.close(fd)
    path = Path(name)

    def write_and_sync():
        with open(path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    ctx.measure(write_and_sync)

    path.unlink()
