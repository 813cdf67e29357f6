"""Waiting for the components a service depends on to become available."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping


def perform_checks(
    checks: Mapping[str, Callable[[], object]],
    max_retry: int = 180,
    interval: float = 1.0,
) -> None:
    """Run every check until each has succeeded once.

    A check fails by raising. Checks that have succeeded are not run again.
    Rounds are ``interval`` seconds apart; RuntimeError is raised if not all
    checks have succeeded after ``max_retry`` rounds.
    """
    done: set[str] = set()
    for _ in range(max_retry):
        all_success = True
        for name, check in checks.items():
            if name in done:
                continue
            try:
                check()
            except Exception as err:
                print(f"{name} check failed: {err}")
                all_success = False
            else:
                print(f"{name} check succeeded.")
                done.add(name)
        if all_success:
            print("All components checks passed successfully.")
            return
        time.sleep(interval)
    raise RuntimeError(
        f"not all components checks passed successfully after {max_retry} attempts"
    )