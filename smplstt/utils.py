#!/usr/bin/env python3
"""small helpers shared across smplstt"""

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any


def log_task_exception(task: asyncio.Task):
    """catch and log task exceptions"""
    with contextlib.suppress(asyncio.CancelledError):
        if exception := task.exception():
            logging.error("Task %s failed", task.get_name(), exc_info=exception)


def create_tracked_task(
    tasks: set[asyncio.Task], coro: Coroutine[Any, Any, Any], name: str | None = None
) -> asyncio.Task:
    """create a task that stays referenced in tasks until it finishes"""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    task.add_done_callback(log_task_exception)
    return task


def safe_stopevent_check(stopevent: asyncio.Event | None) -> bool:
    """has the stop event fired"""
    if not stopevent:
        return False
    try:
        return stopevent.is_set()
    except (BrokenPipeError, EOFError, OSError):
        return True
