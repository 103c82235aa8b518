from __future__ import annotations

from collections.abc import Awaitable, Callable

from .staging.contract_events_task import index_contract_events_task as staging__index_contract_events_task
from .live.watch_contract_events_task import watch_contract_events_task as live__watch_contract_events_task

TaskFn = Callable[..., Awaitable[None]]

TASKS: dict[str, TaskFn] = {
    "staging__index_contract_events_task": staging__index_contract_events_task,
    "live__watch_contract_events_task": live__watch_contract_events_task,
}
