"""Client for the remote task scheduler."""

from typing import Any

import httpx
from loguru import logger

from schedkit.cron import CronExpression, RecurrenceSpec, generate
from schedkit.errors import SchedulerError, TaskMutationFailed
from schedkit.scheduler.types import ScheduledTask, SchedulerStatus, TaskLog
from schedkit.utils.helpers import format_error
from schedkit.utils.http import ServiceClient


class SchedulerFacade(ServiceClient):
    """
    Pass-through client for the scheduler service.

    Nothing is cached: the service is the source of truth, so callers should
    list tasks again after a mutation to see fresh `last_run` / `next_run`.
    """

    async def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        state = await self._get_state()
        tasks: list[ScheduledTask] = []
        for record in state.get("tasks") or []:
            try:
                tasks.append(ScheduledTask.from_payload(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed task record: {e}")
        return tasks

    async def status(self) -> SchedulerStatus:
        """Get the scheduler's overall status."""
        state = await self._get_state()
        return SchedulerStatus.from_payload(state.get("status") or {})

    async def set_running(self, running: bool) -> None:
        """Start or stop the scheduler."""
        action = "start" if running else "stop"
        await self._mutate(action, None, "POST", "scheduler", json={"action": action})

    async def refresh(self) -> None:
        """Ask the scheduler to recompute all next-run times."""
        await self._mutate("refresh", None, "POST", "scheduler", json={"action": "refresh"})

    async def trigger(self, task_id: str) -> None:
        """
        Run a task immediately.

        Raises:
            TaskMutationFailed: If the task is unknown, already running, or the
                scheduler rejects the trigger.
        """
        try:
            tasks = await self.list_tasks()
        except SchedulerError as e:
            raise TaskMutationFailed("trigger", task_id, str(e)) from e

        task = next((t for t in tasks if t.id == task_id), None)
        if task is None:
            raise TaskMutationFailed("trigger", task_id, "task not found")
        if task.is_running:
            raise TaskMutationFailed("trigger", task_id, "task is already running")

        await self._mutate(
            "trigger", task_id, "POST", "scheduler", json={"action": "trigger", "taskId": task_id}
        )

    async def set_enabled(self, task_id: str, enabled: bool) -> None:
        """Enable or disable a task."""
        await self._update(task_id, {"enabled": enabled})

    async def update_cron(self, task_id: str, cron_expression: str) -> None:
        """
        Change a task's cron expression.

        The expression is checked for five fields before anything is sent.

        Raises:
            InvalidCronExpression: If the expression does not have five fields.
            TaskMutationFailed: If the scheduler rejects the update.
        """
        cron = CronExpression.parse(cron_expression)
        await self._update(task_id, {"cronExpression": str(cron)})

    async def update_schedule(self, task_id: str, spec: RecurrenceSpec) -> str:
        """Render a recurrence as cron, apply it to a task and return the cron string."""
        cron_expression = generate(spec)
        await self.update_cron(task_id, cron_expression)
        return cron_expression

    async def delete(self, task_id: str) -> None:
        """Remove a task from the scheduler."""
        await self._mutate("delete", task_id, "DELETE", "scheduler", params={"taskId": task_id})

    async def logs(self, task_id: str | None = None) -> list[TaskLog]:
        """Fetch run logs for one task, or for all tasks."""
        params = {"taskId": task_id} if task_id else None
        try:
            response = await self._request("GET", "scheduler/logs", params=params)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SchedulerError(f"Failed to read task logs: {format_error(e)}") from e

        records = body.get("logs") if isinstance(body, dict) else body
        if not isinstance(records, list):
            records = []
        logs: list[TaskLog] = []
        for record in records:
            try:
                logs.append(TaskLog.from_payload(record))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed log record: {e}")
        return logs

    async def clear_logs(self, task_id: str) -> None:
        """Delete the run logs of a task."""
        await self._mutate("clear-logs", task_id, "DELETE", "scheduler/logs", params={"taskId": task_id})

    async def _get_state(self) -> dict[str, Any]:
        try:
            response = await self._request("GET", "scheduler")
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SchedulerError(f"Failed to read scheduler state: {format_error(e)}") from e

        if not isinstance(body, dict):
            raise SchedulerError(f"Unexpected scheduler payload: {type(body).__name__}")
        # Some deployments wrap the payload as {"success": true, "data": {...}}.
        if isinstance(body.get("data"), dict):
            return body["data"]
        return body

    async def _update(self, task_id: str, updates: dict[str, Any]) -> None:
        await self._mutate(
            "update", task_id, "PUT", "scheduler", json={"taskId": task_id, "updates": updates}
        )

    async def _mutate(
        self,
        action: str,
        task_id: str | None,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TaskMutationFailed(action, task_id, format_error(e)) from e

        body = self._json(response)
        if not response.is_success or (isinstance(body, dict) and body.get("success") is False):
            raise TaskMutationFailed(action, task_id, self._error_message(response))

        target = f" ({task_id})" if task_id else ""
        logger.info(f"Scheduler action '{action}'{target} succeeded")
        return body
