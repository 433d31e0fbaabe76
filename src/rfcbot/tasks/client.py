"""Tasks client used by the webhook receiver to hand work to the worker.

Backends selectable via TASKS_BACKEND env var:
- inline (default): records tasks without executing them (dev/tests)
- http: POSTs to the worker directly (local/staging)
- cloud_tasks: Google Cloud Tasks, deduped by task name
"""

import os
_BACKENDS = ("inline", "http", "cloud_tasks")

NAG_UPDATE_PATH = "/tasks/nags/update"


def nag_update_task_id(comment_id: int) -> str:
    return f"nags-update:{comment_id}"


class TasksClient:
    """Idempotent enqueue by task_id.

    A task_id is remembered only after the backend accepted it, so a webhook
    redelivered after a failed enqueue tries again instead of being treated
    as already queued.
    """

    def __init__(self, backend: str | None = None) -> None:
        self._backend = backend or os.environ.get("TASKS_BACKEND", "inline")
        self._enqueued_ids: set[str] = set()
        self._recorded_tasks: list[dict] = []

    @property
    def backend(self) -> str:
        return self._backend

    def enqueue(
        self,
        task_id: str,
        url_path: str,
        payload: dict,
        correlation_id: str | None = None,
    ) -> bool:
        """Queue a worker task.

        Returns:
            True once the task is queued, including when this client already
            queued task_id. False when the backend failed to deliver.

        Raises:
            ValueError: If TASKS_BACKEND is unknown.
        """
        if self._backend not in _BACKENDS:
            raise ValueError(f"Unknown TASKS_BACKEND: {self._backend}")

        if task_id in self._enqueued_ids:
            return True

        delivered = self._deliver(task_id, url_path, payload, correlation_id)
        if delivered:
            self._enqueued_ids.add(task_id)
        return delivered

    def enqueue_nag_update(self, comment_id: int, correlation_id: str | None = None) -> bool:
        """Queue the nag update for a newly created issue comment."""
        task_id = nag_update_task_id(comment_id)
        return self.enqueue(
            task_id,
            NAG_UPDATE_PATH,
            {"task_id": task_id, "comment_id": comment_id},
            correlation_id=correlation_id,
        )

    def _deliver(
        self,
        task_id: str,
        url_path: str,
        payload: dict,
        correlation_id: str | None,
    ) -> bool:
        if self._backend == "inline":
            self._recorded_tasks.append({
                "task_id": task_id,
                "url_path": url_path,
                "payload": payload,
                "correlation_id": correlation_id,
            })
            return True

        if self._backend == "http":
            from rfcbot.tasks.http_backend import enqueue_http
            return enqueue_http(task_id, url_path, payload, correlation_id)

        from rfcbot.tasks.cloud_tasks_backend import enqueue_cloud_task
        return enqueue_cloud_task(task_id, url_path, payload, correlation_id)

    def was_enqueued(self, task_id: str) -> bool:
        return task_id in self._enqueued_ids

    def get_recorded_tasks(self) -> list[dict]:
        """Tasks recorded by the inline backend."""
        return list(self._recorded_tasks)

    def clear(self) -> None:
        self._enqueued_ids.clear()
        self._recorded_tasks.clear()
