#!/usr/bin/env python3
"""Golden path demo for TaskTrack (project, member, task through to done)."""

from __future__ import annotations

import json
import os
import sys
import time
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


class HttpClient:
    def __init__(self, base_url: str, api_key: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        timeout: float = 10.0,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if query:
            query = {k: v for k, v in query.items() if v is not None}
            if query:
                url = f"{url}?{urlencode(query)}"

        data = None
        if payload is not None:
            data = json.dumps(payload, default=str).encode("utf-8")

        req = Request(url, data=data, method=method)
        for key, value in self.headers.items():
            req.add_header(key, value)

        try:
            with urlopen(req, timeout=timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"{method} {url} failed: {exc.code} {exc.reason}: {detail}") from None

        if not raw:
            return {}
        return json.loads(raw.decode("utf-8"))


def main() -> int:
    tasktrack_url = _env("TASKTRACK_URL", "http://localhost:5000")
    api_key = _env("TASKTRACK_API_KEY")
    project_key = _env("TASKTRACK_PROJECT_KEY", f"DEMO{int(time.time()) % 10000}")
    member_name = _env("TASKTRACK_MEMBER_NAME", "Demo Member")

    client = HttpClient(tasktrack_url, api_key=api_key)

    print("Checking health...")
    health = client.request_json("GET", "/v1/health")
    if health.get("status") != "healthy":
        raise RuntimeError(f"Unexpected health response: {health}")

    print(f"Creating project {project_key}...")
    project = client.request_json(
        "POST",
        "/v1/projects",
        payload={"name": "Golden path demo", "key": project_key},
    )

    print(f"Creating member {member_name}...")
    member = client.request_json(
        "POST",
        "/v1/members",
        payload={"name": member_name, "role": "developer"},
    )
    member_id = member["member_id"]

    print("Creating task...")
    task = client.request_json(
        "POST",
        "/v1/tasks",
        payload={
            "title": "Golden path task",
            "description": "Walk a task from todo to done",
            "priority": "high",
            "tags": ["demo"],
            "project_id": project["project_id"],
        },
    )
    task_id = task["task_id"]
    print(f"Task created: {task_id}")

    workload = client.request_json("GET", f"/v1/members/{member_id}/workload")
    print(f"Member workload: {workload['in_progress']}/{workload['capacity']}")
    if not workload["can_assign"]:
        raise RuntimeError("Member is already at capacity")

    print("Assigning task...")
    client.request_json("POST", f"/v1/tasks/{task_id}/assign", payload={"assignee_id": member_id})

    for _ in range(2):
        task = client.request_json("POST", f"/v1/tasks/{task_id}/advance")
        print(f"Task status: {task['status']}")

    if task["status"] != "done":
        raise RuntimeError(f"Task did not reach done: {task['status']}")

    history = client.request_json("GET", f"/v1/history/{task_id}")
    print("History (newest first):")
    for entry in history:
        print(f"  {entry['timestamp']} {entry['action']}: {entry['details']}")

    stats = client.request_json(
        "GET", "/v1/tasks/stats", query={"project_id": project["project_id"]}
    )
    print(f"Project completion: {stats['completion_rate']}%")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise
