"""CSV interchange format for tasks.

One row per task: a ``TASK-001`` style sequence id, title, description,
status, priority, assignee name and ``;``-joined tags. Every field is quoted
and embedded quotes are doubled.
"""

import csv
import io
from dataclasses import dataclass, field

from tasktrack.models import Task, TaskPriority, TaskStatus, normalize_tags

CSV_HEADERS = ["Task ID", "Title", "Description", "Status", "Priority", "Assignee", "Tags"]
TAG_SEPARATOR = ";"


@dataclass
class ImportedTask:
    """A parsed row, coerced to valid create arguments."""

    row_number: int
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: list[str] = field(default_factory=list)


def sequence_id(index: int) -> str:
    return f"TASK-{index + 1:03d}"


def encode_tasks(tasks: list[Task], member_names: dict[str, str] | None = None) -> str:
    """Render tasks as CSV text.

    Assignees resolve to a member name when known, otherwise the raw id.
    """
    member_names = member_names or {}
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_HEADERS) + "\n")
    for index, task in enumerate(tasks):
        assignee = ""
        if task.assignee_id:
            assignee = member_names.get(task.assignee_id, task.assignee_id)
        writer.writerow(
            [
                sequence_id(index),
                task.title or "",
                task.description or "",
                task.status.value,
                task.priority.value,
                assignee,
                TAG_SEPARATOR.join(task.tags),
            ]
        )
    return buffer.getvalue()


def _coerce(enum_cls, raw: str, default):
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def decode_tasks(text: str) -> list[ImportedTask]:
    """Parse CSV text into importable rows.

    The first non-blank row is treated as the header. Rows with fewer than
    two fields are skipped. Unknown status or priority values fall back to
    ``todo`` and ``medium``; assignees are never carried over.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        return []

    parsed: list[ImportedTask] = []
    for row_number, row in enumerate(rows[1:], start=1):
        values = [value.strip() for value in row]
        if len(values) < 2:
            continue
        values += [""] * (len(CSV_HEADERS) - len(values))
        raw_tags = values[6].split(TAG_SEPARATOR) if values[6] else []
        parsed.append(
            ImportedTask(
                row_number=row_number,
                title=values[1] or f"Imported Task {row_number}",
                description=values[2],
                status=_coerce(TaskStatus, values[3], TaskStatus.TODO),
                priority=_coerce(TaskPriority, values[4], TaskPriority.MEDIUM),
                tags=normalize_tags(raw_tags),
            )
        )
    return parsed
