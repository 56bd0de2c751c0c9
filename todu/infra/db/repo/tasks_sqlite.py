from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from todu.constants import TASK_STATUS_DONE, TASK_STATUS_IN_PROGRESS
from todu.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from todu.domain.tasks.ports import TaskRepository
from todu.infra.db.connection import Database
from todu.models import Recurrence, Subtask, Task, TaskQuery, TaskStats

# sort keys accepted by search(); anything else falls back to manual order
_SORT_COLUMNS = {
    "order": "t.sort_order",
    "created_at": "t.created_at",
    "updated_at": "t.updated_at",
    "due_date": "t.due_date",
    "title": "t.title COLLATE NOCASE",
    "status": "t.status",
    "priority": "CASE t.priority WHEN 'low' THEN 0 WHEN 'medium' THEN 1 WHEN 'high' THEN 2 ELSE 3 END",
}


def _escape_like(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _subtasks_to_json(subtasks: tuple[Subtask, ...]) -> str:
    return json.dumps([{"id": s.id, "title": s.title, "done": s.done} for s in subtasks], ensure_ascii=False)


def _recurrence_to_json(rec: Optional[Recurrence]) -> Optional[str]:
    if rec is None:
        return None
    return json.dumps(
        {"frequency": rec.frequency, "interval": rec.interval, "endDate": to_iso_opt(rec.end_date)},
        ensure_ascii=False,
    )


class TasksSqliteRepo(TaskRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, task: Task) -> None:
        await self._db.execute(
            """
            INSERT INTO tasks(
              id, user_id, list_id, title, description, status, priority,
              tags_json, subtasks_json, due_date, reminder_date, recurrence_json,
              sort_order, completed_at, sync_version, last_modified,
              created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                task.id,
                task.user_id,
                task.list_id,
                task.title,
                task.description,
                task.status,
                task.priority,
                json.dumps(list(task.tags), ensure_ascii=False),
                _subtasks_to_json(task.subtasks),
                to_iso_opt(task.due_date),
                to_iso_opt(task.reminder_date),
                _recurrence_to_json(task.recurrence),
                task.order,
                to_iso_opt(task.completed_at),
                task.sync_version,
                to_iso(task.last_modified),
                to_iso(task.created_at),
                to_iso(task.updated_at),
            ),
        )

    async def save(self, task: Task) -> None:
        await self._db.execute(
            """
            UPDATE tasks
            SET list_id = ?,
                title = ?,
                description = ?,
                status = ?,
                priority = ?,
                tags_json = ?,
                subtasks_json = ?,
                due_date = ?,
                reminder_date = ?,
                recurrence_json = ?,
                sort_order = ?,
                completed_at = ?,
                sync_version = ?,
                last_modified = ?,
                updated_at = ?
            WHERE id = ?;
            """,
            (
                task.list_id,
                task.title,
                task.description,
                task.status,
                task.priority,
                json.dumps(list(task.tags), ensure_ascii=False),
                _subtasks_to_json(task.subtasks),
                to_iso_opt(task.due_date),
                to_iso_opt(task.reminder_date),
                _recurrence_to_json(task.recurrence),
                task.order,
                to_iso_opt(task.completed_at),
                task.sync_version,
                to_iso(task.last_modified),
                to_iso(task.updated_at),
                task.id,
            ),
        )

    async def get(self, task_id: str) -> Optional[Task]:
        row = await self._db.fetchone("SELECT * FROM tasks WHERE id = ?;", (task_id,))
        return self._row_to_task(row) if row else None

    async def delete(self, task_id: str) -> None:
        await self._db.execute("DELETE FROM tasks WHERE id = ?;", (task_id,))

    async def search(self, query: TaskQuery) -> list[Task]:
        where: list[str] = []
        params: list[Any] = []

        if query.no_list:
            where.append("t.user_id = ? AND t.list_id IS NULL")
            params.append(query.user_id)
        elif query.list_id is not None:
            where.append("t.list_id = ?")
            params.append(query.list_id)
        elif query.visible_list_ids:
            marks = ",".join("?" for _ in query.visible_list_ids)
            where.append(f"(t.user_id = ? OR t.list_id IN ({marks}))")
            params.append(query.user_id)
            params.extend(query.visible_list_ids)
        else:
            where.append("t.user_id = ?")
            params.append(query.user_id)

        if query.status:
            where.append("t.status = ?")
            params.append(query.status)
        if query.priority:
            where.append("t.priority = ?")
            params.append(query.priority)
        if query.tags:
            marks = ",".join("?" for _ in query.tags)
            where.append(f"EXISTS (SELECT 1 FROM json_each(t.tags_json) WHERE json_each.value IN ({marks}))")
            params.extend(query.tags)
        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            where.append("(t.title LIKE ? ESCAPE '\\' OR IFNULL(t.description, '') LIKE ? ESCAPE '\\')")
            params.extend([pattern, pattern])
        if query.due_from is not None:
            where.append("t.due_date >= ?")
            params.append(to_iso(query.due_from))
        if query.due_to is not None:
            where.append("t.due_date < ?")
            params.append(to_iso(query.due_to))

        column = _SORT_COLUMNS.get(query.sort_by, _SORT_COLUMNS["order"])
        direction = "DESC" if query.descending else "ASC"
        rows = await self._db.fetchall(
            f"""
            SELECT t.*
            FROM tasks t
            WHERE {" AND ".join(where)}
            ORDER BY {column} {direction}, t.created_at ASC;
            """,
            tuple(params),
        )
        return [self._row_to_task(r) for r in rows]

    async def max_order(self, user_id: str) -> Optional[int]:
        return await self._db.fetchval("SELECT MAX(sort_order) FROM tasks WHERE user_id = ?;", (user_id,))

    async def count_open_in_list(self, list_id: str) -> int:
        n = await self._db.fetchval(
            "SELECT COUNT(*) FROM tasks WHERE list_id = ? AND status != ?;",
            (list_id, TASK_STATUS_DONE),
        )
        return int(n or 0)

    async def move_list(self, from_list_id: str, to_list_id: Optional[str], now: datetime) -> int:
        now_iso = to_iso(now)
        return await self._db.execute(
            """
            UPDATE tasks
            SET list_id = ?,
                sync_version = sync_version + 1,
                last_modified = ?,
                updated_at = ?
            WHERE list_id = ?;
            """,
            (to_list_id, now_iso, now_iso, from_list_id),
        )

    async def with_reminder_between(self, start: datetime, end: datetime) -> list[Task]:
        rows = await self._db.fetchall(
            """
            SELECT *
            FROM tasks
            WHERE reminder_date IS NOT NULL
              AND reminder_date >= ? AND reminder_date <= ?
              AND status != ?
            ORDER BY reminder_date ASC;
            """,
            (to_iso(start), to_iso(end), TASK_STATUS_DONE),
        )
        return [self._row_to_task(r) for r in rows]

    async def due_between(self, start: datetime, end: datetime) -> list[Task]:
        rows = await self._db.fetchall(
            """
            SELECT *
            FROM tasks
            WHERE due_date IS NOT NULL
              AND due_date >= ? AND due_date < ?
              AND status != ?
            ORDER BY due_date ASC;
            """,
            (to_iso(start), to_iso(end), TASK_STATUS_DONE),
        )
        return [self._row_to_task(r) for r in rows]

    async def overdue(self, now: datetime) -> list[Task]:
        rows = await self._db.fetchall(
            """
            SELECT *
            FROM tasks
            WHERE due_date IS NOT NULL AND due_date < ? AND status != ?
            ORDER BY due_date ASC;
            """,
            (to_iso(now), TASK_STATUS_DONE),
        )
        return [self._row_to_task(r) for r in rows]

    async def stats(self, user_id: str, now: datetime) -> TaskStats:
        row = await self._db.fetchone(
            """
            SELECT
              COUNT(*) AS total,
              SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS completed,
              SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS in_progress,
              SUM(CASE WHEN status != ? AND due_date IS NOT NULL AND due_date < ? THEN 1 ELSE 0 END) AS overdue
            FROM tasks
            WHERE user_id = ?;
            """,
            (TASK_STATUS_DONE, TASK_STATUS_IN_PROGRESS, TASK_STATUS_DONE, to_iso(now), user_id),
        )
        prio_rows = await self._db.fetchall(
            """
            SELECT priority, COUNT(*) AS n
            FROM tasks
            WHERE user_id = ?
            GROUP BY priority
            ORDER BY priority;
            """,
            (user_id,),
        )
        list_rows = await self._db.fetchall(
            """
            SELECT t.list_id AS list_id, l.name AS list_name, COUNT(*) AS n
            FROM tasks t
            LEFT JOIN lists l ON l.id = t.list_id
            WHERE t.user_id = ? AND t.status != ?
            GROUP BY t.list_id, l.name
            ORDER BY n DESC;
            """,
            (user_id, TASK_STATUS_DONE),
        )
        return TaskStats(
            total=int(row["total"] or 0),
            completed=int(row["completed"] or 0),
            in_progress=int(row["in_progress"] or 0),
            overdue=int(row["overdue"] or 0),
            by_priority=tuple((r["priority"], int(r["n"])) for r in prio_rows),
            by_list=tuple((r["list_id"], r["list_name"], int(r["n"])) for r in list_rows),
        )

    async def delete_for_user(self, user_id: str) -> int:
        return await self._db.execute("DELETE FROM tasks WHERE user_id = ?;", (user_id,))

    def _row_to_task(self, row) -> Task:
        rec_raw = json.loads(row["recurrence_json"]) if row["recurrence_json"] else None
        recurrence = None
        if rec_raw:
            recurrence = Recurrence(
                frequency=rec_raw["frequency"],
                interval=int(rec_raw.get("interval") or 1),
                end_date=from_iso_opt(rec_raw.get("endDate")),
            )
        return Task(
            id=row["id"],
            user_id=row["user_id"],
            list_id=row["list_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            tags=tuple(json.loads(row["tags_json"] or "[]")),
            subtasks=tuple(
                Subtask(id=s["id"], title=s["title"], done=bool(s.get("done", False)))
                for s in json.loads(row["subtasks_json"] or "[]")
            ),
            due_date=from_iso_opt(row["due_date"]),
            reminder_date=from_iso_opt(row["reminder_date"]),
            recurrence=recurrence,
            order=int(row["sort_order"]),
            completed_at=from_iso_opt(row["completed_at"]),
            sync_version=int(row["sync_version"]),
            last_modified=from_iso(row["last_modified"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
