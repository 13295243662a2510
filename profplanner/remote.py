"""
Remote storage over a PostgREST-style REST API (e.g. a Supabase project).

Expected tables (snake_case columns):

    lessons(id text primary key, name text, code text, institute_id text null,
            date date, start_time text, end_time text, modality text,
            completed boolean, is_paid boolean, topics text, notes text)
    institutes(id text primary key, name text, color text,
               default_rate numeric null, rate_type text)

start_time/end_time may also be SQL `time` columns: the 'HH:MM:SS' values they
return are read back as 'HH:MM'.

Saving works like the local store: the whole collection is written.
Rows are upserted first, then rows whose id is no longer in the collection are deleted.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import requests

from profplanner.errors import StoreError
from profplanner.model import Institute, Lesson

logger = logging.getLogger(__name__)

LESSONS_TABLE = "lessons"
INSTITUTES_TABLE = "institutes"


def lesson_to_row(lesson: Lesson) -> dict[str, Any]:
    return {
        "id": lesson.id,
        "name": lesson.name,
        "code": lesson.code,
        "institute_id": lesson.institute_id,
        "date": lesson.date,
        "start_time": lesson.start_time,
        "end_time": lesson.end_time,
        "modality": lesson.modality.value,
        "completed": lesson.completed,
        "is_paid": lesson.is_paid,
        "topics": lesson.topics,
        "notes": lesson.notes,
    }


def lesson_from_row(row: dict[str, Any]) -> Lesson:
    return Lesson.from_dict(
        {
            "id": row.get("id"),
            "name": row.get("name"),
            "code": row.get("code"),
            "instituteId": row.get("institute_id"),
            "date": row.get("date"),
            "startTime": row.get("start_time"),
            "endTime": row.get("end_time"),
            "modality": row.get("modality"),
            "completed": row.get("completed"),
            "isPaid": row.get("is_paid"),
            "topics": row.get("topics"),
            "notes": row.get("notes"),
        }
    )


def institute_to_row(institute: Institute) -> dict[str, Any]:
    return {
        "id": institute.id,
        "name": institute.name,
        "color": institute.color,
        "default_rate": institute.default_rate,
        "rate_type": institute.rate_type.value,
    }


def institute_from_row(row: dict[str, Any]) -> Institute:
    return Institute.from_dict(
        {
            "id": row.get("id"),
            "name": row.get("name"),
            "color": row.get("color"),
            "defaultRate": row.get("default_rate"),
            "rateType": row.get("rate_type"),
        }
    )


class RemoteStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _request(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self.session.request(method, self._url(table), timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        return resp

    def _fetch(self, table: str) -> list[dict[str, Any]]:
        resp = self._request("GET", table, params={"select": "*"})
        try:
            rows = resp.json()
        except ValueError as exc:
            raise StoreError(f"Invalid JSON from {table}: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected payload from {table}: {type(rows).__name__}")
        return rows

    def _replace_all(self, table: str, rows: list[dict[str, Any]]) -> None:
        if rows:
            self._request(
                "POST",
                table,
                json=rows,
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
            ids = ",".join(f'"{row["id"]}"' for row in rows)
            self._request("DELETE", table, params={"id": f"not.in.({ids})"})
        else:
            self._request("DELETE", table, params={"id": "not.is.null"})
        logger.info("Wrote %d rows to %s", len(rows), table)

    def load_lessons(self) -> list[Lesson]:
        out: list[Lesson] = []
        for row in self._fetch(LESSONS_TABLE):
            try:
                out.append(lesson_from_row(row))
            except (ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed lesson row: %s", exc)
        return out

    def save_lessons(self, lessons: Iterable[Lesson]) -> None:
        self._replace_all(LESSONS_TABLE, [lesson_to_row(l) for l in lessons])

    def load_institutes(self) -> list[Institute]:
        out: list[Institute] = []
        for row in self._fetch(INSTITUTES_TABLE):
            try:
                out.append(institute_from_row(row))
            except (ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed institute row: %s", exc)
        return out

    def save_institutes(self, institutes: Iterable[Institute]) -> None:
        self._replace_all(INSTITUTES_TABLE, [institute_to_row(i) for i in institutes])

    def __repr__(self) -> str:
        return f"RemoteStore({self.base_url!r})"
