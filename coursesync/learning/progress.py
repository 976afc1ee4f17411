"""
Lesson completions and the course progress facade.

Why:
    The learner dashboard needs enrollments and lesson completions together:
    percentage per course, completed lesson counts and summary statistics.
    `CourseProgress` bundles both resources behind one object; the numbers are
    pure views over the caches and never trigger a fetch.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Tuple

from coursesync.identity_access.session_gate import SessionGate
from coursesync.sync import views
from coursesync.sync.outcomes import Notifier, Outcome
from coursesync.sync.ports import RemoteStoreProtocol
from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES, ResourceSync

from .enrollments import Enrollments

LESSON_PROGRESS = ResourceSpec(
    name="lesson_progress",
    table="lesson_progress",
    key_column="course_id",
    secondary_column="lesson_id",
    created_column="completed_at",
)


class LessonProgress:
    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.sync = ResourceSync(LESSON_PROGRESS, store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self.sync.records

    @property
    def loading(self) -> bool:
        return self.sync.loading

    async def mark_complete(self, course_id: str, lesson_id: str) -> Outcome:
        return await self.sync.create(course_id, lesson_id)

    async def mark_incomplete(self, course_id: str, lesson_id: str) -> Outcome:
        return await self.sync.remove(course_id, lesson_id)

    def is_completed(self, course_id: str, lesson_id: str) -> bool:
        return self.sync.is_member(course_id, lesson_id)

    def completed_count(self, course_id: Optional[str] = None) -> int:
        return self.sync.count(course_id)

    def percentage(self, course_id: str, total_lessons: int) -> int:
        return self.sync.percentage(course_id, total_lessons)

    async def refetch(self) -> None:
        await self.sync.refetch()


@dataclass(frozen=True)
class LearningSummary:
    in_progress: int
    completed: int
    total: int
    lessons_completed: int


class CourseProgress:
    """Enrollments plus lesson completions for the signed-in learner."""

    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.enrollments = Enrollments(store, gate, notifier=notifier, fetch_retries=fetch_retries)
        self.lessons = LessonProgress(store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def loading(self) -> bool:
        return self.enrollments.loading or self.lessons.loading

    async def enroll(self, course_id: str) -> Outcome:
        return await self.enrollments.enroll(course_id)

    async def mark_lesson_complete(self, course_id: str, lesson_id: str) -> Outcome:
        return await self.lessons.mark_complete(course_id, lesson_id)

    def is_enrolled(self, course_id: str) -> bool:
        return self.enrollments.is_enrolled(course_id)

    def is_lesson_completed(self, course_id: str, lesson_id: str) -> bool:
        return self.lessons.is_completed(course_id, lesson_id)

    def completed_lessons(self, course_id: str) -> int:
        return self.lessons.completed_count(course_id)

    def course_percentage(self, course_id: str, total_lessons: int) -> int:
        return views.progress_percentage(self.completed_lessons(course_id), total_lessons)

    def summary(self) -> LearningSummary:
        return LearningSummary(
            in_progress=len(self.enrollments.in_progress()),
            completed=len(self.enrollments.completed()),
            total=len(self.enrollments.records),
            lessons_completed=self.lessons.completed_count(),
        )

    async def refetch(self) -> None:
        await asyncio.gather(self.enrollments.refetch(), self.lessons.refetch())

    async def wait_idle(self) -> None:
        await asyncio.gather(self.enrollments.sync.wait_idle(), self.lessons.sync.wait_idle())

    def close(self) -> None:
        self.enrollments.sync.close()
        self.lessons.sync.close()


__all__ = ["LESSON_PROGRESS", "LessonProgress", "LearningSummary", "CourseProgress"]
