"""Read-through caching of GET /api/student/courses/{id}/progress.

1. First GET is a miss and populates the cache
2. Second GET is a hit, even if the store changed underneath
3. Any learning write for (user, course) invalidates the entry
4. Entries are per user
5. Invalidation runs only once the write's unit of work has committed
"""

from __future__ import annotations

import asyncio
from functools import partial

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from lms.models.enrollment import Enrollment
from lms.models.progress import LessonCompletion
from lms.models.user import User
from lms.repos.store import Store, store_scope
from lms.services.cache import cache_service, invalidate_progress, progress_cache_key
from tests.conftest import SeededCourse, auth, mint_token


def _hits() -> float:
    value = REGISTRY.get_sample_value("cache_operations_total", {"operation": "hit"})
    return value if value is not None else 0.0


def _progress_url(seeded: SeededCourse) -> str:
    return f"/api/student/courses/{seeded.course.id}/progress"


def test_cache_miss_then_hit(client: TestClient, seeded: SeededCourse) -> None:
    headers = auth(mint_token(seeded.student.id))

    first = client.get(_progress_url(seeded), headers=headers)
    assert first.status_code == 200
    assert progress_cache_key(seeded.student.id, seeded.course.id) in (
        cache_service._store  # type: ignore[attr-defined]
    )

    before = _hits()
    second = client.get(_progress_url(seeded), headers=headers)
    assert second.json() == first.json()
    assert _hits() - before == 1


def test_cached_snapshot_served_until_invalidated(
    client: TestClient, store: Store, seeded: SeededCourse
) -> None:
    headers = auth(mint_token(seeded.student.id))
    assert client.get(_progress_url(seeded), headers=headers).json()[
        "completedLessons"
    ] == 0

    # Written behind the API's back: the cache does not know.
    asyncio.run(
        store.lesson_progress.add_completion(
            LessonCompletion.new(
                lesson_id=seeded.lessons[0].id, user_id=seeded.student.id
            )
        )
    )
    stale = client.get(_progress_url(seeded), headers=headers).json()
    assert stale["completedLessons"] == 0

    # Any learning write through the API drops the entry.
    client.post(
        f"/api/student/lessons/{seeded.lessons[1].id}/video-progress",
        json={"lastWatchedSeconds": 10},
        headers=headers,
    )
    fresh = client.get(_progress_url(seeded), headers=headers).json()
    assert fresh["completedLessons"] == 1


def test_lesson_completion_invalidates(client: TestClient, seeded: SeededCourse) -> None:
    headers = auth(mint_token(seeded.student.id))
    client.get(_progress_url(seeded), headers=headers)

    client.post(f"/api/student/lessons/{seeded.lessons[0].id}/complete", headers=headers)

    body = client.get(_progress_url(seeded), headers=headers).json()
    assert body["completedLessons"] == 1
    assert body["status"] == "InProgress"


def test_quiz_attempt_invalidates(client: TestClient, seeded: SeededCourse) -> None:
    headers = auth(mint_token(seeded.student.id))
    client.get(_progress_url(seeded), headers=headers)

    client.post(
        f"/api/student/quizzes/{seeded.quiz.id}/attempt",
        json={"answers": []},
        headers=headers,
    )

    body = client.get(_progress_url(seeded), headers=headers).json()
    assert body["completedQuizzes"] == 1
    assert body["passedQuizzes"] == 0


def test_cache_entries_are_per_user(
    client: TestClient, store: Store, seeded: SeededCourse
) -> None:
    other = User.new(email="second@example.com", full_name="Second Student")

    async def enroll_other():
        await store.users.add(other)
        await store.enrollments.add(
            Enrollment.new(user_id=other.id, course_id=seeded.course.id)
        )

    asyncio.run(enroll_other())
    mine = auth(mint_token(seeded.student.id))
    theirs = auth(mint_token(other.id))

    client.post(f"/api/student/lessons/{seeded.lessons[0].id}/complete", headers=mine)
    client.get(_progress_url(seeded), headers=mine)

    body = client.get(_progress_url(seeded), headers=theirs).json()
    assert body["completedLessons"] == 0


def test_invalidation_runs_after_unit_of_work_commits(seeded: SeededCourse) -> None:
    key = progress_cache_key(seeded.student.id, seeded.course.id)

    async def scenario():
        await cache_service.set(key, "{}", 60)
        async with store_scope() as scope:
            scope.on_commit(
                partial(invalidate_progress, seeded.student.id, seeded.course.id)
            )
            during = await cache_service.get(key)
        return during, await cache_service.get(key)

    during, after = asyncio.run(scenario())
    assert during == "{}"
    assert after is None


def test_failed_unit_of_work_keeps_cache_entry(seeded: SeededCourse) -> None:
    key = progress_cache_key(seeded.student.id, seeded.course.id)

    async def scenario():
        await cache_service.set(key, "{}", 60)
        with pytest.raises(RuntimeError):
            async with store_scope() as scope:
                scope.on_commit(
                    partial(invalidate_progress, seeded.student.id, seeded.course.id)
                )
                raise RuntimeError("write failed")
        return await cache_service.get(key)

    assert asyncio.run(scenario()) == "{}"


def test_rejected_write_does_not_invalidate(
    client: TestClient, seeded: SeededCourse
) -> None:
    headers = auth(mint_token(seeded.student.id))
    lesson_url = f"/api/student/lessons/{seeded.lessons[0].id}/complete"
    client.post(lesson_url, headers=headers)
    client.get(_progress_url(seeded), headers=headers)

    before = _hits()
    assert client.post(lesson_url, headers=headers).status_code == 409
    client.get(_progress_url(seeded), headers=headers)
    assert _hits() - before == 1
