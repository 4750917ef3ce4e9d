from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from lesson_engine.dependencies import get_db
from lesson_engine.main import app


@pytest.fixture(name="client")
def client_fixture(session):
    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def next_year(factory):
    """An academic year that starts next September, so no generated date is in the past."""
    start = date(date.today().year + 1, 9, 1)
    return factory.year(start=start, end=date(start.year + 1, 6, 30))


@pytest.fixture
def future_class(factory, next_year, teacher, classroom):
    return factory.tutoring_class(next_year, name="Future English", teacher=teacher, classroom=classroom,
                                  students=[factory.student()])


def _mondays(start, end):
    d = start + timedelta(days=(0 - start.weekday()) % 7)
    count = 0
    while d <= end:
        count += 1
        d += timedelta(days=7)
    return count


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_generate_lessons(client: AsyncClient, factory, next_year, future_class):
    factory.slot(future_class)
    september = (next_year.start_date, date(next_year.start_date.year, 9, 30))
    payload = {
        "classId": future_class.id,
        "from": september[0].isoformat(),
        "to": september[1].isoformat(),
        "generationMode": "Month",
    }

    response = await client.post("/api/lessons/generate", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["generatedCount"] == _mondays(*september)
    assert body["skippedConflictCount"] == 0
    assert body["slots"][0]["startTime"] == "10:00"
    assert body["academicContext"]["academicYearId"] == next_year.id

    again = (await client.post("/api/lessons/generate", json=payload)).json()
    assert again["generatedCount"] == 0
    assert again["skippedExistingCount"] == body["generatedCount"]


@pytest.mark.asyncio
async def test_generate_outside_year_is_422(client: AsyncClient, factory, future_class):
    factory.slot(future_class)
    response = await client.post("/api/lessons/generate", json={
        "classId": future_class.id, "from": "2001-01-01", "to": "2001-02-01",
    })
    assert response.status_code == 422
    assert response.json()["error"] == "scheduling_window_error"


@pytest.mark.asyncio
async def test_lesson_lifecycle_over_http(client: AsyncClient, english):
    created = await client.post("/api/lessons", json={
        "classId": english.id, "scheduledDate": "2025-09-08", "startTime": "10:00", "endTime": "11:00",
    })
    assert created.status_code == 201
    lesson = created.json()
    assert lesson["status"] == "Scheduled"
    assert lesson["generationSource"] == "manual"
    assert "conduct" in lesson["allowedActions"]

    conducted = await client.post(f"/api/lessons/{lesson['id']}/conduct", json={"notes": "Went well"})
    assert conducted.status_code == 200
    assert conducted.json()["status"] == "Conducted"
    assert conducted.json()["allowedActions"] == []

    again = await client.post(f"/api/lessons/{lesson['id']}/cancel", json={"reason": "Changed my mind"})
    assert again.status_code == 409
    body = again.json()
    assert body["error"] == "invalid_state_transition"
    assert body["currentStatus"] == "Conducted"
    assert body["lessonId"] == lesson["id"]


@pytest.mark.asyncio
async def test_cancel_and_make_up(client: AsyncClient, factory, english):
    lesson = factory.lesson(english, date(2025, 9, 8))

    short = await client.post(f"/api/lessons/{lesson.id}/cancel", json={"reason": "ill"})
    assert short.status_code == 422
    assert short.json()["error"] == "validation_error"

    cancelled = await client.post(f"/api/lessons/{lesson.id}/cancel", json={"reason": "Teacher is ill"})
    assert cancelled.json()["status"] == "Cancelled"
    assert cancelled.json()["allowedActions"] == ["create_makeup"]

    makeup = await client.post(f"/api/lessons/{lesson.id}/makeup", json={
        "newDate": "2025-09-12", "newStartTime": "15:00", "newEndTime": "16:00",
    })
    assert makeup.status_code == 201
    assert makeup.json()["status"] == "Make Up"
    assert makeup.json()["originalLessonId"] == lesson.id

    original = (await client.get(f"/api/lessons/{lesson.id}")).json()
    assert original["makeupLessonId"] == makeup.json()["id"]


@pytest.mark.asyncio
async def test_reschedule_conflict_is_409(client: AsyncClient, factory, year, teacher, english):
    other = factory.tutoring_class(year, teacher=teacher)
    busy = factory.lesson(other, date(2025, 9, 10))
    lesson = factory.lesson(english, date(2025, 9, 8))

    response = await client.post(f"/api/lessons/{lesson.id}/reschedule", json={
        "newDate": "2025-09-10", "newStartTime": "10:30", "newEndTime": "11:30",
    })

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "conflict"
    assert body["conflicts"][0]["conflictType"] == "Teacher"
    assert body["conflicts"][0]["conflictingLessonId"] == busy.id


@pytest.mark.asyncio
async def test_conflict_precheck(client: AsyncClient, factory, year, teacher, english):
    other = factory.tutoring_class(year, teacher=teacher)
    factory.lesson(other, date(2025, 9, 8))

    response = await client.post("/api/lessons/conflicts", json={
        "classId": english.id, "scheduledDate": "2025-09-08", "startTime": "10:15", "endTime": "11:15",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["hasConflicts"] is True
    assert body["conflicts"][0]["conflictType"] == "Teacher"
    assert body["suggestions"][0]["scheduledDate"] == "2025-09-09"


@pytest.mark.asyncio
async def test_malformed_time_is_rejected(client: AsyncClient, english):
    response = await client.post(f"/api/classes/{english.id}/schedule-slots", json={
        "dayOfWeek": 0, "startTime": "25:00", "endTime": "26:00",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_schedule_slots(client: AsyncClient, english):
    created = await client.post(f"/api/classes/{english.id}/schedule-slots", json={
        "dayOfWeek": 0, "startTime": "10:00", "endTime": "11:00",
    })
    assert created.status_code == 201
    slot = created.json()
    assert slot["isGlobal"] is True
    assert slot["startTime"] == "10:00"

    overlapping = await client.post(f"/api/classes/{english.id}/schedule-slots", json={
        "dayOfWeek": 0, "startTime": "10:30", "endTime": "11:30",
    })
    assert overlapping.status_code == 422

    preview = (await client.get(f"/api/schedule-slots/{slot['id']}/preview-replacement")).json()
    assert preview["futureLessonCount"] == 0

    replaced = await client.put(f"/api/schedule-slots/{slot['id']}", json={
        "dayOfWeek": 2, "startTime": "16:00", "endTime": "17:00",
    })
    assert replaced.status_code == 200
    assert replaced.json()["oldSlot"]["isObsolete"] is True
    assert replaced.json()["newSlot"]["dayOfWeek"] == 2

    active = (await client.get(f"/api/classes/{english.id}/schedule-slots")).json()
    archived = (await client.get(f"/api/classes/{english.id}/schedule-slots/archived")).json()
    assert [s["dayOfWeek"] for s in active] == [2]
    assert [s["id"] for s in archived] == [slot["id"]]


@pytest.mark.asyncio
async def test_disable_and_enable_class(client: AsyncClient, factory, future_class):
    factory.slot(future_class)

    disabled = await client.post(f"/api/classes/{future_class.id}/disable")
    assert disabled.status_code == 200
    body = disabled.json()
    assert body["className"] == "Future English"
    assert body["scheduleSlotsMarkedObsolete"] == 1
    assert body["enrollmentsMarkedInactive"] == 1

    enabled = await client.post(f"/api/classes/{future_class.id}/enable")
    assert enabled.status_code == 200
    assert enabled.json()["classId"] == future_class.id


@pytest.mark.asyncio
async def test_class_lessons_and_summary(client: AsyncClient, factory, english):
    factory.lesson(english, date(2025, 9, 8))
    factory.lesson(english, date(2025, 9, 15))

    lessons = (await client.get(f"/api/classes/{english.id}/lessons", params={"status": "Scheduled"})).json()
    summary = (await client.get(f"/api/classes/{english.id}/lessons/summary")).json()

    assert [l["scheduledDate"] for l in lessons] == ["2025-09-08", "2025-09-15"]
    assert summary["totalLessons"] == 2
    assert summary["scheduledLessons"] == 2


@pytest.mark.asyncio
async def test_calendar_endpoints(client: AsyncClient, year):
    dates = await client.get(f"/api/academic-years/{year.id}/non-teaching-dates",
                             params={"from": "2025-12-01", "to": "2025-12-31"})
    assert dates.status_code == 200
    assert len(dates.json()["dates"]) == 10
    assert dates.json()["days"][0]["reason"] == "Winter break"

    counts = (await client.get(f"/api/academic-years/{year.id}/teaching-days",
                               params={"from": "2025-12-01", "to": "2025-12-31"})).json()
    assert (counts["teachingDays"], counts["totalDays"]) == (21, 31)

    semester = (await client.get(f"/api/academic-years/{year.id}/semester-for",
                                 params={"date": "2026-03-02"})).json()
    assert semester["name"] == "Spring"


@pytest.mark.asyncio
async def test_unknown_lesson_is_404(client: AsyncClient):
    response = await client.get("/api/lessons/12345")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
