import uuid

import pytest
from sqlalchemy import select

from academics.api.v1.promotions import service
from academics.api.v1.promotions.schemas import BatchPromote
from academics.core.enums import EnrollmentStatus
from academics.core.exceptions import InvalidPeriod, InvalidPromotion
from academics.core.models import AuditLog, Enrollment


def _ids(school) -> dict:
    # Rollbacks inside the batch expire fixture objects, so tests work with plain ids.
    return {
        "from_stream": school.streams["1E"].id,
        "to_stream": school.streams["2E"].id,
        "from_year": school.years["2025"].id,
        "to_year": school.years["2026"].id,
        "to_term": school.terms["2026-T1"].id,
        "wrong_term": school.terms["2025-T2"].id,
    }


def _batch(ids: dict, student_ids, actor_id=None, **overrides) -> BatchPromote:
    values = dict(
        student_ids=student_ids,
        from_stream_id=ids["from_stream"],
        to_stream_id=ids["to_stream"],
        from_academic_year_id=ids["from_year"],
        to_academic_year_id=ids["to_year"],
        to_term_id=ids["to_term"],
        actor_id=actor_id,
    )
    values.update(overrides)
    return BatchPromote(**values)


async def _active_rows(db, student_id, academic_year_id):
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == academic_year_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
    )
    return list(result.scalars().unique().all())


@pytest.fixture()
async def form_one(school):
    """Alice and Carol sit in Form 1 East for 2025; Brian was never enrolled."""
    alice = await school.student("ADM001", "Alice", "Kamau")
    brian = await school.student("ADM002", "Brian", "Otieno")
    carol = await school.student("ADM003", "Carol", "Njeri")
    await school.enroll(alice, "1E", term="2025-T2")
    await school.enroll(carol, "1E", term="2025-T2")
    return {"alice": alice.id, "brian": brian.id, "carol": carol.id}


@pytest.mark.asyncio
async def test_partial_failure_commits_the_successful_students(school, form_one) -> None:
    ids = _ids(school)
    order = [form_one["alice"], form_one["brian"], form_one["carol"]]

    result = await service.promote_batch(school.db, _batch(ids, order))

    assert result.success is False
    assert (result.attempted, result.promoted, result.failed) == (3, 2, 1)
    assert result.promoted_ids == [form_one["alice"], form_one["carol"]]
    failure = result.failure_details[0]
    assert failure.student_id == form_one["brian"]
    assert failure.admission_number == "ADM002"
    assert failure.reason == service.NOT_ENROLLED_REASON
    assert result.errors == ["ADM002 Brian Otieno: not currently enrolled in source class"]

    # Throw away anything pending; the promotions must already be durable.
    await school.db.rollback()
    for student_id in (form_one["alice"], form_one["carol"]):
        rows = await _active_rows(school.db, student_id, ids["to_year"])
        assert [(r.stream_id, r.term_id) for r in rows] == [(ids["to_stream"], ids["to_term"])]
    assert await _active_rows(school.db, form_one["brian"], ids["to_year"]) == []


@pytest.mark.asyncio
async def test_source_row_is_retired_not_deleted(school, form_one) -> None:
    ids = _ids(school)
    await service.promote_batch(school.db, _batch(ids, [form_one["alice"]]))

    result = await school.db.execute(
        select(Enrollment)
        .where(Enrollment.student_id == form_one["alice"], Enrollment.academic_year_id == ids["from_year"])
    )
    rows = list(result.scalars().unique().all())
    assert [r.status for r in rows] == [EnrollmentStatus.PROMOTED.value]


@pytest.mark.asyncio
async def test_second_run_fails_already_promoted_students(school, form_one) -> None:
    ids = _ids(school)
    first = await service.promote_batch(school.db, _batch(ids, [form_one["alice"]]))
    assert first.promoted == 1

    second = await service.promote_batch(school.db, _batch(ids, [form_one["alice"]]))
    assert second.promoted == 0
    assert [f.reason for f in second.failure_details] == [service.NOT_ENROLLED_REASON]
    assert len(await _active_rows(school.db, form_one["alice"], ids["to_year"])) == 1


@pytest.mark.asyncio
async def test_promotion_writes_audit_entry_with_actor(school, form_one) -> None:
    ids = _ids(school)
    actor = uuid.uuid4()
    await service.promote_batch(school.db, _batch(ids, [form_one["alice"], form_one["carol"]], actor_id=actor))

    result = await school.db.execute(select(AuditLog).order_by(AuditLog.timestamp))
    entries = list(result.scalars().all())
    assert len(entries) == 2
    assert all(e.performed_by == actor for e in entries)
    assert all((e.action, e.from_status, e.to_status) == ("PROMOTE", "ACTIVE", "PROMOTED") for e in entries)


@pytest.mark.asyncio
async def test_student_already_in_destination_fails(school) -> None:
    dina = await school.student("ADM004", "Dina", "Wekesa")
    await school.enroll(dina, "1E", term="2025-T2")
    await school.enroll(dina, "2E", year="2026", term="2026-T1")
    ids = _ids(school)
    dina_id = dina.id

    result = await service.promote_batch(school.db, _batch(ids, [dina_id]))
    assert result.failure_details[0].reason == service.ALREADY_ENROLLED_REASON
    # Nothing was written for Dina: the 2025 row is still ACTIVE.
    assert len(await _active_rows(school.db, dina_id, ids["from_year"])) == 1
    assert len(await _active_rows(school.db, dina_id, ids["to_year"])) == 1


@pytest.mark.asyncio
async def test_unknown_student_is_reported_not_raised(school, form_one) -> None:
    ids = _ids(school)
    ghost = uuid.uuid4()
    result = await service.promote_batch(school.db, _batch(ids, [ghost, form_one["alice"]]))
    assert result.promoted_ids == [form_one["alice"]]
    assert result.failure_details[0].reason == service.STUDENT_NOT_FOUND_REASON
    assert result.errors == [f"{ghost}: student not found"]


@pytest.mark.asyncio
async def test_term_outside_destination_year_aborts_batch(school, form_one) -> None:
    ids = _ids(school)
    with pytest.raises(InvalidPeriod):
        await service.promote_batch(school.db, _batch(ids, [form_one["alice"]], to_term_id=ids["wrong_term"]))
    assert len(await _active_rows(school.db, form_one["alice"], ids["from_year"])) == 1


@pytest.mark.asyncio
async def test_repeated_student_aborts_batch(school, form_one) -> None:
    ids = _ids(school)
    with pytest.raises(InvalidPromotion):
        await service.promote_batch(school.db, _batch(ids, [form_one["alice"], form_one["alice"]]))


@pytest.mark.asyncio
async def test_promote_student_matches_batch_of_one(school, form_one) -> None:
    ids = _ids(school)
    result = await service.promote_student(
        school.db,
        form_one["carol"],
        from_stream_id=ids["from_stream"],
        to_stream_id=ids["to_stream"],
        from_academic_year_id=ids["from_year"],
        to_academic_year_id=ids["to_year"],
        to_term_id=ids["to_term"],
    )
    assert result.success is True
    assert result.promoted_ids == [form_one["carol"]]


@pytest.mark.asyncio
async def test_candidates_and_next_stream(school, form_one) -> None:
    candidates = await service.promotion_candidates(school.db, school.streams["1E"].id, school.years["2025"].id)
    assert [c.admission_number for c in candidates] == ["ADM001", "ADM003"]

    nxt = await service.next_stream(school.db, school.streams["1E"].id)
    assert nxt is not None and nxt.name == "Form 2 East"
    assert await service.next_stream(school.db, school.streams["2E"].id) is None


@pytest.mark.asyncio
async def test_promotion_history_lists_audit_trail(school, form_one) -> None:
    ids = _ids(school)
    actor = uuid.uuid4()
    await service.promote_batch(school.db, _batch(ids, [form_one["alice"]], actor_id=actor))

    history = await service.promotion_history(school.db, form_one["alice"])
    assert [(h.action, h.performed_by) for h in history] == [("PROMOTE", actor)]
    assert await service.promotion_history(school.db, form_one["carol"]) == []


@pytest.mark.asyncio
async def test_database_error_fails_one_student_and_keeps_the_rest(school, monkeypatch) -> None:
    alice = await school.student("ADM001", "Alice", "Kamau")
    carol = await school.student("ADM003", "Carol", "Njeri")
    await school.enroll(alice, "1E", term="2025-T2")
    broken = await school.enroll(carol, "1E", term="2025-T2")
    ids = _ids(school)
    alice_id, carol_id, broken_id = alice.id, carol.id, broken.id

    real_log_audit = service.log_audit

    async def log_audit_without_action(db, entity_type, entity_id, action, **kwargs):
        # audit_logs.action is NOT NULL, so Carol's commit raises IntegrityError.
        if entity_id == broken_id:
            action = None
        await real_log_audit(db, entity_type, entity_id, action, **kwargs)

    monkeypatch.setattr(service, "log_audit", log_audit_without_action)

    result = await service.promote_batch(school.db, _batch(ids, [carol_id, alice_id]))

    assert result.promoted_ids == [alice_id]
    failure = result.failure_details[0]
    assert failure.student_id == carol_id
    assert failure.admission_number == "ADM003"
    assert failure.reason == "database error: IntegrityError"

    await school.db.rollback()
    assert len(await _active_rows(school.db, alice_id, ids["to_year"])) == 1
    assert await _active_rows(school.db, carol_id, ids["to_year"]) == []
    # Carol's source row was rolled back to ACTIVE with the failed insert.
    assert len(await _active_rows(school.db, carol_id, ids["from_year"])) == 1
