import pytest

from academics.api.v1.merit_lists import service
from academics.api.v1.merit_lists.schemas import MostImprovedQuery


@pytest.mark.asyncio
async def test_subject_merit_list_breaks_ties_by_admission_number(school) -> None:
    later = await school.student("ADM003", "Carol", "Njeri")
    earlier = await school.student("ADM001", "Alice", "Kamau")
    top = await school.student("ADM002", "Brian", "Otieno")
    outsider = await school.student("ADM009", "Zed", "Mwangi")
    for student in (later, earlier, top):
        await school.enroll(student, "1E", term="2025-T2")
    await school.enroll(outsider, "1W", term="2025-T2")

    await school.result("t2", later, "math", 75)
    await school.result("t2", earlier, "math", 75)
    await school.result("t2", top, "math", 90)
    await school.result("t2", outsider, "math", 99)

    args = (school.db, school.exams["t2"].id, school.subjects["math"].id, school.streams["1E"].id)
    merit = await service.subject_merit_list(*args)
    assert merit.total_students == 3
    assert [(e.position, e.admission_number, e.grade) for e in merit.entries] == [
        (1, "ADM002", "A"),
        (2, "ADM001", "B"),
        (3, "ADM003", "B"),
    ]
    assert merit.entries[0].student_name == "Brian Otieno"

    rerun = await service.subject_merit_list(*args)
    assert [e.student_id for e in rerun.entries] == [e.student_id for e in merit.entries]


@pytest.mark.asyncio
async def test_subject_merit_percentage_uses_exam_max_score(school) -> None:
    cat = await school.exam("cat", "2025-T2", max_score=50)
    jane = await school.student("ADM001", "Jane", "Wanjiru")
    await school.enroll(jane, "1E", term="2025-T2")
    await school.result("cat", jane, "math", 40)

    merit = await service.subject_merit_list(
        school.db, cat.id, school.subjects["math"].id, school.streams["1E"].id
    )
    assert merit.entries[0].percentage == pytest.approx(80)


@pytest.mark.asyncio
async def test_class_merit_list_shares_position_on_equal_average(school) -> None:
    x = await school.student("ADM001", "Xavier", "Kiprop")
    y = await school.student("ADM002", "Yvonne", "Achieng")
    z = await school.student("ADM003", "Zawadi", "Mutua")
    for student in (x, y, z):
        await school.enroll(student, "1E", term="2025-T2")
    await school.result("t2", x, "math", 80)
    await school.result("t2", x, "eng", 60)
    await school.result("t2", y, "math", 70)
    await school.result("t2", y, "eng", 70)
    await school.result("t2", z, "math", 90)
    await school.result("t2", z, "eng", 90)

    ranking = await service.class_merit_list(school.db, school.exams["t2"].id, school.streams["1E"].id)
    assert [(r.position, r.admission_number) for r in ranking.rankings] == [
        (1, "ADM003"),
        (2, "ADM001"),
        (2, "ADM002"),
    ]
    first, tied_a, tied_b = ranking.rankings
    assert first.grade == "A"
    assert first.tied_with == []
    assert tied_a.tied_with == [y.id]
    assert tied_b.tied_with == [x.id]
    assert tied_a.total_marks == 140
    assert tied_a.grade == "B"


@pytest.fixture()
async def two_terms(school):
    """Term 1 vs term 2 of 2025 for a handful of Form 1 students."""
    p = await school.student("ADM001", "Peter", "Kariuki")
    q = await school.student("ADM002", "Queen", "Atieno")
    r = await school.student("ADM003", "Rose", "Chebet")
    s = await school.student("ADM004", "Samuel", "Ouma")
    for student in (p, q, r):
        await school.enroll(student, "1E", term="2025-T1")
        await school.enroll(student, "1E", term="2025-T2")
    await school.enroll(s, "1E", term="2025-T1")
    await school.enroll(s, "1W", term="2025-T2")

    await school.result("t1", p, "math", 50)
    await school.result("t1", p, "eng", 60)
    await school.result("t2", p, "math", 70)
    await school.result("t2", p, "eng", 70)

    # English only sat in term 2, so only Mathematics is compared.
    await school.result("t1", q, "math", 60)
    await school.result("t2", q, "math", 62)
    await school.result("t2", q, "eng", 90)

    # No term 1 results at all.
    await school.result("t2", r, "math", 80)

    await school.result("t1", s, "math", 30)
    await school.result("t2", s, "math", 90)
    return {"p": p, "q": q, "r": r, "s": s}


def _query(school, **overrides) -> MostImprovedQuery:
    values = dict(
        current_academic_year_id=school.years["2025"].id,
        current_term_id=school.terms["2025-T2"].id,
        comparison_academic_year_id=school.years["2025"].id,
        comparison_term_id=school.terms["2025-T1"].id,
    )
    values.update(overrides)
    return MostImprovedQuery(**values)


@pytest.mark.asyncio
async def test_most_improved_within_stream(school, two_terms) -> None:
    improved = await service.most_improved(school.db, _query(school, stream_id=school.streams["1E"].id))
    assert [s.admission_number for s in improved] == ["ADM001"]
    peter = improved[0]
    assert peter.comparison_average == pytest.approx(55)
    assert peter.current_average == pytest.approx(70)
    assert peter.improvement_points == pytest.approx(15)
    assert peter.improvement_percentage == pytest.approx(15 / 55 * 100)
    assert peter.subjects_compared == 2
    assert peter.subjects_improved == 2
    assert peter.subjects_declined == 0
    assert peter.grade_change == "C → B"


@pytest.mark.asyncio
async def test_most_improved_across_streams_orders_by_gain(school, two_terms) -> None:
    improved = await service.most_improved(school.db, _query(school))
    assert [(s.admission_number, s.improvement_points) for s in improved] == [
        ("ADM004", pytest.approx(60)),
        ("ADM001", pytest.approx(15)),
    ]


@pytest.mark.asyncio
async def test_most_improved_respects_minimum_improvement(school, two_terms) -> None:
    improved = await service.most_improved(school.db, _query(school, minimum_improvement=20))
    assert [s.admission_number for s in improved] == ["ADM004"]


@pytest.mark.asyncio
async def test_student_comparison_uses_common_subjects(school, two_terms) -> None:
    comparison = await service.student_comparison(
        school.db,
        two_terms["q"].id,
        school.years["2025"].id,
        school.terms["2025-T2"].id,
        school.years["2025"].id,
        school.terms["2025-T1"].id,
    )
    assert [s.subject_name for s in comparison.subjects] == ["Mathematics"]
    assert comparison.comparison_average == pytest.approx(60)
    assert comparison.current_average == pytest.approx(62)
    assert comparison.improvement_points == pytest.approx(2)


@pytest.mark.asyncio
async def test_student_comparison_without_earlier_results(school, two_terms) -> None:
    comparison = await service.student_comparison(
        school.db,
        two_terms["r"].id,
        school.years["2025"].id,
        school.terms["2025-T2"].id,
        school.years["2025"].id,
        school.terms["2025-T1"].id,
    )
    assert comparison.subjects == []
    assert comparison.improvement_points is None


@pytest.mark.asyncio
async def test_subject_merit_grades_use_percentage_of_exam_max_score(school) -> None:
    half = await school.exam("half", "2025-T2", max_score=50)
    jane = await school.student("ADM001", "Jane", "Wanjiru")
    brian = await school.student("ADM002", "Brian", "Otieno")
    await school.enroll(jane, "1E", term="2025-T2")
    await school.enroll(brian, "1E", term="2025-T2")
    await school.result("half", jane, "math", 45)
    await school.result("half", brian, "math", 25)

    merit = await service.subject_merit_list(school.db, half.id, school.subjects["math"].id, school.streams["1E"].id)
    assert [(e.admission_number, e.percentage, e.grade) for e in merit.entries] == [
        ("ADM001", pytest.approx(90), "A"),
        ("ADM002", pytest.approx(50), "C"),
    ]

    ranking = await service.class_merit_list(school.db, half.id, school.streams["1E"].id)
    assert [r.grade for r in ranking.rankings] == ["A", "C"]


@pytest.mark.asyncio
async def test_subject_merit_list_grades_fractional_mark(school) -> None:
    jane = await school.student("ADM001", "Jane", "Wanjiru")
    await school.enroll(jane, "1E", term="2025-T2")
    await school.result("t2", jane, "math", 79.5)

    merit = await service.subject_merit_list(
        school.db, school.exams["t2"].id, school.subjects["math"].id, school.streams["1E"].id
    )
    assert [(e.score, e.grade) for e in merit.entries] == [(79.5, "A")]


@pytest.mark.asyncio
async def test_class_merit_list_ties_averages_equal_to_two_decimals(school) -> None:
    x = await school.student("ADM001", "Xavier", "Kiprop")
    y = await school.student("ADM002", "Yvonne", "Achieng")
    for student in (x, y):
        await school.enroll(student, "1E", term="2025-T2")
    # 0.1 + 0.2 and 0.15 + 0.15 differ in binary floating point.
    await school.result("t2", x, "math", 0.1)
    await school.result("t2", x, "eng", 0.2)
    await school.result("t2", y, "math", 0.15)
    await school.result("t2", y, "eng", 0.15)

    ranking = await service.class_merit_list(school.db, school.exams["t2"].id, school.streams["1E"].id)
    assert [(r.position, r.admission_number) for r in ranking.rankings] == [(1, "ADM001"), (1, "ADM002")]
    assert ranking.rankings[1].tied_with == [x.id]


@pytest.mark.asyncio
async def test_performance_trends_newest_term_first(school) -> None:
    await school.exam("cat", "2025-T2", max_score=50)
    jane = await school.student("ADM001", "Jane", "Wanjiru")
    await school.result("t1", jane, "math", 60)
    await school.result("t1", jane, "eng", 50)
    await school.result("t2", jane, "math", 85)
    await school.result("cat", jane, "math", 40)

    trends = await service.performance_trends(school.db, jane.id, school.years["2025"].id)
    assert [(t.term_number, t.average_percentage, t.result_count) for t in trends] == [
        (2, pytest.approx(82.5), 2),
        (1, pytest.approx(55), 2),
    ]
    assert (trends[0].lowest_percentage, trends[0].highest_percentage) == (pytest.approx(80), pytest.approx(85))

    latest = await service.performance_trends(school.db, jane.id, school.years["2025"].id, number_of_terms=1)
    assert [t.term_name for t in latest] == ["Term 2"]
    assert await service.performance_trends(school.db, jane.id, school.years["2026"].id) == []
