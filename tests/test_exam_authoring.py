from datetime import timedelta

import pytest

from conftest import END, NOW, START, FixedClock
from examportal.gateways import MemoryDocumentStore
from examportal.models import ExamDraft, QuestionDraft
from examportal.services import ExamAuthoringService, ExamValidationError, validate_exam

OPTIONS = {"A": "Stack", "B": "Queue", "C": "Heap", "D": "Tree"}


def draft(**overrides):
    fields = dict(
        title="Data Structures Midterm",
        subject_id="subject_ds",
        start_time=START,
        end_time=END,
        duration=30,
        questions=[
            QuestionDraft(text="LIFO structure?", options=dict(OPTIONS), correct_answer="A"),
            QuestionDraft(text="FIFO structure?", options=dict(OPTIONS), correct_answer="B"),
        ],
    )
    fields.update(overrides)
    return ExamDraft(**fields)


@pytest.fixture
def authoring_store():
    return MemoryDocumentStore({"subjects": {"subject_ds": {"name": "Data Structures", "code": "CS201"}}})


@pytest.fixture
def service(authoring_store):
    return ExamAuthoringService(authoring_store, default_terms="Default terms", clock=FixedClock())


@pytest.mark.parametrize("overrides,message", [
    ({"title": "  "}, "Please enter a title for the exam"),
    ({"subject_id": None}, "Please select a subject"),
    ({"end_time": None}, "Please set start and end times"),
    ({"end_time": START}, "End time must be after start time"),
    ({"end_time": START - timedelta(minutes=5)}, "End time must be after start time"),
    ({"duration": 0}, "Duration must be greater than 0"),
    ({"questions": []}, "Exam must have at least one question"),
])
def test_validation_messages(overrides, message):
    with pytest.raises(ExamValidationError, match=message):
        validate_exam(draft(**overrides))


def test_question_missing_an_option_is_rejected():
    options = dict(OPTIONS)
    del options["C"]
    questions = [
        QuestionDraft(text="LIFO structure?", options=dict(OPTIONS), correct_answer="A"),
        QuestionDraft(text="FIFO structure?", options=options, correct_answer="B"),
    ]
    with pytest.raises(ExamValidationError, match="Option C for question 2 is empty"):
        validate_exam(draft(questions=questions))


def test_question_without_text_or_answer_is_rejected():
    with pytest.raises(ExamValidationError, match="Question 1 is empty"):
        validate_exam(draft(questions=[QuestionDraft(text="", options=dict(OPTIONS))]))
    with pytest.raises(ExamValidationError, match="Select the correct answer for question 1"):
        validate_exam(draft(questions=[
            QuestionDraft(text="Pick", options=dict(OPTIONS), correct_answer=None)
        ]))


def test_first_failure_is_reported():
    with pytest.raises(ExamValidationError, match="Please enter a title"):
        validate_exam(draft(title="", duration=0, questions=[]))


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"end_time": START},
    {"questions": []},
    {"subject_id": "subject_missing"},
])
async def test_rejected_drafts_write_nothing(service, authoring_store, overrides):
    with pytest.raises(ExamValidationError):
        await service.create_exam(draft(**overrides), created_by="uid_teacher")
    assert await authoring_store.read("exams") is None


@pytest.mark.asyncio
async def test_create_exam_persists_document(service, authoring_store):
    exam = await service.create_exam(draft(), created_by="uid_teacher")

    assert exam.id.startswith("exam_")
    doc = await authoring_store.read(f"exams/{exam.id}")
    assert doc["title"] == "Data Structures Midterm"
    assert doc["subject"] == "Data Structures"
    assert doc["createdBy"] == "uid_teacher"
    assert doc["termsAndConditions"] == "Default terms"
    assert set(doc["questions"]) == {"1", "2"}
    assert doc["questions"]["2"]["correctAnswer"] == "B"
    assert "results" not in doc


@pytest.mark.asyncio
async def test_list_and_delete(service):
    older = await service.create_exam(draft(title="First"), created_by="uid_teacher")
    service._clock = FixedClock(NOW + timedelta(hours=1))
    newer = await service.create_exam(draft(title="Second"), created_by="uid_teacher")

    summaries = await service.list_summaries()
    assert [s.id for s in summaries] == [newer.id, older.id]
    assert summaries[0].total_questions == 2
    assert summaries[0].result_count == 0

    assert await service.delete_exam(older.id) is True
    assert await service.delete_exam(older.id) is False
    assert await service.get_exam(older.id) is None
