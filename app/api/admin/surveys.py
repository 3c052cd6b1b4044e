from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import ConflictError, DependencyError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import run_in_transaction, transaction
from app.models.survey_form import SurveyForm
from app.models.survey_question import SurveyQuestion
from app.models.survey_response import SurveyResponse
from app.models.user import User
from app.schemas.common import ActiveToggle
from app.schemas.surveys import (
    QUESTION_FIELDS,
    SURVEY_FIELDS,
    QuestionCreate,
    QuestionUpdate,
    SurveyCreate,
    SurveyUpdate,
)
from app.services.aggregates import GroupedAggregate, collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, count_where, exists, load_or_404
from app.services.universal_query import InSet, Like, compile_filters

router = APIRouter()

SURVEY_FILTERS = (
    Like("search", (SurveyForm.title, SurveyForm.description)),
    InSet(
        "status",
        predicates={
            "active": lambda: SurveyForm.is_active.is_(True),
            "inactive": lambda: SurveyForm.is_active.is_(False),
        },
    ),
)


def _survey_query(db: Session):
    questions = GroupedAggregate(
        db, SurveyQuestion.survey_form_id, "survey_question_totals", total_questions=func.count(SurveyQuestion.id)
    )
    responses = GroupedAggregate(
        db,
        SurveyResponse.survey_form_id,
        "survey_response_totals",
        total_responses=func.count(func.distinct(SurveyResponse.user_id)),
        total_answers=func.count(SurveyResponse.id),
    )
    q = db.query(SurveyForm, *questions.columns(), *responses.columns())
    q = questions.join(q, SurveyForm.id)
    return responses.join(q, SurveyForm.id)


def _load_survey(db: Session, raw_id: str) -> SurveyForm:
    return load_or_404(db, SurveyForm, parse_id_or_400(raw_id, "survey"), "Survey not found")


def _load_question(db: Session, survey: SurveyForm, raw_id: str) -> SurveyQuestion:
    return load_or_404(
        db,
        SurveyQuestion,
        parse_id_or_400(raw_id, "question"),
        "Question not found",
        SurveyQuestion.survey_form_id == survey.id,
    )


def _ensure_unique_title(db: Session, title: str, exclude_id: int | None = None) -> None:
    criteria = [SurveyForm.title == title]
    if exclude_id is not None:
        criteria.append(SurveyForm.id != exclude_id)
    if exists(db, SurveyForm, *criteria):
        raise ConflictError("Survey with this title already exists")


def question_out(row) -> dict:
    """Question as shown to admins: options are rendered as one comma separated string."""
    data = flatten_row(row)
    options = data.get("options")
    data["options"] = ", ".join(options) if options else ""
    return data


def _next_display_order(db: Session, survey_id: int) -> int:
    current = db.query(func.max(SurveyQuestion.display_order)).filter(SurveyQuestion.survey_form_id == survey_id).scalar()
    return int(current or 0) + 1


@router.get("")
def list_surveys(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(SURVEY_FILTERS, params)

    q = _survey_query(db).filter(*criteria)
    rows, total = fetch_page(q, page, SurveyForm.created_at.desc(), SurveyForm.id.desc())

    stats = collect_stats(
        db,
        totalSurveys=func.count(SurveyForm.id),
        activeSurveys=func.count(case((SurveyForm.is_active.is_(True), SurveyForm.id))),
        totalRewardPoints=zero_if_null(func.sum(SurveyForm.reward_points)),
    )
    stats["totalParticipants"] = count_where(db, func.distinct(SurveyResponse.user_id))
    return list_envelope("surveys", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{survey_id}")
def get_survey(survey_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    row = _survey_query(db).filter(SurveyForm.id == survey.id).first()

    answers = GroupedAggregate(
        db,
        SurveyResponse.question_id,
        "question_answer_totals",
        criteria=(SurveyResponse.survey_form_id == survey.id,),
        answer_count=func.count(SurveyResponse.id),
    )
    questions = (
        answers.join(db.query(SurveyQuestion, *answers.columns()), SurveyQuestion.id)
        .filter(SurveyQuestion.survey_form_id == survey.id)
        .order_by(SurveyQuestion.display_order.asc(), SurveyQuestion.id.asc())
        .all()
    )
    responses = (
        db.query(
            SurveyResponse,
            (User.first_name + " " + User.last_name).label("user_name"),
            User.email.label("user_email"),
            SurveyQuestion.question.label("question"),
        )
        .outerjoin(User, User.id == SurveyResponse.user_id)
        .outerjoin(SurveyQuestion, SurveyQuestion.id == SurveyResponse.question_id)
        .filter(SurveyResponse.survey_form_id == survey.id)
        .order_by(SurveyResponse.created_at.desc(), SurveyResponse.id.desc())
        .limit(100)
        .all()
    )
    return item_envelope(
        {
            "survey": flatten_row(row),
            "questions": [question_out(q) for q in questions],
            "recentResponses": [flatten_row(r) for r in responses],
        }
    )


@router.post("", status_code=201)
def create_survey(payload: SurveyCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    _ensure_unique_title(db, payload.title)
    survey_data = payload.model_dump(include=set(SURVEY_FIELDS))

    def insert_survey(session: Session, state: dict) -> None:
        survey = SurveyForm(**survey_data)
        session.add(survey)
        state["survey"] = survey

    def insert_questions(session: Session, state: dict) -> None:
        survey_id = state["survey"].id
        for position, item in enumerate(payload.questions):
            data = item.model_dump(include=set(QUESTION_FIELDS))
            if data.get("display_order") is None:
                data["display_order"] = position + 1
            session.add(SurveyQuestion(survey_form_id=survey_id, **data))
        state["question_count"] = len(payload.questions)

    state = run_in_transaction(
        db,
        (insert_survey, insert_questions),
        label="create_survey",
        conflict_message="Survey with this title already exists",
    )
    survey = state["survey"]
    db.refresh(survey)
    return item_envelope(
        {"survey": flatten_row(survey), "questionCount": state["question_count"]},
        message="Survey created successfully",
    )


@router.put("/{survey_id}")
def update_survey(survey_id: str, payload: SurveyUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    data = changed_fields(payload, allowed=SURVEY_FIELDS, not_null=SURVEY_FIELDS)
    if "title" in data:
        _ensure_unique_title(db, data["title"], exclude_id=survey.id)
    with transaction(db, label="update_survey", conflict_message="Survey with this title already exists"):
        apply_fields(survey, data)
    db.refresh(survey)
    return item_envelope({"survey": flatten_row(survey)}, message="Survey updated successfully")


@router.patch("/{survey_id}")
def toggle_survey(survey_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    with transaction(db, label="toggle_survey"):
        survey.is_active = payload.is_active
    message = "Survey activated successfully" if payload.is_active else "Survey deactivated successfully"
    return message_envelope(message, data={"id": survey.id, "is_active": payload.is_active})


@router.delete("/{survey_id}")
def delete_survey(survey_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    if count_where(db, SurveyResponse.id, SurveyResponse.survey_form_id == survey.id):
        raise DependencyError("Cannot delete survey that has responses. Consider deactivating instead.")
    with transaction(db, label="delete_survey"):
        survey.is_active = False
    return message_envelope("Survey deleted successfully")


@router.get("/{survey_id}/questions")
def list_questions(survey_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    rows = (
        db.query(SurveyQuestion)
        .filter(SurveyQuestion.survey_form_id == survey.id)
        .order_by(SurveyQuestion.display_order.asc(), SurveyQuestion.id.asc())
        .all()
    )
    return item_envelope({"questions": [question_out(r) for r in rows]})


@router.post("/{survey_id}/questions", status_code=201)
def create_question(
    survey_id: str,
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    survey = _load_survey(db, survey_id)
    data = payload.model_dump(include=set(QUESTION_FIELDS))
    if data.get("display_order") is None:
        data["display_order"] = _next_display_order(db, survey.id)
    question = SurveyQuestion(survey_form_id=survey.id, **data)
    with transaction(db, label="create_question"):
        db.add(question)
    db.refresh(question)
    return item_envelope({"question": question_out(question)}, message="Question created successfully")


@router.get("/{survey_id}/questions/{question_id}")
def get_question(survey_id: str, question_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    question = _load_question(db, survey, question_id)
    data = question_out(question)
    data["answer_count"] = count_where(db, SurveyResponse.id, SurveyResponse.question_id == question.id)
    return item_envelope({"question": data})


@router.put("/{survey_id}/questions/{question_id}")
def update_question(
    survey_id: str,
    question_id: str,
    payload: QuestionUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    survey = _load_survey(db, survey_id)
    question = _load_question(db, survey, question_id)
    data = changed_fields(
        payload,
        allowed=QUESTION_FIELDS,
        not_null=("question", "question_type", "is_required", "display_order"),
    )
    with transaction(db, label="update_question"):
        apply_fields(question, data)
    db.refresh(question)
    return item_envelope({"question": question_out(question)}, message="Question updated successfully")


@router.delete("/{survey_id}/questions/{question_id}")
def delete_question(survey_id: str, question_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    survey = _load_survey(db, survey_id)
    question = _load_question(db, survey, question_id)
    if count_where(db, SurveyResponse.id, SurveyResponse.question_id == question.id):
        raise DependencyError("Cannot delete question that has responses")
    with transaction(db, label="delete_question"):
        db.delete(question)
    return message_envelope("Question deleted successfully")
