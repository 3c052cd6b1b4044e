from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.guidance_video import GuidanceVideo
from app.schemas.common import ActiveToggle
from app.schemas.content import VIDEO_FIELDS, VideoCreate, VideoUpdate
from app.services.aggregates import collect_stats
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, load_or_404
from app.services.universal_query import Equals, Like, as_flag, compile_filters

router = APIRouter()

VIDEO_FILTERS = (
    Like("search", (GuidanceVideo.title, GuidanceVideo.description)),
    Equals("status", GuidanceVideo.is_active, coerce=as_flag),
)


def _load_video(db: Session, raw_id: str) -> GuidanceVideo:
    return load_or_404(db, GuidanceVideo, parse_id_or_400(raw_id, "video"), "Video not found")


@router.get("")
def list_videos(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    q = db.query(GuidanceVideo).filter(*compile_filters(VIDEO_FILTERS, params))
    rows, total = fetch_page(
        q, page, GuidanceVideo.sequence.asc(), GuidanceVideo.created_at.desc(), GuidanceVideo.id.desc()
    )
    stats = collect_stats(
        db,
        totalVideos=func.count(GuidanceVideo.id),
        activeVideos=func.count(case((GuidanceVideo.is_active.is_(True), GuidanceVideo.id))),
    )
    return list_envelope("videos", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{video_id}")
def get_video(video_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope({"video": flatten_row(_load_video(db, video_id))})


@router.post("", status_code=201)
def create_video(payload: VideoCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    video = GuidanceVideo(**payload.model_dump(include=set(VIDEO_FIELDS), exclude_none=True))
    with transaction(db, label="create_video"):
        db.add(video)
    db.refresh(video)
    return item_envelope({"video": flatten_row(video)}, message="Video created successfully")


@router.put("/{video_id}")
def update_video(video_id: str, payload: VideoUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    video = _load_video(db, video_id)
    data = changed_fields(payload, allowed=VIDEO_FIELDS, not_null=("title", "video_link", "sequence", "is_active"))
    with transaction(db, label="update_video"):
        apply_fields(video, data)
    db.refresh(video)
    return item_envelope({"video": flatten_row(video)}, message="Video updated successfully")


@router.patch("/{video_id}")
def toggle_video(video_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    video = _load_video(db, video_id)
    with transaction(db, label="toggle_video"):
        video.is_active = payload.is_active
    message = "Video activated successfully" if payload.is_active else "Video deactivated successfully"
    return message_envelope(message, data={"id": video.id, "is_active": payload.is_active})


@router.delete("/{video_id}")
def delete_video(video_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    video = _load_video(db, video_id)
    with transaction(db, label="delete_video"):
        db.delete(video)
    return message_envelope("Video deleted successfully")
