"""
Note API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.schemas import CamelModel, MessageResponse, provided
from tracker.application.notes import CreateNoteUseCase, DeleteNoteUseCase, NoteReadService, UpdateNoteUseCase
from tracker.infrastructure.db.models import User


router = APIRouter(prefix="/api/notes", tags=["notes"])


class CreateNoteRequest(CamelModel):
    title: str | None = None
    content: str = ""
    category: str | None = None


class UpdateNoteRequest(CamelModel):
    title: str | None = None
    content: str | None = None
    category: str | None = None


class NoteResponse(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    category: str
    created_at: datetime | None
    updated_at: datetime | None


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(
    req: CreateNoteRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CreateNoteUseCase(db).execute(user.id, req.title, req.content, req.category)


@router.get("", response_model=list[NoteResponse])
def list_notes(
    category: str | None = None,
    search: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first; `search` matches title or content"""
    return NoteReadService(db).list_notes(user.id, category=category, search=search)


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(
    note_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NoteReadService(db).get(note_id, user.id)


@router.patch("/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: int,
    req: UpdateNoteRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return UpdateNoteUseCase(db).execute(note_id, user.id, **provided(req))


@router.delete("/{note_id}", response_model=MessageResponse)
def delete_note(
    note_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteNoteUseCase(db).execute(note_id, user.id)
    return MessageResponse(message="Note deleted successfully")
