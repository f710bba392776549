"""Note use-cases"""
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tracker.domain.errors import FieldError, NotFoundError, ValidationFailed, require
from tracker.infrastructure.db.models import NoteModel

TITLE_MAX_LENGTH = 200
CATEGORY_MAX_LENGTH = 64
DEFAULT_CATEGORY = "General"


class NoteValidationError(ValidationFailed):
    pass


def _validate(fields: dict, *, creating: bool) -> None:
    errors = []
    if creating or "title" in fields:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(FieldError("title", "Note title is required"))
        elif len(title.strip()) > TITLE_MAX_LENGTH:
            errors.append(FieldError("title", "Title cannot exceed 200 characters"))
    category = fields.get("category")
    if isinstance(category, str) and len(category.strip()) > CATEGORY_MAX_LENGTH:
        errors.append(FieldError("category", "Category cannot exceed 64 characters"))
    require(errors, NoteValidationError)


def get_owned_note(db: Session, note_id: int, user_id: int) -> NoteModel:
    note = db.query(NoteModel).filter(
        NoteModel.id == note_id,
        NoteModel.user_id == user_id,
    ).first()
    if not note:
        raise NotFoundError("Note")
    return note


class CreateNoteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, title: str, content: str = "", category: str | None = None) -> NoteModel:
        _validate({"title": title, "category": category}, creating=True)
        note = NoteModel(
            user_id=user_id,
            title=title.strip(),
            content=content or "",
            category=(category or "").strip() or DEFAULT_CATEGORY,
        )
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        return note


class UpdateNoteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, note_id: int, user_id: int, **changes) -> NoteModel:
        note = get_owned_note(self.db, note_id, user_id)
        _validate(changes, creating=False)
        if "title" in changes:
            note.title = changes["title"].strip()
        if "content" in changes:
            note.content = changes["content"] or ""
        if "category" in changes:
            note.category = (changes["category"] or "").strip() or DEFAULT_CATEGORY
        self.db.commit()
        self.db.refresh(note)
        return note


class DeleteNoteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, note_id: int, user_id: int) -> None:
        note = get_owned_note(self.db, note_id, user_id)
        self.db.delete(note)
        self.db.commit()


class NoteReadService:
    def __init__(self, db: Session):
        self.db = db

    def list_notes(self, user_id: int, category: str | None = None, search: str | None = None) -> List[NoteModel]:
        query = self.db.query(NoteModel).filter(NoteModel.user_id == user_id)
        if category:
            query = query.filter(NoteModel.category == category)
        if search:
            query = query.filter(or_(
                NoteModel.title.icontains(search, autoescape=True),
                NoteModel.content.icontains(search, autoescape=True),
            ))
        return query.order_by(NoteModel.updated_at.desc(), NoteModel.id.desc()).all()

    def get(self, note_id: int, user_id: int) -> NoteModel:
        return get_owned_note(self.db, note_id, user_id)
