import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import configure_logging
from .db import CardModel, ListModel, get_session, init_db
from .models import now_utc
from .schemas import (
    CardIn,
    CardOut,
    CardPatch,
    ErrorEnvelope,
    Health,
    ListDeleted,
    ListIn,
    ListOut,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title="Cardflow API", version="1.0.0", lifespan=lifespan)

NOT_FOUND = {404: {"model": ErrorEnvelope}}


# === Helpers ===


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def list_out(row: ListModel) -> ListOut:
    return ListOut(
        id=row.id,
        title=row.title,
        position=row.position,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def card_out(row: CardModel) -> CardOut:
    return CardOut(
        id=row.id,
        list_id=row.list_id,
        title=row.title,
        description=row.description or "",
        position=row.position,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def get_list_or_404(session: Session, list_id: str) -> ListModel:
    row = session.get(ListModel, list_id)
    if row is None:
        raise HTTPException(status_code=404, detail="list_not_found")
    return row


def get_card_or_404(session: Session, card_id: str) -> CardModel:
    row = session.get(CardModel, card_id)
    if row is None:
        raise HTTPException(status_code=404, detail="card_not_found")
    return row


# === Health ===


@app.get("/api/health", response_model=Health)
def health() -> Health:
    return Health()


# === List endpoints ===


@app.get("/api/lists", response_model=list[ListOut])
def list_lists(session: Session = Depends(get_session)):
    rows = session.scalars(select(ListModel).order_by(ListModel.position, ListModel.created_at))
    return [list_out(r) for r in rows]


@app.post("/api/lists", response_model=ListOut, status_code=201)
def create_list(payload: ListIn, session: Session = Depends(get_session)):
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="title_required")
    count = session.scalar(select(func.count()).select_from(ListModel))
    now = now_utc()
    row = ListModel(id=str(uuid.uuid4()), title=title, position=count, created_at=now, updated_at=now)
    session.add(row)
    session.commit()
    logger.info(f"Created list {row.id}")
    return list_out(row)


@app.delete("/api/lists/{list_id}", response_model=ListDeleted, responses=NOT_FOUND)
def delete_list(list_id: str, session: Session = Depends(get_session)):
    row = get_list_or_404(session, list_id)
    deleted = list_out(row)
    cards = len(row.cards)
    # cards go with the list (delete-orphan cascade)
    session.delete(row)
    session.commit()
    logger.info(f"Deleted list {list_id} with {cards} cards")
    return ListDeleted(id=list_id, message="list deleted", deleted_list=deleted)


# === Card endpoints ===


@app.get("/api/cards", response_model=list[CardOut])
def list_cards(session: Session = Depends(get_session)):
    rows = session.scalars(select(CardModel).order_by(CardModel.list_id, CardModel.position))
    return [card_out(r) for r in rows]


@app.post("/api/cards", response_model=CardOut, status_code=201, responses=NOT_FOUND)
def create_card(payload: CardIn, session: Session = Depends(get_session)):
    get_list_or_404(session, payload.list_id)
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="title_required")
    count = session.scalar(
        select(func.count()).select_from(CardModel).where(CardModel.list_id == payload.list_id)
    )
    now = now_utc()
    row = CardModel(
        id=str(uuid.uuid4()),
        list_id=payload.list_id,
        title=title,
        description=(payload.description or "").strip(),
        position=count,
        created_at=now,
        updated_at=now,
    )
    session.add(row)
    session.commit()
    return card_out(row)


@app.put("/api/cards/{card_id}", response_model=CardOut, responses=NOT_FOUND)
def update_card(card_id: str, payload: CardPatch, session: Session = Depends(get_session)):
    row = get_card_or_404(session, card_id)
    if payload.list_id is not None:
        get_list_or_404(session, payload.list_id)
        row.list_id = payload.list_id
    if payload.position is not None:
        row.position = payload.position
    if payload.title is not None:
        row.title = payload.title.strip()
    if payload.description is not None:
        row.description = payload.description.strip()
    row.updated_at = now_utc()
    session.commit()
    return card_out(row)


@app.delete("/api/cards/{card_id}", status_code=204, responses=NOT_FOUND)
def delete_card(card_id: str, session: Session = Depends(get_session)):
    row = get_card_or_404(session, card_id)
    session.delete(row)
    session.commit()
    return Response(status_code=204)
