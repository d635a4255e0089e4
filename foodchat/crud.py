# foodchat/crud.py
import logging
from functools import wraps
from typing import Optional, List
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from .database import StorageError
from .models import User, Conversation, Message, FoodAnalysis, VALID_ROLES, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_TITLE = "Yangi suhbat"

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _storage_call(fn):
    @wraps(fn)
    def wrapper(session: Session, *args, **kwargs):
        try:
            return fn(session, *args, **kwargs)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("❌ %s failed: %s", fn.__name__, e)
            raise StorageError(f"{fn.__name__} failed") from e
    return wrapper

# --- Users ---

@_storage_call
def upsert_user(session: Session, name: str, email: str, avatar_url: Optional[str] = None) -> User:
    dialect = session.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise StorageError(f"upsert is not supported on {dialect}")

    stmt = insert(User).values(name=name, email=email, avatar_url=avatar_url, created_at=utcnow())
    stmt = stmt.on_conflict_do_update(
        index_elements=["email"],
        set_={"name": stmt.excluded.name},
    )
    stmt = stmt.returning(User).execution_options(populate_existing=True)

    user = session.exec(stmt).scalar_one()
    session.commit()
    session.refresh(user)
    return user

@_storage_call
def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)

@_storage_call
def delete_user(session: Session, user_id: int) -> bool:
    user = session.get(User, user_id)
    if not user:
        return False
    logger.info("🗑️ Deleting user %s (%s) and all data...", user.id, user.email)
    session.delete(user)
    session.commit()
    return True

# --- Conversations ---

@_storage_call
def create_conversation(session: Session, user_id: int, title: Optional[str] = None) -> Conversation:
    conversation = Conversation(user_id=user_id, title=title or DEFAULT_CONVERSATION_TITLE)
    session.add(conversation)
    session.commit()
    session.refresh(conversation)
    return conversation

@_storage_call
def get_conversation(session: Session, conversation_id: int) -> Optional[Conversation]:
    return session.get(Conversation, conversation_id)

@_storage_call
def list_conversations(session: Session, user_id: int) -> List[Conversation]:
    stmt = (
        select(Conversation)
        .where(Conversation.user_id == user_id)
        .order_by(Conversation.created_at.desc(), Conversation.id.desc())
    )
    return list(session.exec(stmt).all())

# --- Messages ---

@_storage_call
def append_message(session: Session, conversation_id: int, role: str, content: str) -> Message:
    if role not in VALID_ROLES:
        raise ValueError(f"Unknown message role: {role!r}")
    message = Message(conversation_id=conversation_id, role=role, content=content)
    session.add(message)
    session.commit()
    session.refresh(message)
    return message

@_storage_call
def list_messages(session: Session, conversation_id: int, limit: Optional[int] = None) -> List[dict]:
    """Transcript as {role, content} pairs, oldest first.

    With ``limit`` only the newest ``limit`` messages are kept.
    """
    stmt = select(Message.role, Message.content).where(Message.conversation_id == conversation_id)
    if limit:
        stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit)
        rows = list(reversed(session.exec(stmt).all()))
    else:
        stmt = stmt.order_by(Message.created_at, Message.id)
        rows = session.exec(stmt).all()
    return [{"role": role, "content": content} for role, content in rows]

# --- Food analyses ---

@_storage_call
def save_food_analysis(session: Session, user_id: int, image_url: str, result: str) -> FoodAnalysis:
    analysis = FoodAnalysis(user_id=user_id, image_url=image_url, result=result)
    session.add(analysis)
    session.commit()
    session.refresh(analysis)
    return analysis

@_storage_call
def list_food_analyses(session: Session, user_id: int) -> List[FoodAnalysis]:
    stmt = (
        select(FoodAnalysis)
        .where(FoodAnalysis.user_id == user_id)
        .order_by(FoodAnalysis.created_at.desc(), FoodAnalysis.id.desc())
    )
    return list(session.exec(stmt).all())
