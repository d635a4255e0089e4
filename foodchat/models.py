# foodchat/models.py
from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, DateTime, Text, func

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
VALID_ROLES = {ROLE_USER, ROLE_ASSISTANT}


def utcnow():
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=255, index=True, unique=True)
    avatar_url: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now()})

    conversations: List["Conversation"] = Relationship(back_populates="user", cascade_delete=True, passive_deletes=True)
    food_analyses: List["FoodAnalysis"] = Relationship(back_populates="user", cascade_delete=True, passive_deletes=True)

class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now()})

    user: Optional[User] = Relationship(back_populates="conversations")
    messages: List["Message"] = Relationship(back_populates="conversation", cascade_delete=True, passive_deletes=True)

class Message(SQLModel, table=True):
    __tablename__ = "messages"
    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="conversations.id", ondelete="CASCADE", index=True)
    role: str = Field(max_length=20)
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now()})

    conversation: Optional[Conversation] = Relationship(back_populates="messages")

class FoodAnalysis(SQLModel, table=True):
    __tablename__ = "food_analyses"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    image_url: str = Field(sa_column=Column(Text))
    result: str = Field(sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now()})

    user: Optional[User] = Relationship(back_populates="food_analyses")

# --- Request bodies ---

class UserCreate(SQLModel):
    name: str
    email: str
    avatar_url: Optional[str] = None

class ConversationCreate(SQLModel):
    user_id: int
    title: Optional[str] = None

class PromptRequest(SQLModel):
    prompt: str
    conversation_id: int
