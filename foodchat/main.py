# foodchat/main.py
import os
import sys
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, UploadFile, Form, Depends, File, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session
from dotenv import load_dotenv
from . import crud, uploads
from .ai_engine import CompletionError
from .database import init_db, get_session, StorageError
from .models import UserCreate, ConversationCreate, PromptRequest
from .orchestrator import handle_prompt, handle_food_analysis
from .uploads import UnsupportedMediaType, UPLOAD_URL_PREFIX

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Serverda xatolik yuz berdi"
NO_IMAGE_MESSAGE = "Rasm yuklanmadi"
USER_NOT_FOUND_MESSAGE = "Foydalanuvchi topilmadi"
CONVERSATION_NOT_FOUND_MESSAGE = "Suhbat topilmadi"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Serving without a schema is not allowed: let the error stop the process
    try:
        init_db()
    except StorageError:
        logger.critical("Database initialization failed, refusing to start")
        raise
    logger.info("Server ready")
    yield


app = FastAPI(title="Food Chat API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=uploads.UPLOAD_DIR), name="uploads")

# --- Error mapping ---

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Noto'g'ri so'rov", "detail": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(UnsupportedMediaType)
async def unsupported_media_handler(request: Request, exc: UnsupportedMediaType):
    logger.warning("Rejected upload on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Faqat JPEG, PNG, GIF yoki WEBP rasm yuklash mumkin"},
    )

@app.exception_handler(StorageError)
@app.exception_handler(CompletionError)
@app.exception_handler(OSError)
@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.error("❌ %s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": SERVER_ERROR_MESSAGE},
    )

# --- Routes ---

@app.get("/")
def root():
    return {"ok": True}

@app.post("/users")
def create_user_endpoint(body: UserCreate, session: Session = Depends(get_session)):
    return crud.upsert_user(session, body.name, body.email, body.avatar_url)

@app.get("/users/{user_id}")
def get_user_endpoint(user_id: int, session: Session = Depends(get_session)):
    user = crud.get_user(session, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND_MESSAGE)
    return user

@app.delete("/users/{user_id}")
def delete_user_endpoint(user_id: int, session: Session = Depends(get_session)):
    if not crud.delete_user(session, user_id):
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND_MESSAGE)
    return {"status": "deleted"}

@app.post("/conversations")
def create_conversation_endpoint(body: ConversationCreate, session: Session = Depends(get_session)):
    if not crud.get_user(session, body.user_id):
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND_MESSAGE)
    return crud.create_conversation(session, body.user_id, body.title)

@app.get("/users/{user_id}/conversations")
def list_conversations_endpoint(user_id: int, session: Session = Depends(get_session)):
    return crud.list_conversations(session, user_id)

@app.get("/conversations/{conversation_id}/messages")
def list_messages_endpoint(conversation_id: int, session: Session = Depends(get_session)):
    return crud.list_messages(session, conversation_id)

@app.post("/prompt")
async def prompt_endpoint(body: PromptRequest, session: Session = Depends(get_session)):
    if not crud.get_conversation(session, body.conversation_id):
        raise HTTPException(status_code=404, detail=CONVERSATION_NOT_FOUND_MESSAGE)
    message = await handle_prompt(session, body.conversation_id, body.prompt)
    return {"answer": message.content, "message": message}

@app.post("/upload")
async def upload_endpoint(image: UploadFile = File(None)):
    if not image:
        raise HTTPException(status_code=400, detail=NO_IMAGE_MESSAGE)
    stored = await uploads.save_upload(image)
    return {"url": stored.url}

@app.post("/analyze-food")
async def analyze_food_endpoint(
    image: UploadFile = File(None),
    user_id: Optional[int] = Form(None),
    session: Session = Depends(get_session)
):
    if not image:
        raise HTTPException(status_code=400, detail=NO_IMAGE_MESSAGE)
    if user_id is not None and not crud.get_user(session, user_id):
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND_MESSAGE)
    result = await handle_food_analysis(session, image, user_id)
    return {"success": True, "result": result}

@app.get("/users/{user_id}/food-analyses")
def list_food_analyses_endpoint(user_id: int, session: Session = Depends(get_session)):
    return crud.list_food_analyses(session, user_id)
