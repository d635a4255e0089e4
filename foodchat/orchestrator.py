# foodchat/orchestrator.py
import os
import logging
from typing import Optional
from fastapi import UploadFile
from sqlmodel import Session
from dotenv import load_dotenv
from . import ai_engine, crud, uploads
from .models import Message, ROLE_USER, ROLE_ASSISTANT

load_dotenv()

logger = logging.getLogger(__name__)

# 0 replays the whole transcript every turn
CONTEXT_MESSAGE_LIMIT = int(os.getenv("CONTEXT_MESSAGE_LIMIT", "0"))


async def handle_prompt(session: Session, conversation_id: int, prompt: str) -> Message:
    logger.info("📨 [NEW PROMPT] Conversation: %s | Text: %s", conversation_id, prompt[:80])

    # Each step commits on its own; a failed completion leaves the user message behind
    crud.append_message(session, conversation_id, ROLE_USER, prompt)
    transcript = crud.list_messages(session, conversation_id, limit=CONTEXT_MESSAGE_LIMIT or None)

    answer = await ai_engine.complete_chat(transcript)

    return crud.append_message(session, conversation_id, ROLE_ASSISTANT, answer)


async def handle_food_analysis(session: Session, upload: UploadFile, user_id: Optional[int] = None) -> str:
    stored = await uploads.save_upload(upload)
    try:
        image_bytes = stored.path.read_bytes()
        result = await ai_engine.analyze_food_image(image_bytes, stored.mime_type)
        logger.info("🍽️ Food analysis done for %s", stored.url)

        if user_id is not None:
            crud.save_food_analysis(session, user_id, stored.url, result)
        return result
    finally:
        uploads.delete_upload(stored)
