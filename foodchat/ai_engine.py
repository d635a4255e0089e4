# foodchat/ai_engine.py
import os
import base64
import logging
import time
from typing import List, Optional
from openai import OpenAI, OpenAIError
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1")
MODEL_ID = os.getenv("MODEL_ID", "openai/gpt-oss-20b")
VISION_MODEL_ID = os.getenv("VISION_MODEL_ID", "meta-llama/llama-4-scout-17b-16e-instruct")

NOT_FOOD_MESSAGE = "Kechirasiz, bu rasmda ovqat yoki oziq-ovqat mahsulotlari aniqlanmadi."

FOOD_ANALYSIS_PROMPT = f"""Sen tajribali dietolog va oshpazsan. Rasmni diqqat bilan ko'rib chiq.

Agar rasmda ovqat, ichimlik yoki oziq-ovqat mahsulotlari bo'lsa, har bir aniqlangan mahsulot uchun
100 gramm hisobida taxminiy ozuqaviy qiymatni quyidagi formatda yoz:

- **<Mahsulot nomi>**
  - Kaloriya: <son> kkal
  - Oqsil: <son> g
  - Yog': <son> g
  - Uglevod: <son> g

Faqat shu ro'yxatni qaytar, qo'shimcha izoh yozma. Javobni o'zbek tilida yoz.

Agar rasmda ovqat bilan bog'liq hech narsa bo'lmasa, faqat quyidagi gapni aynan qaytar:
{NOT_FOOD_MESSAGE}"""

_client: Optional[OpenAI] = None


class CompletionError(Exception):
    """The chat completion API call failed."""


def get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(base_url=LLM_BASE_URL, api_key=OPENAI_API_KEY or "")
    return _client


def _create(model: str, messages: List[dict]) -> str:
    start_time = time.time()
    try:
        response = get_client().chat.completions.create(model=model, messages=messages)
    except OpenAIError as e:
        logger.error("❌ Completion API error (%s): %s", model, e)
        raise CompletionError(str(e)) from e

    if not response.choices:
        logger.error("❌ Completion API (%s) returned no choices", model)
        raise CompletionError(f"{model} returned no choices")

    logger.info("🤖 %s answered in %.2fs", model, time.time() - start_time)
    return response.choices[0].message.content or ""


async def complete_chat(messages: List[dict]) -> str:
    """Send the stored transcript as-is and return the assistant's text."""
    wire_messages = [{"role": m["role"], "content": m["content"]} for m in messages]
    return _create(MODEL_ID, wire_messages)


async def analyze_food_image(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    base64_image = base64.b64encode(image_bytes).decode('utf-8')
    image_url = f"data:{mime_type};base64,{base64_image}"

    logger.info("🚀 Sending food image to %s (%d bytes)", VISION_MODEL_ID, len(image_bytes))
    text = _create(
        VISION_MODEL_ID,
        [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": FOOD_ANALYSIS_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ],
    )

    if NOT_FOOD_MESSAGE in text:
        return NOT_FOOD_MESSAGE
    return text.strip()
