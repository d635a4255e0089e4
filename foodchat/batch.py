# foodchat/batch.py
"""Run the food analysis prompt over a folder of local images.

    python -m foodchat.batch [DIR]
"""
import asyncio
import mimetypes
import sys
import time
from pathlib import Path

from .ai_engine import analyze_food_image

PICTURES_DIR = "pictures"
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

async def main(pictures_dir: str = PICTURES_DIR):
    folder = Path(pictures_dir)
    if not folder.is_dir():
        print(f"❌ Error: Directory '{folder}' not found.")
        print("Create it and drop some .jpg/.png/.gif/.webp food photos inside.")
        return

    images = sorted(p for p in folder.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS)
    if not images:
        print(f"⚠️  No images found in '{folder}'.")
        return

    print(f"🔎 Found {len(images)} images. Starting food analysis...\n")
    print("=" * 60)

    for index, image_path in enumerate(images, 1):
        print(f"[{index}/{len(images)}] {image_path.name}")
        mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
        started = time.time()

        try:
            result = await analyze_food_image(image_path.read_bytes(), mime_type)
        except Exception as e:
            print(f"❌ Failed: {e}")
        else:
            print(f"✅ {time.time() - started:.2f}s")
            print(result)

        print("-" * 60)

if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else PICTURES_DIR))
