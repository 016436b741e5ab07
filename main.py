"""
main.py
========
Central entry point for the DocVerify application.

Run with:
    uvicorn main:app --reload
"""

import logging

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Keep third-party transport and image-decoder logs out of pipeline output
for _noisy_logger_name in (
    "urllib3",
    "urllib3.connectionpool",
    "PIL",
    "PIL.PngImagePlugin",
    "PIL.TiffImagePlugin",
):
    logging.getLogger(_noisy_logger_name).setLevel(logging.WARNING)

from src.api.verify import app  # noqa: F401, E402

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
