"""Centralized configuration — all env vars in one place."""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "")

# --- Quiz bank ---
QUIZ_DIR = os.getenv("QUIZ_DIR", os.path.join(os.path.dirname(__file__), "quizzes"))

# --- WebSocket ---
MAX_WS_MESSAGE_SIZE = 4096  # bytes
MAX_DISPLAY_NAME_LENGTH = 40

# --- Rooms ---
ROOM_CODE_MIN = 1000
ROOM_CODE_MAX = 9999

# --- Scoring ---
POINTS_PER_QUESTION = 10
SCORING_WINDOW_SECONDS = 60
CORRECT_DECAY_DIVISOR = 6  # correct: 10 - e/6
INCORRECT_PENALTY = 3  # incorrect: -3 + e/20
INCORRECT_RECOVERY_DIVISOR = 20

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")  # empty = stdout only


def setup_logging():
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
