import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

GOOGLE_TRANSLATION_API_KEY = os.getenv("GOOGLE_TRANSLATION_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

GOOGLE_TRANSLATE_URL = os.getenv("GOOGLE_TRANSLATE_URL", "https://translation.googleapis.com/language/translate/v2")
OPENAI_CHAT_URL = os.getenv("OPENAI_CHAT_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
SUMMARY_MAX_TOKENS = int(os.getenv("SUMMARY_MAX_TOKENS", 150))

UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", 10.0))
UPSTREAM_RETRIES = int(os.getenv("UPSTREAM_RETRIES", 3))
UPSTREAM_RETRY_DELAY = float(os.getenv("UPSTREAM_RETRY_DELAY", 1.0))  # seconds, doubled per retry

OUTBOX_SIZE = int(os.getenv("OUTBOX_SIZE", 256))  # queued frames per connection
