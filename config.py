"""Global configuration for PureText."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Formatting
FORMAT_TIMEOUT_SECONDS = float(os.getenv("PURETEXT_FORMAT_TIMEOUT", "5.0"))
FALLBACK_TEXT = os.getenv("PURETEXT_FALLBACK_TEXT", "No content")

# Registry initialization wait
INIT_POLL_INTERVAL = float(os.getenv("PURETEXT_INIT_POLL_INTERVAL", "0.1"))
INIT_MAX_WAIT = float(os.getenv("PURETEXT_INIT_MAX_WAIT", "5.0"))

# Parsing - "html.parser" ships with Python, "lxml" is faster on large pages
HTML_PARSER = os.getenv("PURETEXT_HTML_PARSER", "html.parser")

# Word export
DOCUMENT_AUTHOR = os.getenv("PURETEXT_DOCUMENT_AUTHOR", "PureText")

# Logging
LOG_LEVEL = os.getenv("PURETEXT_LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = _flag("PURETEXT_LOG_TO_FILE", "true")
LOG_DIR = Path(os.getenv("PURETEXT_LOG_DIR", Path(os.getenv("LOCALAPPDATA", ".")) / "puretext-data" / "logs"))
