import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep tests hermetic: no disk cache, no analytics db, no rate limiting, no real keys.
os.environ["CACHE_BACKEND"] = "memory"
os.environ["ANALYTICS_ENABLED"] = "0"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["DEFAULT_MODEL"] = "gemini-2.5-flash"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ["API_KEY"] = ""
