"""codeviz - graph engine for code-knowledge visualization."""

# Load .env so CODEVIZ_EMBEDDING_PROVIDER, CODEVIZ_LABELER, etc. are set
# for any entry point (CLI, pytest, scripts) that imports codeviz.
from dotenv import load_dotenv

load_dotenv()

# Keep in sync with pyproject.toml [project] version.
__version__ = "0.1.0"
