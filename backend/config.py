import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


def _flag(name, default):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# markdown-it-py preset used to tokenize chapter content
MARKDOWN_PRESET = os.environ.get('MARKDOWN_PRESET', 'commonmark')

COVER_FETCH_TIMEOUT = float(os.environ.get('COVER_FETCH_TIMEOUT', '20'))

DOCX_PAGE_NUMBERS = _flag('DOCX_PAGE_NUMBERS', 'true')
PDF_PAGE_NUMBERS = _flag('PDF_PAGE_NUMBERS', 'true')

# PDF output spills from memory to a temp file above this size
PDF_SPOOL_MAX_SIZE = int(os.environ.get('PDF_SPOOL_MAX_SIZE', str(8 * 1024 * 1024)))
STREAM_CHUNK_SIZE = int(os.environ.get('STREAM_CHUNK_SIZE', str(64 * 1024)))
