"""Root test configuration: server environment and shared book fixtures"""

import os
from io import BytesIO

import pytest
from PIL import Image

# the server module reads these at import time
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "inkwell_test")

from backend.models import Book, Chapter  # noqa: E402


SAMPLE_CONTENT = """# Opening

Some **bold** and *italic* text.

1. First
2. Second

> A quoted line.

```
function f() {}
```

---
"""


@pytest.fixture
def sample_book():
    return Book(
        title="The Book",
        subtitle="A Subtitle",
        author="Ada Writer",
        chapters=[
            Chapter(title="Beginnings", content=SAMPLE_CONTENT),
            Chapter(title="", content="Short chapter."),
            Chapter(title="Empty", content=""),
        ],
    )


@pytest.fixture
def png_bytes():
    buf = BytesIO()
    Image.new("RGB", (40, 60), (79, 70, 229)).save(buf, format="PNG")
    return buf.getvalue()
