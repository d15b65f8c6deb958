from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import ValidationError
from tempfile import SpooledTemporaryFile
import os
import logging

from .config import LOG_LEVEL, PDF_SPOOL_MAX_SIZE
from .errors import ExportError, InvalidInput, NotFound
from .export import DOCX_MIME, PDF_MIME, assemble_docx, assemble_pdf, export_filename, iter_stream
from .models import Book

# MongoDB connection
mongo_url = os.environ['MONGO_URL']
client = AsyncIOMotorClient(mongo_url)
db = client[os.environ['DB_NAME']]

# Create the main app
app = FastAPI()
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@app.exception_handler(ExportError)
async def export_error_handler(request: Request, exc: ExportError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ====== HELPERS ======

def _attachment(filename: str):
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


async def load_book(book_id: str) -> Book:
    """Fetch a stored book by its ``id`` field."""
    if not book_id or not book_id.strip():
        raise InvalidInput("Invalid book id", field="book_id", detail="Book id must not be blank")
    doc = await db.books.find_one({"id": book_id.strip()}, {"_id": 0})
    if not doc:
        raise NotFound("Book not found", field="book_id", detail=f"No book with id {book_id.strip()}")
    try:
        return Book.model_validate(doc)
    except ValidationError as e:
        logger.error(f"Stored book {book_id} is not exportable: {e}")
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidInput("Stored book is not exportable", field=field, detail=first.get("msg"))


async def docx_response(book: Book) -> Response:
    data = await assemble_docx(book)
    logger.info(f"DOCX export ready for '{book.title}' ({len(data)} bytes)")
    return Response(
        content=data,
        media_type=DOCX_MIME,
        headers=_attachment(export_filename(book.title, "docx")),
    )


async def pdf_response(book: Book) -> StreamingResponse:
    spool = SpooledTemporaryFile(max_size=PDF_SPOOL_MAX_SIZE)
    try:
        await assemble_pdf(book, spool)
    except Exception:
        spool.close()
        raise
    logger.info(f"PDF export ready for '{book.title}' ({spool.tell()} bytes)")
    spool.seek(0)
    return StreamingResponse(
        iter_stream(spool),
        media_type=PDF_MIME,
        headers=_attachment(export_filename(book.title, "pdf")),
    )


# ====== EXPORTS ======

@api_router.get("/exports/{book_id}/docx")
async def export_stored_docx(book_id: str):
    book = await load_book(book_id)
    return await docx_response(book)


@api_router.get("/exports/{book_id}/pdf")
async def export_stored_pdf(book_id: str):
    book = await load_book(book_id)
    return await pdf_response(book)


@api_router.post("/exports/docx")
async def export_docx(book: Book):
    return await docx_response(book)


@api_router.post("/exports/pdf")
async def export_pdf(book: Book):
    return await pdf_response(book)


# ====== ROOT ======

@api_router.get("/")
async def root():
    return {"message": "Inkwell Export API", "version": "1.0.0"}

# Include router
app.include_router(api_router)

@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
