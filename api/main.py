from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Security, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from contextlib import asynccontextmanager
import os
import uuid
from datetime import datetime
import time
import logging
import psutil
from pythonjsonlogger import jsonlogger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from profile_engine.extractor import extract_profile
from profile_engine.file_processor import FileProcessor, UnsupportedFormat, DecodingFailure
from profile_engine.models import Profile

VERSION = "1.0.0"

API_KEY = os.getenv("API_KEY", "dev-api-key-12345")
RATE_LIMIT = os.getenv("RATE_LIMIT", "100/minute")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Send every record through one JSON handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={'asctime': 'timestamp', 'levelname': 'level'}
    ))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    return logging.getLogger(__name__)

logger = configure_logging()

limiter = Limiter(key_func=get_remote_address)
bearer = HTTPBearer(auto_error=False)

_file_processor: Optional[FileProcessor] = None

stats = {
    "start_time": time.time(),
    "last_parse_time_ms": 0,
    "total_parses": 0,
}


class APIError(Exception):
    """Error rendered as the service's JSON error envelope."""
    def __init__(self, message: str, status_code: int = 500, error_code: str = "INTERNAL_ERROR", details: Dict = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


def error_envelope(status_code: int, error_code: str, message: str, details: Dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={
        "success": False,
        "error": {"code": error_code, "message": message, "details": details},
        "timestamp": datetime.now().isoformat(),
    })


def get_file_processor() -> FileProcessor:
    if _file_processor is None:
        raise APIError("File processor not available", status_code=503, error_code="SERVICE_UNAVAILABLE")
    return _file_processor


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _file_processor
    _file_processor = FileProcessor()
    logger.info("Profile extractor ready", extra={"version": VERSION, "max_upload_mb": MAX_UPLOAD_MB})
    yield
    logger.info("Profile extractor stopping", extra={"total_parses": stats["total_parses"]})


app = FastAPI(
    title="Resume Profile Extractor API",
    description="Turns PDF, DOCX and plain-text resumes into structured professional profiles",
    version=VERSION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "parsing", "description": "Resume parsing operations"},
        {"name": "system", "description": "System operations"},
    ]
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return error_envelope(exc.status_code, exc.error_code, exc.message, exc.details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", extra={"error": str(exc), "path": request.url.path})
    return error_envelope(
        500, "INTERNAL_ERROR", "An unexpected error occurred",
        {"error": str(exc)} if DEBUG else {},
    )


def verify_api_key(credentials: HTTPAuthorizationCredentials = Security(bearer)) -> bool:
    """Bearer token must equal API_KEY."""
    if credentials is None or credentials.credentials != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return True

# ============================================================
# Request/Response Models
# ============================================================
class ParseResumeResponse(BaseModel):
    """Response model for resume parsing."""
    success: bool = True
    data: Profile
    processing_time_ms: int


class BatchItemResult(BaseModel):
    """One entry of a batch parse."""
    index: int
    success: bool = True
    data: Profile


class BatchSummary(BaseModel):
    total: int
    successful: int


class BatchParseResponse(BaseModel):
    """Response model for batch parsing."""
    success: bool = True
    results: List[BatchItemResult]
    processing_time_ms: int
    summary: BatchSummary


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    uptime_seconds: int
    memory_usage_mb: float
    last_parse_time_ms: int
    total_parses: int


class ParseTextRequest(BaseModel):
    """Parse text request model."""
    text: str = Field(..., min_length=1, description="Resume text to parse")


class BatchParseRequest(BaseModel):
    """Batch parse request model."""
    texts: List[str] = Field(..., min_length=1, max_length=10, description="List of resume texts to parse")


# ============================================================
# Helper Functions
# ============================================================
def get_memory_usage() -> float:
    """Get current memory usage in MB."""
    process = psutil.Process()
    return round(process.memory_info().rss / 1024 / 1024, 2)


def record_parse(start_time: float, count: int = 1) -> int:
    """Update parse statistics and return the elapsed time in ms."""
    processing_time = int((time.time() - start_time) * 1000)
    stats["last_parse_time_ms"] = processing_time
    stats["total_parses"] += count
    return processing_time


async def read_upload(file: UploadFile) -> bytes:
    """Read an upload, never holding more than MAX_UPLOAD_MB + 1 byte."""
    limit = MAX_UPLOAD_MB * 1024 * 1024
    too_large = APIError(
        message=f"File exceeds the {MAX_UPLOAD_MB} MB upload limit",
        status_code=413,
        error_code="FILE_TOO_LARGE",
        details={"max_upload_mb": MAX_UPLOAD_MB},
    )

    if file.size is not None and file.size > limit:
        raise too_large

    # size is unknown for some clients, so read one byte past the limit
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise too_large
    return data


def decode_upload(fp: FileProcessor, data: bytes, filename: Optional[str], content_type: Optional[str]) -> str:
    """Decode uploaded bytes, translating decoder failures into API errors."""
    # Browsers send octet-stream when they don't know the type
    if not content_type or content_type == "application/octet-stream":
        content_type = fp.detect_content_type(data, filename)

    try:
        return fp.decode(data, content_type)
    except UnsupportedFormat as e:
        raise APIError(
            message="Unsupported file type. Please upload PDF, DOCX, or TXT file.",
            status_code=415,
            error_code="UNSUPPORTED_FORMAT",
            details={"content_type": e.content_type},
        ) from e
    except DecodingFailure as e:
        raise APIError(
            message="The document could not be read. Please try again with another file.",
            status_code=422,
            error_code="DECODING_FAILED",
            details={"error": str(e)} if DEBUG else {},
        ) from e


# ============================================================
# Health endpoint (no auth required)
# ============================================================
@app.get("/api/v1/health", tags=["system"], response_model=HealthResponse)
async def health_check():
    """Health check endpoint - no authentication required."""
    uptime = time.time() - stats["start_time"]

    return HealthResponse(
        status="healthy" if _file_processor is not None else "degraded",
        version=VERSION,
        uptime_seconds=int(uptime),
        memory_usage_mb=get_memory_usage(),
        last_parse_time_ms=stats["last_parse_time_ms"],
        total_parses=stats["total_parses"],
    )


# ============================================================
# Parsing endpoints
# ============================================================
@app.post("/api/v1/parse-resume", tags=["parsing"], response_model=ParseResumeResponse,
          response_model_exclude_none=True)
@limiter.limit(RATE_LIMIT)
async def parse_resume_v1(
    request: Request,
    file: UploadFile = File(...),
    authorized: bool = Depends(verify_api_key)
):
    """Parse an uploaded resume file into a structured profile."""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()

    logger.info("Parse resume request started", extra={
        "request_id": request_id,
        "file_name": file.filename,
        "content_type": file.content_type
    })

    fp = get_file_processor()

    try:
        data = await read_upload(file)
        text = decode_upload(fp, data, file.filename, file.content_type)
    except APIError as e:
        logger.warning("Parse resume rejected", extra={"request_id": request_id, "error_code": e.error_code})
        raise

    profile = extract_profile(text)
    processing_time = record_parse(start_time)

    logger.info("Parse resume completed", extra={
        "request_id": request_id,
        "processing_time_ms": processing_time,
        "candidate_name": profile.name,
        "skills_count": len(profile.skills)
    })

    return ParseResumeResponse(data=profile, processing_time_ms=processing_time)


@app.post("/api/v1/parse-text", tags=["parsing"], response_model=ParseResumeResponse,
          response_model_exclude_none=True)
@limiter.limit(RATE_LIMIT)
async def parse_text_v1(
    request: Request,
    body: ParseTextRequest,
    authorized: bool = Depends(verify_api_key)
):
    """Parse resume text into a structured profile."""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()

    logger.info("Parse text request started", extra={
        "request_id": request_id,
        "text_length": len(body.text)
    })

    profile = extract_profile(body.text)
    processing_time = record_parse(start_time)

    logger.info("Parse text completed", extra={
        "request_id": request_id,
        "processing_time_ms": processing_time,
        "candidate_name": profile.name,
    })

    return ParseResumeResponse(data=profile, processing_time_ms=processing_time)


# ============================================================
# Batch parsing endpoint
# ============================================================
@app.post("/api/v1/parse-batch", tags=["parsing"], response_model=BatchParseResponse,
          response_model_exclude_none=True)
@limiter.limit("20/minute")
async def parse_batch_v1(
    request: Request,
    body: BatchParseRequest,
    authorized: bool = Depends(verify_api_key)
):
    """Parse multiple resume texts in a single request (max 10)."""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()

    logger.info("Batch parse request started", extra={
        "request_id": request_id,
        "batch_size": len(body.texts)
    })

    results = [
        BatchItemResult(index=idx, data=extract_profile(text))
        for idx, text in enumerate(body.texts)
    ]
    processing_time = record_parse(start_time, count=len(results))

    logger.info("Batch parse completed", extra={
        "request_id": request_id,
        "processing_time_ms": processing_time,
        "successful": len(results),
    })

    return BatchParseResponse(
        results=results,
        processing_time_ms=processing_time,
        summary=BatchSummary(total=len(body.texts), successful=len(results)),
    )


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
