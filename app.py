"""
FastAPI application for the receipt relay
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import httpx
import logging

from config import config
from models.schemas import ErrorResponse, HealthResponse, OcrRequest, OcrResponse, ParseRequest
from services.errors import ParseFailure, RelayError, UnexpectedFailure, ValidationError
from services.ocr_engine import OCREngine, build_ocr_engine
from services.receipt_parser import ReceiptParser, build_receipt_parser

VERSION = "1.0.0"
LIVENESS_MESSAGE = "Splitmate OCR/LLM API is live."

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate config and open the shared upstream HTTP client"""
    for warning in config.validate():
        logger.warning(f"Configuration warning: {warning}")

    async with httpx.AsyncClient(timeout=httpx.Timeout(config.UPSTREAM_TIMEOUT)) as http:
        app.state.ocr_engine = build_ocr_engine(config, http)
        app.state.receipt_parser = build_receipt_parser(config, http)
        logger.info(f"Relay started: OCR mode={app.state.ocr_engine.mode}, model={config.LLM_MODEL}")
        yield

app = FastAPI(title="Splitmate Receipt Relay", version=VERSION, lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

def get_ocr_engine(request: Request) -> OCREngine:
    return request.app.state.ocr_engine

def get_receipt_parser(request: Request) -> ReceiptParser:
    return request.app.state.receipt_parser

def error_response(error: RelayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same {error} shape as every other failure"""
    logger.info(f"Rejected body for {request.url.path}: {exc.errors()}")
    return error_response(ValidationError("Invalid request body"))

@app.get("/", response_class=PlainTextResponse)
async def liveness():
    return LIVENESS_MESSAGE

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        ocr_mode=config.OCR_MODE,
        ocr_configured=bool(config.OCR_API_KEY),
        llm_configured=bool(config.LLM_API_KEY),
    )

@app.post(
    "/ocr",
    response_model=OcrResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def ocr(body: OcrRequest, engine: OCREngine = Depends(get_ocr_engine)):
    """
    Recognize the text of a receipt image
    """
    logger.info(f"[REQUEST] /ocr - imageUrl: {body.image_url}")
    try:
        if not body.image_url:
            raise ValidationError("imageUrl is required")

        text = await engine.extract_text(body.image_url, body.filetype)
        return OcrResponse(text=text)

    except RelayError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"OCR failure: {e}", exc_info=True)
        return error_response(UnexpectedFailure("Unexpected OCR failure."))

@app.post(
    "/parse",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def parse(body: ParseRequest, parser: ReceiptParser = Depends(get_receipt_parser)):
    """
    Extract items and totals from OCR text.
    Replies that are not JSON come back as {"raw": reply}.
    """
    try:
        if not body.text:
            raise ValidationError("Missing OCR text")

        logger.info(f"[REQUEST] /parse - text length: {len(body.text)}")
        return JSONResponse(content=await parser.parse(body.text))

    except RelayError as e:
        if e.status_code >= 500:
            logger.error(f"LLM parse failure: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.error(f"LLM parse failure: {e}", exc_info=True)
        return error_response(ParseFailure("Failed to parse receipt with LLM"))

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
