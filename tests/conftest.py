"""
Shared fixtures: stubbed upstream providers wired in through dependency overrides
"""
import io

import pytest
import httpx
from fastapi.testclient import TestClient
from PIL import Image

from app import app, get_ocr_engine, get_receipt_parser
from services.ocr_engine import ReferenceOCREngine, UploadOCREngine
from services.receipt_parser import ReceiptParser

OCR_URL = "https://ocr.test/parse/image"
LLM_URL = "https://llm.test/v1/chat/completions"


class StubUpstream:
    """Records outbound requests and answers them from a route table"""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, url, response):
        self.routes[(method, url)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, str(request.url)))
        if response is None:
            return httpx.Response(404, json={"detail": "no stub"})
        if isinstance(response, Exception):
            raise response
        return response

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def sent_to(self, url):
        return [r for r in self.requests if str(r.url) == url]


def ocr_reply(text=None, errored=False, message=None):
    if errored:
        return httpx.Response(200, json={"IsErroredOnProcessing": True, "ErrorMessage": message})
    results = [] if text is None else [{"ParsedText": text}]
    return httpx.Response(200, json={"IsErroredOnProcessing": False, "ParsedResults": results})


def llm_reply(content=None, choices=True):
    if not choices:
        return httpx.Response(200, json={"choices": []})
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def make_image(size=(64, 32), image_format="PNG", color="white"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_image()


@pytest.fixture
def upstream():
    return StubUpstream()


@pytest.fixture
def reference_engine(upstream):
    return ReferenceOCREngine(upstream.client(), api_key="ocr-key", api_url=OCR_URL, engine="2")


@pytest.fixture
def upload_engine(upstream):
    return UploadOCREngine(
        upstream.client(), api_key="ocr-key", api_url=OCR_URL, engine="2", max_upload_bytes=1024 * 1024
    )


@pytest.fixture
def receipt_parser(upstream):
    return ReceiptParser(upstream.client(), api_key="llm-key", api_url=LLM_URL, model="gpt-4o")


@pytest.fixture
def client(reference_engine, receipt_parser):
    app.dependency_overrides[get_ocr_engine] = lambda: reference_engine
    app.dependency_overrides[get_receipt_parser] = lambda: receipt_parser
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload_client(upload_engine, receipt_parser):
    app.dependency_overrides[get_ocr_engine] = lambda: upload_engine
    app.dependency_overrides[get_receipt_parser] = lambda: receipt_parser
    yield TestClient(app)
    app.dependency_overrides.clear()
