"""
OCR.space client
Two integration modes, chosen once per deployment:
  reference - send the image URL, the provider downloads the image
  upload    - download the image here and re-upload the bytes
"""
import json
import logging
from typing import Any, Dict, Optional

import httpx

from services.errors import UpstreamFetchError, UpstreamProcessingError
from utils.image_utils import prepare_upload

logger = logging.getLogger(__name__)

class OCREngine:
    """Base wrapper for the OCR.space parse endpoint"""

    mode = ''

    def __init__(self, http: httpx.AsyncClient, api_key: str, api_url: str, engine: str = '2'):
        self.http = http
        self.api_key = api_key
        self.api_url = api_url
        self.engine = engine

    async def extract_text(self, image_url: str, filetype: Optional[str] = None) -> str:
        """
        Recognize the text of the image at image_url
        """
        raise NotImplementedError

    async def _post(self, **kwargs) -> Dict[str, Any]:
        response = await self.http.post(self.api_url, headers={'apikey': self.api_key}, **kwargs)
        data = response.json()
        logger.debug(f"OCR API response: {json.dumps(data, indent=2)}")
        return data

    @staticmethod
    def interpret(data: Dict[str, Any]) -> str:
        """
        Map the provider's JSON reply to the recognized text.
        Raises UpstreamProcessingError when the provider flags a failure.
        """
        if data.get('IsErroredOnProcessing'):
            logger.warning(f"OCR error: {data.get('ErrorMessage') or data.get('ErrorDetails') or data}")
            raise UpstreamProcessingError(_error_message(data.get('ErrorMessage')))

        results = data.get('ParsedResults') or []
        if not results or not isinstance(results[0], dict):
            return ''
        return results[0].get('ParsedText') or ''

def _error_message(message: Any) -> str:
    # ErrorMessage comes back as a string or a list of strings
    if isinstance(message, list):
        message = '; '.join(str(m) for m in message if m)
    return str(message) if message else 'OCR processing error'

class ReferenceOCREngine(OCREngine):
    """Let the provider fetch the image from its URL"""

    mode = 'reference'

    def __init__(self, *args, default_filetype: str = 'JPG', **kwargs):
        super().__init__(*args, **kwargs)
        self.default_filetype = default_filetype

    async def extract_text(self, image_url: str, filetype: Optional[str] = None) -> str:
        data = await self._post(data={
            'url': image_url,
            'OCREngine': self.engine,
            'filetype': filetype or self.default_filetype,
        })
        return self.interpret(data)

class UploadOCREngine(OCREngine):
    """Download the image and send the bytes as a multipart upload"""

    mode = 'upload'

    def __init__(self, *args, max_upload_bytes: int = 1048576, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_upload_bytes = max_upload_bytes

    async def fetch_image(self, image_url: str) -> bytes:
        try:
            response = await self.http.get(image_url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Image fetch failed for {image_url}: {e}")
            raise UpstreamFetchError('Failed to fetch image from imageUrl') from e
        return response.content

    async def extract_text(self, image_url: str, filetype: Optional[str] = None) -> str:
        # filetype is ignored here, the provider infers it from the upload
        image_bytes = await self.fetch_image(image_url)
        upload = prepare_upload(image_bytes, self.max_upload_bytes)
        logger.debug(f"Uploading {upload[0]} ({len(upload[1])} bytes) for OCR")

        data = await self._post(
            data={'OCREngine': self.engine},
            files={'file': upload},
        )
        return self.interpret(data)

def build_ocr_engine(config, http: httpx.AsyncClient) -> OCREngine:
    """
    Create the engine for the configured OCR_MODE
    """
    common = dict(api_key=config.OCR_API_KEY, api_url=config.OCR_API_URL, engine=config.OCR_ENGINE)

    if config.OCR_MODE == 'reference':
        return ReferenceOCREngine(http, default_filetype=config.OCR_DEFAULT_FILETYPE, **common)
    if config.OCR_MODE == 'upload':
        return UploadOCREngine(http, max_upload_bytes=config.OCR_MAX_UPLOAD_BYTES, **common)
    raise ValueError(f"Unknown OCR_MODE '{config.OCR_MODE}'")
