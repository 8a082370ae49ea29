"""
Configuration for the receipt relay service
"""
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

OCR_MODES = ('reference', 'upload')


def _get_timeout(name: str, default: str = '0') -> Optional[float]:
    value = float(os.getenv(name, default) or default)
    # 0 disables the upstream timeout
    return value if value > 0 else None


class Config:
    """Application configuration"""

    # Server settings
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '3000'))

    # OCR provider (OCR.space)
    OCR_API_KEY: str = os.getenv('OCR_SPACE_KEY', '').strip()
    OCR_API_URL: str = os.getenv('OCR_API_URL', 'https://api.ocr.space/parse/image')
    OCR_ENGINE: str = os.getenv('OCR_ENGINE', '2')
    OCR_DEFAULT_FILETYPE: str = 'JPG'

    # reference: provider downloads the image itself
    # upload   : we download the image and re-upload the bytes
    OCR_MODE: str = os.getenv('OCR_MODE', 'reference').lower().strip()
    OCR_MAX_UPLOAD_BYTES: int = int(os.getenv('OCR_MAX_UPLOAD_BYTES', '1048576'))  # 1MB

    # Language-model provider (OpenAI-compatible chat completions)
    LLM_API_KEY: str = os.getenv('OPENAI_API_KEY', '').strip()
    LLM_API_URL: str = os.getenv('LLM_API_URL', 'https://api.openai.com/v1/chat/completions')
    LLM_MODEL: str = os.getenv('LLM_MODEL', 'gpt-4o')
    LLM_TEMPERATURE: float = 0.3

    # Upstream HTTP settings
    UPSTREAM_TIMEOUT: Optional[float] = _get_timeout('UPSTREAM_TIMEOUT')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    def validate(self) -> list:
        """
        Check settings that make the service unusable.
        Returns a list of warnings for settings that only degrade it.
        """
        if self.OCR_MODE not in OCR_MODES:
            raise ValueError(f"Unknown OCR_MODE '{self.OCR_MODE}'. Expected one of: {OCR_MODES}")

        warnings = []
        if not self.OCR_API_KEY:
            warnings.append('OCR_SPACE_KEY is not set; /ocr requests will be rejected by the provider')
        if not self.LLM_API_KEY:
            warnings.append('OPENAI_API_KEY is not set; /parse requests will be rejected by the provider')
        return warnings

config = Config()
