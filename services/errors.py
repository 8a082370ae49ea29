"""
Error taxonomy for the relay routes.
Every error carries a caller-safe message and the HTTP status it maps to.
"""


class RelayError(Exception):
    """Base class for errors reported to the caller as {"error": message}"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(RelayError):
    """A required request field is missing"""
    status_code = 400


class UpstreamFetchError(RelayError):
    """The image could not be downloaded from imageUrl"""


class UpstreamProcessingError(RelayError):
    """The OCR provider flagged a processing error"""


class UpstreamEmptyReplyError(RelayError):
    """The language model returned no completion content"""


class UnexpectedFailure(RelayError):
    """Catch-all for the image relay"""


class ParseFailure(RelayError):
    """Catch-all for the text relay"""
