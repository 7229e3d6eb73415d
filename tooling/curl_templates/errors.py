from typing import Optional


class CurlTemplateError(ValueError):
    """Base class for every error raised by curl_templates."""


class ParseError(CurlTemplateError):
    """The command text could not be turned into a Request."""


class SelectionError(CurlTemplateError):
    """A field name was rejected (empty or already taken)."""


class InstantiationError(CurlTemplateError):
    """
    A value could not be written at its location path.
    The offending path is kept on `location_path`.
    """
    def __init__(self, message: str, location_path: Optional[str] = None):
        super().__init__(message)
        self.location_path = location_path
