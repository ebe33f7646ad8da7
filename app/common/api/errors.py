from typing import Optional

from fastapi import HTTPException


class _HTTPError(HTTPException):
    status: int
    default_detail: str

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status, detail=detail or self.default_detail)


class HTTP400(_HTTPError):
    """400 Bad Request, the record couldn't be translated or Zoho rejected it"""

    status = 400
    default_detail = 'Bad request'


class HTTP403(_HTTPError):
    status = 403
    default_detail = 'Forbidden'


class HTTP404(_HTTPError):
    status = 404
    default_detail = 'Not found'


class HTTP502(_HTTPError):
    """502 Bad Gateway, we couldn't talk to Zoho"""

    status = 502
    default_detail = 'Bad gateway'
