"""
Security headers added to every response.

    X-Content-Type-Options: nosniff     don't guess a type other than Content-Type
    X-Frame-Options: DENY               never render inside a frame (clickjacking)
    X-XSS-Protection: 1; mode=block     legacy browser XSS filter: block the page
"""

from typing import Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


class SecurityHeadersMiddleware(Middleware):

    def __init__(self, headers: Optional[Dict[str, str]] = None):
        self.headers = dict(SECURITY_HEADERS if headers is None else headers)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)
        for name, value in self.headers.items():
            response.set_header(name, value)
        return response
