"""
Audit Request Helpers
=====================
Functions extracting audit facts from Starlette requests and responses.
"""

import uuid
from http import HTTPStatus
from typing import Dict, Optional

import structlog
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

logger = structlog.get_logger(__name__)

# Request-scoped state keys shared by the before/after phases
AUDIT_ACTION_KEY = "audit_action"
AUDIT_SCOPE_KEY = "audit_scope"

TRACE_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def headers_to_dict(headers: Headers) -> Dict[str, str]:
    """Flatten headers, joining repeated values with a comma."""
    result: Dict[str, str] = {}
    for key, value in headers.items():
        if key in result:
            result[key] = f"{result[key]}, {value}"
        else:
            result[key] = value
    return result


def has_form_content_type(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() in FORM_CONTENT_TYPES


async def get_form_variables(request: Request) -> Optional[Dict[str, str]]:
    """
    Read the string fields of a form-encoded body.

    The raw body is cached first so the downstream handler can still
    read it. Uploaded files are skipped.

    Returns:
        Dict of form fields, or None for non-form requests and for
        bodies the form parser rejects
    """
    if not has_form_content_type(request):
        return None
    await request.body()
    try:
        form = await request.form()
    except (MultiPartException, HTTPException, ValueError) as e:
        # Parser errors (python-multipart raises ValueError subclasses)
        logger.warning(
            "audit_form_parse_failed",
            path=request.url.path,
            content_type=request.headers.get("content-type"),
            error=str(e),
        )
        return None
    try:
        return {k: v for k, v in form.multi_items() if isinstance(v, str)}
    finally:
        await form.close()


def decode_body(data: bytes, content_type: Optional[str]) -> str:
    """Decode body bytes using the content-type charset, UTF-8 by default."""
    charset = "utf-8"
    if content_type and "charset=" in content_type:
        charset = content_type.split("charset=")[-1].split(";")[0].strip().strip('"') or charset
    try:
        return data.decode(charset, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


async def get_request_body(request: Request) -> str:
    """Read the whole request body once; Starlette caches it for downstream."""
    body = await request.body()
    return decode_body(body, request.headers.get("content-type"))


def get_content_length(headers: Headers) -> Optional[int]:
    value = headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_status_code_string(status_code: int) -> str:
    """Standard reason phrase for a status code, e.g. 404 -> 'Not Found'."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown"


def get_display_url(request: Request) -> str:
    return str(request.url)


def get_user_name(request: Request) -> Optional[str]:
    """Authenticated user's display name, when an auth backend is installed."""
    user = request.scope.get("user")
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "display_name", None) or None


def get_client_ip(request: Request) -> Optional[str]:
    client = request.client
    if client:
        return client.host
    return None


def get_trace_id(request: Request) -> str:
    """Correlation id from the inbound headers, or a fresh one."""
    for header in TRACE_ID_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return uuid.uuid4().hex
