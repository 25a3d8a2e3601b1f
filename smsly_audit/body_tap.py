"""
Response Body Tap
=================
Captures a copy of the response body while delivering identical bytes
to the client.

Under Starlette's ``call_next`` the response output channel is the
response's ``body_iterator``. The tap drains it into memory during the
downstream invocation and then swaps in a replay iterator, so status,
headers and bytes seen by the client are unchanged.
"""

from typing import AsyncIterator, List, Optional, Union

from starlette.responses import Response

from .helpers import decode_body, get_content_length
from .models import BodyContent


class BodyTap:
    """In-memory buffer standing in for a response's output channel."""

    def __init__(self):
        self._chunks: List[bytes] = []

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    @property
    def length(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    @staticmethod
    def _to_bytes(chunk: Union[bytes, str], charset: str) -> bytes:
        if isinstance(chunk, str):
            return chunk.encode(charset)
        return bytes(chunk)

    async def capture(self, response: Response) -> Response:
        """
        Drain the downstream body into the buffer and attach the replay.

        Errors raised by the downstream body iterator propagate to the
        caller as downstream failures.
        """
        charset = getattr(response, "charset", "utf-8") or "utf-8"
        async for chunk in response.body_iterator:
            self._chunks.append(self._to_bytes(chunk, charset))
        response.body_iterator = self._replay()
        return response

    async def _replay(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            yield chunk

    def decode(self, content_type: Optional[str]) -> str:
        """Decode the buffered bytes using the content-type charset."""
        return decode_body(self.body, content_type)

    def to_body_content(self, response: Response) -> BodyContent:
        content_type = response.headers.get("content-type")
        length = get_content_length(response.headers)
        return BodyContent(
            type=content_type,
            length=length if length is not None else self.length,
            value=self.decode(content_type),
        )
