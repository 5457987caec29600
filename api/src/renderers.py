"""
JSON rendering variants for FastAPI responses.

Each response class serializes its content compactly with sorted keys and
differs only in how the encoded text is post-processed:

- JSONRenderResponse: HTML-sensitive characters escaped as unicode escapes
- PureJSONResponse: characters emitted literally
- AsciiJSONResponse: HTML-escaped and restricted to ASCII
- SecureJSONResponse: arrays prefixed to defeat JSON hijacking
- JSONPResponse: payload wrapped in a sanitized callback invocation
"""

import json
from typing import Any, Mapping, Optional

from starlette.background import BackgroundTask
from starlette.responses import Response


JSON_MEDIA_TYPE = "application/json; charset=utf-8"
JAVASCRIPT_MEDIA_TYPE = "application/javascript; charset=utf-8"

# Characters a browser may interpret when JSON is embedded in HTML.
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

_JS_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "<": "\\u003C",
    ">": "\\u003E",
    "&": "\\u0026",
    "=": "\\u003D",
}


def encode_json(content: Any, ensure_ascii: bool = False) -> str:
    """Serialize content with no insignificant whitespace and sorted keys."""
    return json.dumps(
        content,
        ensure_ascii=ensure_ascii,
        allow_nan=False,
        separators=(",", ":"),
        sort_keys=True,
    )


def escape_html(text: str) -> str:
    """
    Replace HTML-sensitive characters with JSON unicode escapes.

    Safe on encoder output: these characters can only occur inside string
    literals, where the escaped form decodes to the same value.
    """
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


def escape_js(text: str) -> str:
    """Escape text so it can be emitted inside a JavaScript expression."""
    out = []
    for ch in text:
        if ch in _JS_ESCAPES:
            out.append(_JS_ESCAPES[ch])
        elif ord(ch) < 0x20 or not ch.isprintable():
            out.append("\\u%04X" % ord(ch))
        else:
            out.append(ch)
    return "".join(out)


class JSONRenderResponse(Response):
    """JSON with HTML-sensitive characters escaped."""

    media_type = JSON_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return escape_html(encode_json(content)).encode("utf-8")


class PureJSONResponse(Response):
    """JSON with characters emitted literally."""

    media_type = JSON_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return encode_json(content).encode("utf-8")


class AsciiJSONResponse(Response):
    """JSON restricted to ASCII; non-ASCII code points become \\uXXXX."""

    media_type = JSON_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return escape_html(encode_json(content, ensure_ascii=True)).encode("ascii")


class SecureJSONResponse(Response):
    """
    JSON that cannot be evaluated as a script when it is an array.

    A top-level list is prefixed with ``prefix`` (``while(1);`` by default)
    so that a cross-site ``<script>`` include spins instead of exposing the
    data. Objects are rendered unchanged.
    """

    media_type = JSON_MEDIA_TYPE

    def __init__(
        self,
        content: Any,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        prefix: str = "while(1);",
        background: Optional[BackgroundTask] = None,
    ) -> None:
        self.prefix = prefix
        super().__init__(content, status_code, headers, None, background)

    def render(self, content: Any) -> bytes:
        body = escape_html(encode_json(content))
        if isinstance(content, (list, tuple)):
            body = self.prefix + body
        return body.encode("utf-8")


class JSONPResponse(Response):
    """
    JSON wrapped as ``callback(payload);`` for cross-origin script loading.

    When ``callback`` is empty the response degrades to plain JSON.
    """

    media_type = JAVASCRIPT_MEDIA_TYPE

    def __init__(
        self,
        content: Any,
        callback: Optional[str] = None,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        background: Optional[BackgroundTask] = None,
    ) -> None:
        self.callback = callback or ""
        media_type = JAVASCRIPT_MEDIA_TYPE if self.callback else JSON_MEDIA_TYPE
        super().__init__(content, status_code, headers, media_type, background)

    def render(self, content: Any) -> bytes:
        payload = escape_html(encode_json(content))
        if not self.callback:
            return payload.encode("utf-8")
        return f"{escape_js(self.callback)}({payload});".encode("utf-8")
