from __future__ import annotations

import http.client
import json
import socket
import urllib.error
import urllib.request
from typing import Any, Callable

from .models import DispatchOutcome, HttpError, Message, NetworkError, Success
from .payload import to_wire

USER_AGENT = "PTWebhook/1.0"
UNKNOWN_BODY = "Unknown error"
BODY_LIMIT = 4096

Opener = Callable[..., Any]


def _read_body(resp: Any) -> str:
    try:
        raw = resp.read(BODY_LIMIT)
    except (OSError, http.client.HTTPException):
        return UNKNOWN_BODY
    if not isinstance(raw, (bytes, bytearray)):
        # HTTPError raised without a response stream reads from an empty StringIO.
        return UNKNOWN_BODY
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def classify_transport_error(exc: BaseException) -> NetworkError:
    reason: Any = exc.reason if isinstance(exc, urllib.error.URLError) else exc
    if isinstance(reason, (TimeoutError, socket.timeout)):
        return NetworkError("timeout", str(reason) or "timed out")
    if isinstance(reason, (ConnectionError, socket.gaierror)):
        return NetworkError("connect", str(reason))
    if isinstance(reason, OSError) and reason.errno is not None:
        return NetworkError("connect", str(reason))
    return NetworkError("other", str(reason))


class Dispatcher:
    """One-shot POST of a message to a single webhook URL."""

    def __init__(self, url: str, timeout: float = 30.0, opener: Opener | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._open = opener or urllib.request.urlopen

    def build_request(self, message: Message) -> urllib.request.Request:
        data = json.dumps(to_wire(message)).encode("utf-8")
        return urllib.request.Request(
            self.url,
            data=data,
            method="POST",
            headers={
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    def send(self, message: Message) -> DispatchOutcome:
        try:
            req = self.build_request(message)
        except ValueError as exc:
            return NetworkError("other", f"malformed request: {exc}")

        try:
            with self._open(req, timeout=self.timeout) as resp:
                status = int(getattr(resp, "status", 0) or resp.getcode())
                if 200 <= status < 300:
                    return Success(status)
                return HttpError(status, _read_body(resp))
        except urllib.error.HTTPError as exc:
            return HttpError(exc.code, _read_body(exc))
        except urllib.error.URLError as exc:
            return classify_transport_error(exc)
        except (TimeoutError, socket.timeout) as exc:
            return NetworkError("timeout", str(exc) or "timed out")
        except ConnectionError as exc:
            return NetworkError("connect", str(exc))
        except (http.client.HTTPException, ValueError) as exc:
            return NetworkError("other", str(exc))
        except OSError as exc:
            return classify_transport_error(exc)
