import json
from typing import Any
from urllib import request
from urllib.error import HTTPError, URLError

from .exceptions import LedgerUnavailableError


def _read_json(req: request.Request | str, url: str, timeout: float) -> Any:
    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
            return json.loads(raw) if raw.strip() else {}
    except HTTPError as exc:
        body = exc.read().decode("utf-8") if exc.fp else ""
        raise LedgerUnavailableError(
            f"HTTP {exc.code} calling {url}: {body}",
            url=url,
            status_code=exc.code,
        ) from exc
    except URLError as exc:
        raise LedgerUnavailableError(
            f"Cannot reach {url}: {exc.reason}",
            url=url,
            original_error=exc,
        ) from exc
    except (TimeoutError, ValueError) as exc:
        raise LedgerUnavailableError(
            f"Bad or missing response from {url}",
            url=url,
            original_error=exc,
        ) from exc


def post_json(url: str, payload: dict, timeout: float = 10) -> Any:
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    req = request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    return _read_json(req, url, timeout)


def get_json(url: str, timeout: float = 10) -> Any:
    return _read_json(url, url, timeout)
