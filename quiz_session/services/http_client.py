"""Authorized JSON requests against the remote edu service."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import requests

from quiz_session.errors import HttpError
from quiz_session.services.auth import TokenProvider
from quiz_session.services.cancel import CancelToken
from quiz_session.services.dedupe import RequestDeduplicator, dedupe_key
from quiz_session.utils.json_utils import json_compact, parse_body_text

log = logging.getLogger(__name__)


def can_resend(body: object) -> bool:
    """Only bodies we can replay byte-for-byte are retried after a 401."""
    return body is None or isinstance(body, (str, Mapping))


class AuthorizedHttpClient:
    """
    Sends requests with a bearer token, collapsing identical concurrent ones.

    A 401 is retried once after a forced token refresh, and only when the
    body can be resent. Anything else that is not 2xx raises ``HttpError``.
    """

    def __init__(
        self,
        base_url: str,
        tokens: TokenProvider,
        session: requests.Session | None = None,
        deduplicator: RequestDeduplicator | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.tokens = tokens
        self.session = session or requests.Session()
        self.deduplicator = deduplicator or RequestDeduplicator()

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json_body: object = None,
        data: object = None,
        cancel: CancelToken | None = None,
        timeout_ms: int = 10000,
        label: str | None = None,
    ) -> object:
        method = method.upper()
        url = self.url_for(path)
        label = label or f"{method} {path}"
        headers = {"Accept": "application/json"}
        body = data
        if json_body is not None:
            body = json_compact(json_body)
            headers["Content-Type"] = "application/json"

        key = dedupe_key(method, url, body)
        return await self.deduplicator.run(
            key,
            lambda: self._send_with_retry(method, url, body, headers, cancel, timeout_ms, label),
        )

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        body: object,
        headers: dict[str, str],
        cancel: CancelToken | None,
        timeout_ms: int,
        label: str,
    ) -> object:
        retried_unauthorized = False
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled(label)
            response = await self._send_once(method, url, body, headers, timeout_ms)
            payload = parse_body_text(response.text)
            if response.ok:
                return payload

            if (
                response.status_code == 401
                and not retried_unauthorized
                and self.tokens.can_refresh
                and can_resend(body)
            ):
                retried_unauthorized = True
                log.info("%s got 401; refreshing token and retrying once", label)
                await self.tokens.refresh()
                continue

            raise HttpError(url, response.status_code, response.reason or "", payload)

    async def _send_once(
        self,
        method: str,
        url: str,
        body: object,
        headers: dict[str, str],
        timeout_ms: int,
    ) -> requests.Response:
        merged = dict(headers)
        token = await self.tokens.get_access_token()
        if token:
            merged["Authorization"] = f"Bearer {token}"
        data = body.encode("utf-8") if isinstance(body, str) else body
        return await asyncio.to_thread(
            self.session.request,
            method,
            url,
            data=data,
            headers=merged,
            timeout=timeout_ms / 1000,
        )
