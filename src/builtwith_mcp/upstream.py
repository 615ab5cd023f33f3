"""
BuiltWith API client

Issues exactly one GET per call and folds every failure mode (missing key,
network error, non-JSON body, error status) into an UpstreamFailure, so the
caller never has to handle exceptions from this layer.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Union

import requests

from .context import InvocationContext
from .models import ErrorKind, UpstreamFailure, UpstreamOk, UpstreamResult

logger = logging.getLogger(__name__)

ParamValue = Optional[Union[str, int, float, bool]]

KEY_PARAM = "KEY"


def build_query(credential: str, params: Optional[Mapping[str, ParamValue]]) -> Dict[str, str]:
    """
    Build the upstream query string.

    The credential goes first under KEY; None and empty values are dropped
    instead of being sent as empty strings.
    """
    query = {KEY_PARAM: credential}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        if text:
            query[key] = text
    return query


class UpstreamClient:
    """Thin async wrapper around a requests.Session for the BuiltWith API."""

    def __init__(
        self,
        hostname: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.hostname = hostname
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        return f"https://{self.hostname}/{path.lstrip('/')}"

    async def call(
        self,
        path: str,
        params: Optional[Mapping[str, ParamValue]],
        context: InvocationContext,
    ) -> UpstreamResult:
        """
        Call one BuiltWith endpoint with the context's credential.

        Args:
            path: Endpoint path, e.g. "v22/api.json"
            params: Upstream query parameters (uppercase BuiltWith names)
            context: Credential scope of the current invocation

        Returns:
            UpstreamOk with the parsed body, or UpstreamFailure
        """
        credential = context.resolved_credential
        if not credential:
            return UpstreamFailure(
                kind=ErrorKind.AUTH_MISSING,
                message="Missing BUILTWITH_API_KEY.",
            )

        url = self.url_for(path)
        query = build_query(credential, params)

        # requests is blocking; keep the event loop free for other invocations.
        try:
            response = await asyncio.to_thread(
                self.session.get, url, params=query, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Failed to reach BuiltWith API at {path}: {e}")
            return UpstreamFailure(
                kind=ErrorKind.NETWORK_ERROR,
                message="Failed to reach BuiltWith API.",
                details=str(e),
            )

        try:
            data: Any = response.json()
        except ValueError:
            logger.warning(f"BuiltWith API returned non-JSON body for {path} (status {response.status_code})")
            return UpstreamFailure(
                kind=ErrorKind.BAD_UPSTREAM_RESPONSE,
                message="BuiltWith API did not return JSON.",
                status=response.status_code,
            )

        if not 200 <= response.status_code < 300:
            logger.warning(f"BuiltWith API error for {path}: status {response.status_code}")
            return UpstreamFailure(
                kind=ErrorKind.UPSTREAM_ERROR,
                message="BuiltWith API error.",
                status=response.status_code,
                data=data,
            )

        return UpstreamOk(payload=data)

    def close(self) -> None:
        self.session.close()
