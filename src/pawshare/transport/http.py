"""
REST HTTP client for the hosted platform and the web app API.
"""

from typing import Any, Optional

import httpx

from pawshare.errors import PawshareError

USER_AGENT = "pawshare-sdk/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._api_key = api_key
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def _auth_headers(self, authenticated: bool, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if authenticated and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        elif self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _parse(resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            raise PawshareError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}",
                                {"status": resp.status_code})
        if not resp.content:
            return None
        return resp.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PawshareError("network_error", f"{method} {path} failed: {e}") from e
        return self._parse(resp)

    async def get(self, path: str, params: Optional[dict[str, str]] = None,
                  authenticated: bool = True) -> Any:
        return await self._request("GET", path, params=params, headers=self._auth_headers(authenticated))

    async def post(self, path: str, body: Optional[dict[str, Any]] = None,
                   authenticated: bool = True) -> Any:
        return await self._request("POST", path, json=body, headers=self._auth_headers(authenticated))

    async def patch(self, path: str, body: dict[str, Any], params: Optional[dict[str, str]] = None,
                    headers: Optional[dict[str, str]] = None, authenticated: bool = True) -> Any:
        return await self._request("PATCH", path, json=body, params=params,
                                   headers=self._auth_headers(authenticated, headers))

    async def close(self) -> None:
        await self._client.aclose()
