"""Thin httpx wrapper for Azure Resource Manager calls"""

import logging
from typing import Any, Dict, Iterator, Optional

import httpx

from ...core.exceptions import AuthenticationError, TransportError

logger = logging.getLogger(__name__)

MANAGEMENT_URL = "https://management.azure.com"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"


def describe_error(response: httpx.Response) -> str:
    """Status line plus the ARM error message when the body carries one"""
    try:
        error = response.json().get("error", {})
        message = error.get("message") or response.text
    except ValueError:
        message = response.text
    return f"status {response.status_code}: {message}"


class AzureRestClient:
    """Bearer-token authenticated JSON requests against management.azure.com"""

    def __init__(self, credential: Any, http: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.credential = credential
        self.http = http or httpx.Client(timeout=timeout)

    def token(self) -> str:
        try:
            return self.credential.get_token(MANAGEMENT_SCOPE).token
        except Exception as e:
            raise AuthenticationError(f"Failed to get Azure access token: {e}")

    def request(self, method: str, url: str, token: Optional[str] = None, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token or self.token()}"
        try:
            return self.http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed", e)

    def get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        response = self.request("GET", url, params=params)
        if response.status_code != 200:
            raise TransportError(f"GET {url} failed with {describe_error(response)}")
        return response.json()

    def iter_values(self, url: str, params: Optional[Dict[str, str]] = None) -> Iterator[Dict[str, Any]]:
        """Yield ``value`` items across ``nextLink`` pages"""
        next_url: Optional[str] = url
        while next_url:
            body = self.get_json(next_url, params)
            for item in body.get("value", []):
                yield item
            next_url = body.get("nextLink")
            # nextLink already carries the query string
            params = None

    def close(self) -> None:
        self.http.close()
