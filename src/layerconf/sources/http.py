from __future__ import annotations

import json
import tomllib
from typing import Any, Dict, Mapping, Optional

import httpx
import yaml

from ..core.source import TreeSource

_CONTENT_TYPES = {
    "application/json": "json",
    "application/yaml": "yaml",
    "application/x-yaml": "yaml",
    "text/yaml": "yaml",
    "application/toml": "toml",
}


def _format_from_url(url: str) -> Optional[str]:
    path = url.split("?", 1)[0].lower()
    for suffix, fmt in ((".json", "json"), (".yaml", "yaml"), (".yml", "yaml"), (".toml", "toml")):
        if path.endswith(suffix):
            return fmt
    return None


class HttpSource(TreeSource):
    """A JSON, YAML or TOML document served over HTTP.

    Refreshing sends ``If-None-Match`` with the last ``ETag``; a ``304``
    response means the document is unchanged.
    """

    refreshable = True

    def __init__(
        self,
        url: str,
        name: Optional[str] = None,
        format: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 20.0,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(name or f"http:{url}")
        self.url = url
        self.format = format
        self._etag: Optional[str] = None
        self._owns_client = client is None
        self._client = client or httpx.Client(headers=headers or {}, timeout=timeout)
        try:
            self.load()
        except Exception:
            if self._owns_client:
                self._client.close()
            raise

    def _request(self, etag: Optional[str]) -> httpx.Response:
        headers = {"If-None-Match": etag} if etag else {}
        return self._client.get(self.url, headers=headers)

    def _parse(self, resp: httpx.Response) -> Mapping[str, Any]:
        content_type = resp.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        fmt = self.format or _CONTENT_TYPES.get(content_type) or _format_from_url(self.url) or "json"
        text = resp.text
        if fmt == "yaml":
            data = yaml.safe_load(text) or {}
        elif fmt == "toml":
            data = tomllib.loads(text)
        else:
            data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.url}: document must be a mapping")
        return data

    def _fetch(self) -> Mapping[str, Any]:
        resp = self._request(None)
        resp.raise_for_status()
        data = self._parse(resp)
        self._etag = resp.headers.get("etag")
        return data

    def _fetch_if_modified(self) -> Optional[Mapping[str, Any]]:
        resp = self._request(self._etag)
        if resp.status_code == 304:
            return None
        resp.raise_for_status()
        data = self._parse(resp)
        self._etag = resp.headers.get("etag")
        return data

    def close(self) -> None:
        self._client.close()
