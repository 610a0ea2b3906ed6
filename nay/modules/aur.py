# nay/modules/aur.py
"""
aur.py - AUR RPC metadata client

Request:  GET <rpc_url>?v=5&type=info&arg=<name>
Response: {"results": [{"name"|"Name", "version"|"Version", "description"|"Description"}, ...]}

Only the first result is used. Zero results is a normal "not found", not an
error. One attempt per call, no retries.
"""

from __future__ import annotations

import http.client
import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from nay import __version__
from nay.modules.errors import NetworkError, ProtocolError
from nay.modules.logging import get_logger

logger = get_logger("aur")

DEFAULT_RPC_URL = "https://aur.archlinux.org/rpc/"
RPC_VERSION = 5


@dataclass(frozen=True)
class PackageMetadata:
    name: str
    version: str
    description: str = ""

    @classmethod
    def from_result(cls, entry: Any) -> "PackageMetadata":
        if not isinstance(entry, dict):
            raise ProtocolError(f"unexpected result entry: {entry!r}")
        name = _pick(entry, "name")
        version = _pick(entry, "version")
        if not isinstance(name, str) or not isinstance(version, str):
            raise ProtocolError("result entry is missing name or version")
        description = _pick(entry, "description")
        return cls(name=name, version=version, description=str(description) if description is not None else "")


def _pick(entry: Dict[str, Any], key: str) -> Any:
    # AUR itself answers with capitalized keys
    if key in entry:
        return entry[key]
    return entry.get(key.capitalize())


class AurClient:
    def __init__(self, rpc_url: str = DEFAULT_RPC_URL,
                 timeout: Optional[float] = None, user_agent: Optional[str] = None,
                 opener: Optional[Callable[..., Any]] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.user_agent = user_agent or f"nay/{__version__}"
        self._open = opener or urllib.request.urlopen

    def info_url(self, name: str) -> str:
        query = urllib.parse.urlencode({"v": RPC_VERSION, "type": "info", "arg": name})
        sep = "&" if "?" in self.rpc_url else "?"
        return f"{self.rpc_url}{sep}{query}"

    def _get(self, url: str) -> bytes:
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent, "Accept": "application/json"})
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            with self._open(req, **kwargs) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise NetworkError(f"AUR returned HTTP {e.code} for {url}") from e
        except urllib.error.URLError as e:
            raise NetworkError(f"Failed to reach AUR: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise NetworkError(f"Timed out talking to AUR: {e}") from e
        except (OSError, http.client.HTTPException) as e:
            raise NetworkError(f"Failed to reach AUR: {e}") from e

    def lookup(self, name: str) -> Optional[PackageMetadata]:
        url = self.info_url(name)
        logger.debug("GET %s", url)
        body = self._get(url)
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Failed to parse AUR response: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolError("AUR response is not a JSON object")
        if data.get("type") == "error":
            raise ProtocolError(f"AUR error: {data.get('error') or 'unknown error'}")
        results = data.get("results")
        if not isinstance(results, list):
            raise ProtocolError("AUR response has no results list")
        if not results:
            logger.debug("AUR has no package named %s", name)
            return None
        return PackageMetadata.from_result(results[0])
