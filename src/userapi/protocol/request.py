from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from multidict import CIMultiDict


@dataclass
class HTTPRequest:
    src: Optional[str]
    method: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: Any = b""
    path_params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        if not isinstance(self.headers, CIMultiDict):
            self.headers = CIMultiDict(self.headers)

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    @property
    def keep_alive(self) -> bool:
        connection = (self.headers.get("Connection") or "").lower()
        if self.version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"
