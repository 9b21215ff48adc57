"""
Ordered geo-lookup provider table.

Order is precedence: the resolver tries providers top to bottom and the first
accepted response wins. Each provider's quirks live here as data.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .schema import Schema, IP_API_SCHEMA, IPWHO_SCHEMA, DBIP_SCHEMA

JSON = "json"
TEXT = "text"

GEO_FIELDS = ("ip", "city", "region", "country", "isp")


@dataclass(frozen=True)
class ProviderSpec:
    url: str
    response_type: str = JSON
    field_map: Optional[Dict[str, str]] = None
    schema: Optional[Schema] = None
    # (field, value) pair signalling an in-band failure, e.g. ("status", "fail")
    failure_sentinel: Optional[Tuple[str, Any]] = None
    # Fixed source label for text providers
    source: Optional[str] = None

    @property
    def accept_header(self) -> str:
        return "application/json" if self.response_type == JSON else "text/plain"

    def is_failure(self, data: Any) -> bool:
        if self.failure_sentinel is None or not isinstance(data, dict):
            return False
        key, value = self.failure_sentinel
        if key not in data:
            return False
        if isinstance(value, bool):
            # success: 0 is not success: false
            return data[key] is value
        return data[key] == value


IP_API = ProviderSpec(
    url="http://ip-api.com/json/?fields=status,query,country,regionName,city,isp",
    field_map={
        "ip": "query",
        "city": "city",
        "region": "regionName",
        "country": "country",
        "isp": "isp",
    },
    schema=IP_API_SCHEMA,
    failure_sentinel=("status", "fail"),
)

IPWHO = ProviderSpec(
    url="https://ipwho.is/",
    field_map={
        "ip": "ip",
        "city": "city",
        "region": "region",
        "country": "country",
        "isp": "connection.isp",
    },
    schema=IPWHO_SCHEMA,
    failure_sentinel=("success", False),
)

DBIP = ProviderSpec(
    url="https://api.db-ip.com/v2/free/self",
    field_map={
        "ip": "ipAddress",
        "city": "city",
        "region": "regionName",
        "country": "countryName",
        "isp": "isp",
    },
    schema=DBIP_SCHEMA,
)

CLOUDFLARE_TRACE = ProviderSpec(
    url="https://www.cloudflare.com/cdn-cgi/trace",
    response_type=TEXT,
    source="cloudflare.com",
)

DEFAULT_PROVIDERS: Tuple[ProviderSpec, ...] = (IP_API, IPWHO, DBIP, CLOUDFLARE_TRACE)
