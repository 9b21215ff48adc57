"""
Entropy source contract.

Readers for host capabilities live outside this package; what they return is
normalized here into EntropySample, a tagged value that is either a usable
reading, Blocked (capability present but denied or failing) or N/A
(capability absent). Readers never raise past read_source.
"""

import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from .logger import get_logger

BLOCKED = "Blocked"
NOT_AVAILABLE = "N/A"
GENERIC_GPU = "Generic / Virtual"

VALUE = "value"
BLOCKED_KIND = "blocked"
UNAVAILABLE_KIND = "unavailable"

Reading = Union[str, int, float]


@dataclass(frozen=True)
class EntropySample:
    kind: str
    value: Optional[Reading] = None

    @classmethod
    def of(cls, value: Reading) -> "EntropySample":
        # Readers that already speak in sentinel strings map onto the tags
        if value == BLOCKED:
            return cls.blocked()
        if value == NOT_AVAILABLE:
            return cls.unavailable()
        return cls(VALUE, value)

    @classmethod
    def blocked(cls) -> "EntropySample":
        return cls(BLOCKED_KIND)

    @classmethod
    def unavailable(cls) -> "EntropySample":
        return cls(UNAVAILABLE_KIND)

    @property
    def is_value(self) -> bool:
        return self.kind == VALUE

    @property
    def display(self) -> Reading:
        if self.kind == BLOCKED_KIND:
            return BLOCKED
        if self.kind == UNAVAILABLE_KIND:
            return NOT_AVAILABLE
        return self.value


def read_source(reader: Callable[[], Optional[Reading]], name: str) -> EntropySample:
    """Call a synchronous reader, converting failures into sentinels."""
    try:
        value = reader()
    except Exception as e:
        get_logger().warning(f"{name} reading blocked", error=repr(e))
        return EntropySample.blocked()
    if value is None:
        return EntropySample.unavailable()
    return EntropySample.of(value)


async def read_source_async(reader: Callable[[], Awaitable[Optional[Reading]]], name: str) -> EntropySample:
    """Await a coroutine reader, converting failures into sentinels."""
    try:
        value = await reader()
    except Exception as e:
        get_logger().warning(f"{name} reading blocked", error=repr(e))
        return EntropySample.blocked()
    if value is None:
        return EntropySample.unavailable()
    return EntropySample.of(value)


_GPU_PATTERNS = (
    # GeForce GTX 1660 Ti, Radeon RX 6800
    re.compile(r"(?:GeForce|Radeon|Intel)\s+([A-Z]{2,4}\s+\d+\w*(?:\s+\w+)?)", re.IGNORECASE),
    # GTX 1660 Ti, RTX 3080
    re.compile(r"([A-Z]{2,4}\s+\d+\w*(?:\s+\w+)?)"),
)
_MODEL = re.compile(r"([A-Z]{2,4}\s+\d+\w*(?:\s+\w+)?)")


def extract_gpu_model(renderer: Optional[str]) -> str:
    """
    Shorten an unmasked graphics renderer string to its model name.

    "ANGLE (NVIDIA, NVIDIA GeForce GTX 1660 Ti (0x00002182) Direct3D11 vs_5_0 ps_5_0, D3D11)"
    becomes "GTX 1660 Ti". Unrecognized renderers are returned unchanged.
    """
    if not renderer:
        return GENERIC_GPU

    for pattern in _GPU_PATTERNS:
        m = pattern.search(renderer)
        if m and m.group(1):
            return m.group(1).strip()

    for vendor in ("GeForce", "Radeon"):
        m = re.search(rf"{vendor}\s+([^()]+)", renderer, re.IGNORECASE)
        if not m:
            continue
        model = re.split(r"[()]", m.group(1))[0].strip()
        if not model:
            return renderer
        inner = _MODEL.search(model)
        return inner.group(1).strip() if inner else model

    return renderer


# Host readers. These return None when the capability is absent.

def cpu_cores() -> Optional[int]:
    return os.cpu_count() or None


def device_memory() -> Optional[Union[int, float]]:
    """Physical memory in GiB, bucketed like navigator.deviceMemory (0.25 to 8)."""
    try:
        total = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        return None
    if total <= 0:
        return None
    gib = total / 2 ** 30
    bucket = 2 ** math.floor(math.log2(gib))
    bucket = min(max(bucket, 0.25), 8)
    return int(bucket) if bucket >= 1 else bucket


def local_timezone() -> str:
    """Best-effort IANA timezone name of the host, or "" when unknown."""
    tz = os.getenv("TZ", "").lstrip(":").strip()
    if "/" in tz:
        return tz

    tz_file = Path("/etc/timezone")
    try:
        name = tz_file.read_text(encoding="utf-8").strip()
        if name:
            return name
    except OSError:
        pass

    localtime = Path("/etc/localtime")
    try:
        target = str(localtime.resolve())
    except OSError:
        return tz
    if "zoneinfo/" in target:
        return target.split("zoneinfo/", 1)[1]
    return tz
