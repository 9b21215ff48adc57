"""
Scan assembly: joins entropy readings and network resolution into immutable records.

Network resolution and the asynchronous audio reading run concurrently; the
synchronous readings happen inline once both have settled. Nothing is stored
here: callers receive a ScanResult and decide how to publish it.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from .hashing import synthesize_id
from .logger import get_logger
from .models import DEFAULT_CONFIDENCE, FingerprintRecord, NetworkRecord, ScanResult
from .network import resolve_network_async
from .providers import DEFAULT_PROVIDERS, ProviderSpec
from .sources import (
    GENERIC_GPU,
    EntropySample,
    cpu_cores,
    device_memory,
    read_source,
    read_source_async,
)

SCAN_FAILED_MESSAGE = "Scan failed. Please retry."


class ScanError(Exception):
    """Raised when scan assembly fails unexpectedly. Carries a display message."""

    def __init__(self, message: str = SCAN_FAILED_MESSAGE):
        super().__init__(message)
        self.message = message


async def _no_audio():
    return None


@dataclass(frozen=True)
class EntropyReaders:
    """Reader callables for each entropy source. Returning None means N/A."""

    canvas: Callable = lambda: None
    audio: Callable[[], Awaitable] = _no_audio
    gpu: Callable = lambda: GENERIC_GPU
    cores: Callable = cpu_cores
    memory: Callable = device_memory
    bot: Callable = lambda: False


def estimate_confidence(samples: Sequence[EntropySample]) -> float:
    """Scale the display confidence by the share of sources that produced a value."""
    if not samples:
        return 0.0
    usable = sum(1 for s in samples if s.is_value)
    return round(DEFAULT_CONFIDENCE * usable / len(samples), 1)


def build_fingerprint(
    canvas: EntropySample,
    audio: EntropySample,
    gpu: EntropySample,
    cores: EntropySample,
    memory: EntropySample,
    is_bot_detected: bool = False,
    compute_confidence: bool = False,
) -> FingerprintRecord:
    """Synthesize the visitor ID from (canvas, audio, gpu, cores, memory), in that order."""
    samples = (canvas, audio, gpu, cores, memory)
    confidence = estimate_confidence(samples) if compute_confidence else DEFAULT_CONFIDENCE
    return FingerprintRecord(
        visitor_id=synthesize_id(*samples),
        canvas_id=canvas.display,
        audio_id=audio.display,
        gpu=str(gpu.display),
        cores=cores.display,
        memory=memory.display,
        confidence=confidence,
        is_bot_detected=is_bot_detected,
    )


async def run_scan(
    readers: Optional[EntropyReaders] = None,
    providers: Sequence[ProviderSpec] = DEFAULT_PROVIDERS,
    session=None,
    timeout: Optional[float] = None,
    compute_confidence: bool = False,
    resolve: Callable[..., Awaitable[NetworkRecord]] = resolve_network_async,
) -> ScanResult:
    """
    Run one full scan.

    Args:
        readers: Entropy readers (default: host readers)
        providers: Ordered provider specs for network resolution
        session: requests-compatible session passed to the resolver
        timeout: Per-provider timeout in seconds
        compute_confidence: Derive confidence from usable sources instead of the fixed 99.9
        resolve: Network resolver coroutine

    Returns:
        ScanResult with the fingerprint and network records

    Raises:
        ScanError: If either concurrent branch fails unexpectedly
    """
    readers = readers or EntropyReaders()
    try:
        network, audio = await asyncio.gather(
            resolve(providers, session, timeout),
            read_source_async(readers.audio, "audio"),
        )

        canvas = read_source(readers.canvas, "canvas")
        gpu = read_source(readers.gpu, "gpu")
        cores = read_source(readers.cores, "cores")
        memory = read_source(readers.memory, "memory")
        bot = read_source(readers.bot, "bot")

        fingerprint = build_fingerprint(
            canvas,
            audio,
            gpu,
            cores,
            memory,
            is_bot_detected=bot.is_value and bot.value is True,
            compute_confidence=compute_confidence,
        )
    except Exception as e:
        get_logger().error("Scan initialization failed", error=repr(e))
        raise ScanError() from e

    get_logger().info("Scan complete", visitor_id=fingerprint.visitor_id, network_status=network.status)
    return ScanResult(fingerprint=fingerprint, network=network)


def scan(readers: Optional[EntropyReaders] = None, **kwargs) -> ScanResult:
    """Synchronous entry point around run_scan."""
    return asyncio.run(run_scan(readers, **kwargs))
