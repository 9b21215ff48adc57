from dataclasses import dataclass, asdict
from typing import Any, Dict, Union

VERIFIED = "Verified"
PARTIAL_FALLBACK = "Partial (Fallback)"
RESTRICTED = "Restricted"

NETWORK_STATUSES = (VERIFIED, PARTIAL_FALLBACK, RESTRICTED)

DEFAULT_CONFIDENCE = 99.9

Scalar = Union[str, int, float]


@dataclass(frozen=True)
class NetworkRecord:
    ip: str
    city: str
    region: str
    country: str
    isp: str
    status: str     # one of NETWORK_STATUSES
    source: str     # provider hostname or "Local Inference"

    @property
    def is_restricted(self) -> bool:
        return self.status == RESTRICTED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FingerprintRecord:
    visitor_id: str
    canvas_id: Scalar
    audio_id: Scalar
    gpu: str
    cores: Scalar
    memory: Scalar
    confidence: float
    is_bot_detected: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visitorId": self.visitor_id,
            "canvasId": self.canvas_id,
            "audioId": self.audio_id,
            "gpu": self.gpu,
            "cores": self.cores,
            "memory": self.memory,
            "confidence": self.confidence,
            "isBotDetected": self.is_bot_detected,
        }


@dataclass(frozen=True)
class ScanResult:
    fingerprint: FingerprintRecord
    network: NetworkRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"fingerprint": self.fingerprint.to_dict(), "network": self.network.to_dict()}
