"""
Network identity resolution with graceful degradation.

Providers are tried strictly one at a time in list order. Every failure mode
(transport error, in-band failure flag, schema mismatch, empty geo data) is
recovered by moving on to the next provider; when none is usable the record
is inferred from the local timezone. resolve_network never raises.
"""

import asyncio
from typing import Any, Optional, Sequence

import requests

from .env import DEFAULT_API_TIMEOUT_MS
from .logger import get_logger
from .models import NetworkRecord, VERIFIED, PARTIAL_FALLBACK, RESTRICTED
from .normalize import UNKNOWN, clean_field, hostname, line_value, resolve_path
from .providers import DEFAULT_PROVIDERS, JSON, ProviderSpec
from .schema import validate_payload
from .sources import local_timezone

LOCAL_SOURCE = "Local Inference"


class ProviderRejected(Exception):
    """A provider response that must be skipped."""

    reason = "rejected"


class ProviderTransportError(ProviderRejected):
    reason = "transport"


class ProviderFailureSentinel(ProviderRejected):
    reason = "failure_sentinel"


class ProviderValidationError(ProviderRejected):
    reason = "validation"


class QualityGateRejection(ProviderRejected):
    reason = "quality_gate"


def fetch_provider(provider: ProviderSpec, session, timeout: float) -> requests.Response:
    """GET a provider URL once. No retries.

    Raises:
        ProviderTransportError: On any HTTP error, timeout, or request failure
    """
    try:
        resp = session.get(
            provider.url,
            headers={"Accept": provider.accept_header},
            timeout=timeout,
        )
        resp.raise_for_status()
        return resp
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "HTTPError"
        raise ProviderTransportError(f"request failed ({status}): {provider.url}") from e
    except requests.exceptions.Timeout as e:
        raise ProviderTransportError(f"request timed out: {provider.url}") from e
    except requests.exceptions.RequestException as e:
        raise ProviderTransportError(f"request error: {e}") from e


def parse_json_payload(provider: ProviderSpec, data: Any) -> NetworkRecord:
    """Turn a decoded JSON payload into a Verified record or raise ProviderRejected."""
    if provider.is_failure(data):
        raise ProviderFailureSentinel(f"provider reported failure: {provider.failure_sentinel}")

    if provider.schema is not None:
        errors = validate_payload(data, provider.schema)
        if errors:
            raise ProviderValidationError("; ".join(errors))

    if not provider.field_map:
        raise ProviderValidationError("provider has no field map")

    fields = provider.field_map
    city = clean_field(resolve_path(fields["city"], data))
    region = clean_field(resolve_path(fields["region"], data), default="")
    country = clean_field(resolve_path(fields["country"], data))
    isp = clean_field(resolve_path(fields["isp"], data))

    # ip is passed through verbatim, unlike the geo fields
    ip = resolve_path(fields["ip"], data)
    if not isinstance(ip, str) or not ip:
        ip = UNKNOWN

    if city == UNKNOWN and not region and country == UNKNOWN and isp == UNKNOWN:
        raise QualityGateRejection("response carries no geographic data")

    return NetworkRecord(
        ip=ip,
        city=city,
        region=region,
        country=country,
        isp=isp,
        status=VERIFIED,
        source=hostname(provider.url),
    )


def parse_trace(text: str, source: str = "cloudflare.com") -> NetworkRecord:
    """Parse a `key=value` trace body. Only ip and loc are used."""
    ip = line_value(text, "ip") or UNKNOWN
    loc = line_value(text, "loc") or UNKNOWN
    return NetworkRecord(
        ip=ip,
        city="Cloudflare Node",
        region=loc,
        country=loc,
        isp="Cloudflare",
        status=PARTIAL_FALLBACK,
        source=source,
    )


def attempt_provider(provider: ProviderSpec, session, timeout: float) -> NetworkRecord:
    resp = fetch_provider(provider, session, timeout)
    if provider.response_type != JSON:
        return parse_trace(resp.text, source=provider.source or hostname(provider.url))
    try:
        data = resp.json()
    except ValueError as e:
        raise ProviderValidationError(f"response is not JSON: {e}") from e
    return parse_json_payload(provider, data)


def local_fallback(timezone: Optional[str] = None) -> NetworkRecord:
    """
    Infer a low-trust record from the local timezone (e.g. "Europe/Berlin").

    Used when every provider is blocked or unusable so the UI still has a
    plausible network block to show, flagged as Restricted.
    """
    if timezone is None:
        timezone = local_timezone()
    parts = timezone.split("/")
    city = parts[1].replace("_", " ") if len(parts) > 1 and parts[1] else "Localhost"
    region = parts[0] or "System"
    return NetworkRecord(
        ip="Blocked / Hidden",
        city=city,
        region=region,
        country=UNKNOWN,
        isp="Firewall Detected",
        status=RESTRICTED,
        source=LOCAL_SOURCE,
    )


def resolve_network(
    providers: Sequence[ProviderSpec] = DEFAULT_PROVIDERS,
    session=None,
    timeout: Optional[float] = None,
    timezone: Optional[str] = None,
) -> NetworkRecord:
    """
    Resolve the visitor's network identity from the first usable provider.

    Args:
        providers: Ordered provider specs; earlier entries take precedence
        session: Object with a requests-compatible get(); a Session is created if omitted
        timeout: Per-provider timeout in seconds (default 3.0)
        timezone: Timezone override for the local fallback

    Returns:
        NetworkRecord; Restricted when every provider was skipped
    """
    logger = get_logger()
    if timeout is None:
        timeout = DEFAULT_API_TIMEOUT_MS / 1000.0

    own_session = session is None
    if own_session:
        session = requests.Session()
    try:
        for provider in providers:
            source = hostname(provider.url)
            logger.record_provider_attempt(source)
            logger.debug("Provider attempt", url=provider.url, type=provider.response_type)
            try:
                record = attempt_provider(provider, session, timeout)
            except ProviderRejected as e:
                logger.record_provider_rejected(source, e.reason)
                logger.warning("Provider skipped", url=provider.url, reason=e.reason, error=str(e))
                continue
            except Exception as e:
                logger.record_provider_rejected(source, "unexpected")
                logger.error("Provider raised unexpectedly", url=provider.url, error=repr(e))
                continue
            logger.record_provider_accepted(source)
            logger.info("Network resolved", source=record.source, status=record.status)
            return record
    finally:
        if own_session:
            session.close()

    fallback = local_fallback(timezone)
    logger.record_local_fallback()
    logger.warning("All providers exhausted, using local inference", region=fallback.region, city=fallback.city)
    return fallback


async def resolve_network_async(
    providers: Sequence[ProviderSpec] = DEFAULT_PROVIDERS,
    session=None,
    timeout: Optional[float] = None,
    timezone: Optional[str] = None,
) -> NetworkRecord:
    """Run resolve_network without blocking the event loop.

    Providers are still tried sequentially; only the blocking HTTP calls move off the loop.
    """
    return await asyncio.to_thread(resolve_network, providers, session, timeout, timezone)
