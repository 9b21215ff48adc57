import argparse
import json
import re

from . import __version__
from .env import Settings, load_env
from .hashing import coerce_source, cyrb53, synthesize_id
from .logger import get_logger, reset_logger
from .models import NetworkRecord, ScanResult
from .network import local_fallback, resolve_network
from .scan import EntropyReaders, ScanError, scan
from .sources import extract_gpu_model

DECIMAL = re.compile(r"-?\d+(\.\d+)?")


def _parse_source(raw: str):
    """CLI values are strings; plain decimal numbers hash like numbers.

    Anything that would not render back as typed ("007", "1_000", "16.0") stays a string.
    """
    m = DECIMAL.fullmatch(raw)
    if not m:
        return raw
    value = float(raw) if m.group(1) else int(raw)
    return value if coerce_source(value) == raw else raw


def _print_network(record: NetworkRecord) -> None:
    ip = record.ip if not record.is_restricted else f"{record.ip} (restricted)"
    print(f"IP: {ip}")
    print(f"  City: {record.city}")
    print(f"  Region: {record.region}")
    print(f"  Country: {record.country}")
    print(f"  ISP: {record.isp}")
    print(f"  Status: {record.status}")
    print(f"  Source: {record.source}")


def _print_scan(result: ScanResult) -> None:
    fp = result.fingerprint
    print(f"Visitor ID: {fp.visitor_id}")
    print(f"  Canvas: {fp.canvas_id}")
    print(f"  Audio: {fp.audio_id}")
    print(f"  GPU: {fp.gpu}")
    print(f"  Cores: {fp.cores}")
    print(f"  Memory: {fp.memory}")
    print(f"  Confidence: {fp.confidence}%")
    print(f"  Bot detected: {'yes' if fp.is_bot_detected else 'no'}")
    print()
    _print_network(result.network)


def cmd_hash(args: argparse.Namespace) -> None:
    value = cyrb53(args.text, args.seed)
    print(f"{value} ({value:X})")


def cmd_id(args: argparse.Namespace) -> None:
    print(synthesize_id(*(_parse_source(s) for s in args.sources)))


def cmd_network(args: argparse.Namespace) -> None:
    settings: Settings = args.settings
    record = resolve_network(timeout=settings.api_timeout, timezone=args.timezone)
    if args.json:
        print(json.dumps(record.to_dict(), indent=2))
    else:
        _print_network(record)
    if args.metrics:
        get_logger().log_metrics_summary()


def cmd_fallback(args: argparse.Namespace) -> None:
    record = local_fallback(args.timezone)
    if args.json:
        print(json.dumps(record.to_dict(), indent=2))
    else:
        _print_network(record)


def _reader(raw, fallback):
    """Fixed reading from a CLI flag, or the default reader when the flag is absent."""
    if raw is None:
        return fallback
    value = _parse_source(raw)
    return lambda: value


def _gpu_reader(renderer, fallback):
    """--gpu takes a raw renderer string and is shortened to its model name."""
    if renderer is None:
        return fallback
    return lambda: extract_gpu_model(renderer)


def _async_reader(raw, fallback):
    if raw is None:
        return fallback
    value = _parse_source(raw)

    async def reader():
        return value

    return reader


def cmd_scan(args: argparse.Namespace) -> None:
    settings: Settings = args.settings
    defaults = EntropyReaders()
    readers = EntropyReaders(
        canvas=_reader(args.canvas, defaults.canvas),
        audio=_async_reader(args.audio, defaults.audio),
        gpu=_gpu_reader(args.gpu, defaults.gpu),
        cores=_reader(args.cores, defaults.cores),
        memory=_reader(args.memory, defaults.memory),
    )
    try:
        result = scan(readers, timeout=settings.api_timeout, compute_confidence=args.computed_confidence)
    except ScanError as e:
        raise SystemExit(f"{e.message} Run 'visitorprint scan' again.")
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_scan(result)


def main(argv=None):
    # Load .env if present (VISITORPRINT_API_TIMEOUT, VISITORPRINT_LOG_LEVEL, ...)
    load_env()
    settings = Settings.from_env()
    reset_logger()
    get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_dir is not None,
    )

    parser = argparse.ArgumentParser(prog="visitorprint", description="Visitor fingerprint and network identity scanner")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    hsh = subparsers.add_parser("hash", help="Hash a string with cyrb53")
    hsh.add_argument("text", help="Text to hash")
    hsh.add_argument("--seed", type=int, default=0, help="Hash seed (default: 0)")
    hsh.set_defaults(func=cmd_hash)

    vid = subparsers.add_parser("id", help="Synthesize a visitor ID from entropy values, in order")
    vid.add_argument("sources", nargs="+", help="Entropy values, e.g. C1 A1 G 8 16")
    vid.set_defaults(func=cmd_id)

    net = subparsers.add_parser("network", help="Resolve network identity through the provider chain")
    net.add_argument("--timezone", help="Timezone used if every provider fails (default: host timezone)")
    net.add_argument("--json", action="store_true", help="Print the record as JSON")
    net.add_argument("--metrics", action="store_true", help="Log provider metrics after resolving")
    net.set_defaults(func=cmd_network)

    fbk = subparsers.add_parser("fallback", help="Show the locally inferred network record")
    fbk.add_argument("--timezone", help="Timezone such as America/Sao_Paulo (default: host timezone)")
    fbk.add_argument("--json", action="store_true", help="Print the record as JSON")
    fbk.set_defaults(func=cmd_fallback)

    scn = subparsers.add_parser("scan", help="Run a full scan with host readers")
    scn.add_argument("--canvas", help="Canvas hash reading (default: N/A)")
    scn.add_argument("--audio", help="Audio hash reading (default: N/A)")
    scn.add_argument("--gpu", help="GPU renderer string, shortened to its model (default: Generic / Virtual)")
    scn.add_argument("--cores", help="CPU core count (default: host value)")
    scn.add_argument("--memory", help="Device memory in GiB (default: host value)")
    scn.add_argument("--computed-confidence", action="store_true", help="Derive confidence from usable sources")
    scn.add_argument("--json", action="store_true", help="Print the result as JSON")
    scn.set_defaults(func=cmd_scan)

    args = parser.parse_args(argv)
    args.settings = settings

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
