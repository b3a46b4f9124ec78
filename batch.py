# batch.py
import argparse
import dataclasses
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

import config
from candidates import clamp_requested_count, create_scan_request
from discovery import discover
from errors import InvalidUrl
from url_canon import canonicalize_host

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

DEFAULT_TARGETS_FILE = os.path.join("config", "cache-targets.json")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Build top-task URL lists for one or more sites.")
    p.add_argument("--domain-url", default=None, help="Single target domain or URL")
    p.add_argument("--requested-count", default=None, help="URL count for --domain-url (default: %d)" % config.DEFAULT_REQUESTED_COUNT)
    p.add_argument("--targets", default=DEFAULT_TARGETS_FILE,
                   help="Targets file: JSON {\"targets\": [...]} or text lines 'url[,count]'")
    p.add_argument("--out", default="cache", help="Output directory (default: cache)")
    p.add_argument("--ignore-robots", action="store_true", help="Ignore robots.txt Disallow rules while crawling")
    p.add_argument("--no-search", action="store_true", help="Skip the external search tier")
    return p.parse_args(argv)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def read_targets(path: str) -> list[dict]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Targets file not found: {path}")

    if path.lower().endswith(".json"):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        targets = data.get("targets") if isinstance(data, dict) else None
        if not isinstance(targets, list):
            return []
        return [
            {"domainUrl": t.get("domainUrl", ""), "requestedCount": t.get("requestedCount")}
            for t in targets
            if isinstance(t, dict)
        ]

    targets = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            raw = line.strip()
            if not raw or raw.startswith("#"):
                continue
            if "," in raw:
                url, count = raw.split(",", 1)
                targets.append({"domainUrl": url.strip(), "requestedCount": count.strip()})
            else:
                targets.append({"domainUrl": raw, "requestedCount": None})
    return targets


def cache_file_name(canonical_host: str, requested_count: int) -> str:
    return f"{canonicalize_host(canonical_host)}-{requested_count}.json"


def save_json(payload: dict, out_path: str) -> None:
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def process_target(target: dict, out_dir: str, limits: config.DiscoveryLimits) -> dict:
    request = create_scan_request(
        target.get("domainUrl", ""),
        clamp_requested_count(target.get("requestedCount") or config.DEFAULT_REQUESTED_COUNT),
    )
    result = discover(request, limits)
    payload = result.to_dict()
    payload["generatedBy"] = "batch"

    file_name = cache_file_name(request.canonical_host, request.requested_count)
    save_json(payload, os.path.join(out_dir, file_name))
    return {
        "fileName": file_name,
        "canonicalHost": request.canonical_host,
        "requestedCount": request.requested_count,
        "returnedCount": result.returned_count,
        "generatedAt": result.generated_at,
        "warnings": list(result.discovery_summary.warnings),
    }


def main(argv=None) -> int:
    args = parse_args(argv)
    out_dir = os.path.abspath(args.out)
    os.makedirs(out_dir, exist_ok=True)

    limits = config.load_limits()
    overrides = {}
    if args.ignore_robots:
        overrides["respect_robots"] = False
    if args.no_search:
        overrides["search_enabled"] = False
    if overrides:
        limits = dataclasses.replace(limits, **overrides)

    if args.domain_url:
        targets = [{"domainUrl": args.domain_url, "requestedCount": args.requested_count}]
    else:
        targets = read_targets(args.targets)

    total = len(targets)
    logger.info(f"Top task discovery (batch) - {total} target(s)")
    if not targets:
        logger.error("No targets provided.")
        return 1

    built = []
    failed = 0
    for i, target in enumerate(targets, start=1):
        start_time = time.perf_counter()
        logger.info(f"[{i}/{total}] Processing: {target.get('domainUrl')}")
        try:
            entry = process_target(target, out_dir, limits)
        except InvalidUrl as e:
            failed += 1
            logger.error(f"  Skipped invalid target {target.get('domainUrl')!r}: {e.reason}")
            continue
        built.append(entry)
        duration = time.perf_counter() - start_time
        logger.info(f"  Built cache: {entry['fileName']} ({entry['returnedCount']} URLs, {duration:.1f}s)")

    index_path = os.path.join(out_dir, "index.json")
    save_json({"generatedAt": utc_now(), "targets": built}, index_path)
    logger.info(f"Wrote cache index: {index_path}")

    print(f"Done - {len(built)} built, {failed} skipped")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logger.error(f"[FATAL] {type(e).__name__}: {e}")
        sys.exit(2)
