import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

PROTOCOL_VERSION = 1


def post_report(base_url: str, report: Dict[str, Any]) -> Dict[str, Any]:
    r = requests.post(f"{base_url}/youtube", json=report, timeout=10)
    r.raise_for_status()
    return r.json()


def get_json(base_url: str, path: str) -> Optional[Dict[str, Any]]:
    r = requests.get(f"{base_url}{path}", timeout=10)
    if r.status_code == 404:
        return None
    r.raise_for_status()
    return r.json()


def read_jsonl(path: Path) -> List[Dict[str, Any]]:
    reports: List[Dict[str, Any]] = []
    for line in path.read_text(encoding="utf-8-sig").splitlines():
        line = line.strip()
        if not line:
            continue
        reports.append(json.loads(line))
    return reports


def build_reports(raw: List[Dict[str, Any]], now_ms: int) -> List[Dict[str, Any]]:
    reports: List[Dict[str, Any]] = []
    for i, r in enumerate(raw, start=1):
        if not r.get("source_url"):
            raise ValueError(f"Missing source_url in line {i}: {r}")
        reports.append(
            {
                "source_url": r["source_url"],
                "reported_at_ms": int(r.get("reported_at_ms") or now_ms),
                "version": int(r.get("version") or PROTOCOL_VERSION),
            }
        )
    return reports


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Post now-playing reports to a whatsong server")
    ap.add_argument("--base-url", default="http://127.0.0.1:58810")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="single video url, reported as starting now")
    src.add_argument("--jsonl", help="file of {source_url, reported_at_ms?} lines")
    ap.add_argument("--show-previous", action="store_true")
    ap.add_argument("--expect-playing", action="store_true")

    args = ap.parse_args(argv)
    now_ms = int(time.time() * 1000)

    if args.url:
        raw = [{"source_url": args.url}]
    else:
        jsonl_path = Path(args.jsonl)
        if not jsonl_path.exists():
            print(f"File not found: {jsonl_path}", file=sys.stderr)
            return 2
        raw = read_jsonl(jsonl_path)

    for report in build_reports(raw, now_ms):
        try:
            ack = post_report(args.base_url, report)
        except requests.HTTPError as ex:
            print(f"rejected {report['source_url']}: {ex.response.text}", file=sys.stderr)
            return 1
        print(f"recorded #{ack.get('sequence')}: {report['source_url']}")

    current = get_json(args.base_url, "/current")
    print(json.dumps(current, indent=2))

    if args.show_previous:
        print(json.dumps(get_json(args.base_url, "/previous"), indent=2))

    if args.expect_playing and not (current or {}).get("playing"):
        print("\nExpected a song to be playing, nothing is")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
