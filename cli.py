from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _finish(r: requests.Response) -> int:
    try:
        _print(r.json())
    except ValueError:
        print(r.text)
    return 0 if r.ok else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Zone Application Deployer CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("nodes", help="List nodes")

    s_set = sub.add_parser("set-node", help="Register/update a node")
    s_set.add_argument("--hostname", required=True)
    s_set.add_argument("--type", required=True, help="config|proxy|tenant|host|...")
    s_set.add_argument("--current-version")
    s_set.add_argument("--wanted-version")

    s_rm = sub.add_parser("remove-node", help="Remove a node")
    s_rm.add_argument("--hostname", required=True)

    sub.add_parser("decision", help="Show what the next tick would deploy")
    sub.add_parser("tick", help="Run one reconciliation tick now")
    sub.add_parser("status", help="Show job status")
    sub.add_parser("enable", help="Enable the periodic job")
    sub.add_parser("disable", help="Disable the periodic job")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "nodes":
        return _finish(requests.get(f"{base}/nodes", timeout=10))

    if args.cmd == "set-node":
        payload = {
            "type": args.type,
            "current_version": args.current_version,
            "wanted_version": args.wanted_version,
        }
        return _finish(requests.put(f"{base}/nodes/{args.hostname}", json=payload, timeout=10))

    if args.cmd == "remove-node":
        return _finish(requests.delete(f"{base}/nodes/{args.hostname}", timeout=10))

    if args.cmd == "decision":
        return _finish(requests.get(f"{base}/decision", timeout=10))

    if args.cmd == "tick":
        # A tick may include a full deploy, so allow more than the deploy budget.
        return _finish(requests.post(f"{base}/maintenance/tick", timeout=300))

    if args.cmd == "status":
        return _finish(requests.get(f"{base}/maintenance", timeout=10))

    if args.cmd in {"enable", "disable"}:
        return _finish(requests.post(f"{base}/maintenance/{args.cmd}", timeout=10))

    if args.cmd == "events":
        return _finish(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10))

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
