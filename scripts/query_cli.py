#!/usr/bin/env python3
"""Send a goal to the stepflow orchestrator. Prints the goal, the recorded steps and the final answer."""
import argparse
import json
import os
import sys
from typing import Any

import httpx

BASE_URL = os.environ.get("STEPFLOW_BASE_URL", "http://127.0.0.1:8000")


def _trunc(s: Any, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _trace(label: str, payload: Any, enabled: bool, max_len: int = 2000) -> None:
    if not enabled:
        return
    print(f"[{label}]", flush=True)
    raw = json.dumps(payload, indent=2, default=str) if isinstance(payload, (dict, list)) else str(payload)
    if len(raw) > max_len:
        raw = raw[:max_len] + "\n… (truncated)"
    print(raw, flush=True)
    print("---", flush=True)


def _print_steps(run: dict) -> None:
    result = run.get("result") or {}
    if "history" in result:
        for i, h in enumerate(result.get("history") or [], 1):
            mark = "ok" if h.get("is_success") else f"failed: {h.get('error_message')}"
            print(f"  [{i}] {h.get('step_type')} {_trunc(h.get('description', ''), 80)} ({mark})", flush=True)
            if h.get("output"):
                print(f"      ← {_trunc(h['output'], 150)}", flush=True)
        return
    for s in ((result.get("execution") or {}).get("steps") or []):
        mark = f"{s.get('execution_time_ms')} ms" if s.get("is_success") else f"failed: {s.get('error_message')}"
        print(f"  [step {s.get('step_number')}] → {s.get('target_name')}: {_trunc(s.get('description', ''), 80)}", flush=True)
        print(f"  [step {s.get('step_number')}] ← {_trunc(s.get('output') or '', 150)} ({mark})", flush=True)


def main():
    parser = argparse.ArgumentParser(description="Send a goal to the orchestrator and print the run.")
    parser.add_argument("goal", nargs="*", help="Goal text")
    parser.add_argument("--url", default=BASE_URL, help="Orchestrator base URL")
    parser.add_argument("--strategy", choices=["plan_execute", "react", "single"], default=None)
    parser.add_argument("--trace", action="store_true", help="Print request and response bodies")
    args = parser.parse_args()
    goal = " ".join(args.goal).strip()
    if not goal:
        print('Usage: python scripts/query_cli.py "Your goal here"', file=sys.stderr)
        sys.exit(1)

    base = args.url.rstrip("/")
    body = {"goal": goal, "strategy": args.strategy}
    try:
        print("Goal:", goal, flush=True)
        print("---", flush=True)
        _trace(f"POST {base}/run", body, args.trace)
        r = httpx.post(f"{base}/run", json=body, timeout=300)
        _trace(f"RESPONSE {r.status_code}", r.text, args.trace)
        r.raise_for_status()
        data = r.json()
        print("Run ID:", data.get("run_id"), flush=True)
        print("Status:", data.get("status"), f"({data.get('iterations')} iterations)", flush=True)

        tr = httpx.get(f"{base}/run/{data['run_id']}", timeout=10)
        if tr.status_code == 200:
            _print_steps(tr.json())
            print("---", flush=True)

        if data.get("final_answer"):
            print("Final answer:", flush=True)
            print(data["final_answer"], flush=True)
        if data.get("error"):
            print("Error:", data["error"], file=sys.stderr)
    except httpx.ConnectError:
        print(f"Cannot reach orchestrator at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(e, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
