import argparse
import base64
import json
import sys
from pathlib import Path
from typing import List, Optional

import httpx


DEFAULT_API_BASE = "http://127.0.0.1:8000"
# The strategist loop, audit and image stages run back to back.
ADVICE_TIMEOUT_S = 600


def _join_url(base: str, path: str) -> str:
    return base.rstrip("/") + path


def _won(value: object) -> str:
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError):
        return str(value)


def _print_advice(data: dict) -> None:
    preview = data.get("tax_preview") or {}
    print(f"[user] {data.get('user_id')}  [iterations] {data.get('iterations')}  "
          f"[fallback] {data.get('fallback_used')}")
    print()
    print("== Strategy ==")
    print(data.get("primary_strategy") or "")
    print()
    print("== Audit ==")
    print(data.get("audit_review") or "")
    print()
    print("== Tax preview ==")
    print(f"realized gain:       {_won(preview.get('realized_gain'))}")
    print(f"unrealized loss:     {_won(preview.get('unrealized_loss'))}")
    print(f"tax before harvest:  {_won(preview.get('estimated_tax_before_harvest'))}")
    print(f"tax after harvest:   {_won(preview.get('estimated_tax_after_harvest'))}")
    print(f"tax savings:         {_won(preview.get('estimated_tax_savings'))}")


def save_data_uri(data_uri: str, path: Path) -> bool:
    if not data_uri or ";base64," not in data_uri:
        return False
    _, encoded = data_uri.split(";base64,", 1)
    path.write_bytes(base64.b64decode(encoded))
    return True


def run_advice(args: argparse.Namespace) -> int:
    base = args.base_url or DEFAULT_API_BASE
    question = " ".join(args.question) if args.question else None
    with httpx.Client() as client:
        resp = client.post(
            _join_url(base, "/api/advice"),
            json={"question": question},
            timeout=args.timeout,
        )
        if resp.status_code >= 400:
            print(f"Advice request failed: HTTP {resp.status_code}")
            return 1
        data = resp.json()
    if args.json:
        printable = {**data, "base64_image": "<omitted>" if data.get("base64_image") else ""}
        print(json.dumps(printable, ensure_ascii=False, indent=2))
    else:
        _print_advice(data)
    if args.save_image:
        if save_data_uri(data.get("base64_image") or "", Path(args.save_image)):
            print(f"Infographic saved to {args.save_image}")
        else:
            print("No infographic was generated.")
    return 0


def run_tools(args: argparse.Namespace) -> int:
    base = args.base_url or DEFAULT_API_BASE
    with httpx.Client() as client:
        resp = client.get(_join_url(base, "/api/tools"), timeout=10)
        if resp.status_code >= 400:
            print(f"Failed to fetch tools: HTTP {resp.status_code}")
            return 1
        tools = resp.json()
    for tool in tools:
        print(f"- {tool.get('name')}: {tool.get('description')}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tax advisor CLI")
    parser.add_argument("--base-url", default=DEFAULT_API_BASE, help="API base URL")
    subparsers = parser.add_subparsers(dest="command")

    advice = subparsers.add_parser("advice", help="Ask for a tax-loss harvesting strategy")
    advice.add_argument("question", nargs="*", help="Question text (blank uses the default prompt)")
    advice.add_argument("--save-image", help="Write the infographic to this path")
    advice.add_argument("--json", action="store_true", help="Print the raw response")
    advice.add_argument("--timeout", type=int, default=ADVICE_TIMEOUT_S, help="Request timeout seconds")

    subparsers.add_parser("tools", help="List the tools exposed to the model")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "advice":
        return run_advice(args)
    if args.command == "tools":
        return run_tools(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
