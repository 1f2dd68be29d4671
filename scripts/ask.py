#!/usr/bin/env python3
"""
Demo client: check the API health, ask one question, print the answer and related products.

Run with the API up:

    python scripts/ask.py "What baby products do you have?"
    python scripts/ask.py "Any toys for a 3 year old?" --user-id u-42 --api-base http://localhost:3000
"""

import argparse
import os
import sys

import requests

DEFAULT_QUESTION = "What baby products do you have?"


def main() -> int:
    parser = argparse.ArgumentParser(description="Ask the product assistant API a question.")
    parser.add_argument("question", nargs="?", default=DEFAULT_QUESTION)
    parser.add_argument("--api-base", default=os.environ.get("API_BASE", "http://localhost:3000"))
    parser.add_argument("--user-id", default=None)
    args = parser.parse_args()

    print("Product Assistant API Test")
    print("-------------------------")
    print(f"Question: {args.question}")
    print("-------------------------")

    try:
        health = requests.get(f"{args.api_base}/health", timeout=10)
        if not health.ok:
            print("API health check failed. Is the server running?", file=sys.stderr)
            return 1
        print("API is healthy!")

        body = {"question": args.question}
        if args.user_id:
            body["userId"] = args.user_id
        r = requests.post(f"{args.api_base}/ask", json=body, timeout=60)
    except requests.RequestException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not r.ok:
        print(f"Error: {r.status_code} {r.text[:500]}", file=sys.stderr)
        return 1

    data = r.json()
    print("-------------------------")
    print("Answer:")
    print(data.get("answer", ""))

    products = data.get("relatedProducts") or []
    if products:
        print("-------------------------")
        print("Related Products:")
        for i, p in enumerate(products, start=1):
            price = p.get("price")
            print(f"#{i} {p.get('name', 'Unknown')} (SKU: {p.get('sku', 'N/A')})" + (f" - {price}" if price else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
