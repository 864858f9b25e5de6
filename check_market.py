#!/usr/bin/env python3
"""Smoke-check a running Transfer Market API with one full trade."""

import argparse
import sys

import requests


def call(method, base_url, path, user_id, **kwargs):
    response = requests.request(
        method,
        f"{base_url}{path}",
        headers={"X-User-Id": str(user_id)},
        timeout=10,
        **kwargs,
    )
    if response.status_code >= 400:
        print(f"❌ {method} {path} -> {response.status_code}: {response.text}")
        sys.exit(1)
    return response.json()


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default="http://localhost:8001", help="API base URL")
    parser.add_argument("--seller", type=int, default=1001, help="Seller user id")
    parser.add_argument("--buyer", type=int, default=1002, help="Buyer user id")
    parser.add_argument("--price", default="100000", help="Asking price")
    args = parser.parse_args()

    health = call("GET", args.url, "/api/health", args.seller)
    print(f"Health: {health['status']} (database {health['database']})")

    seller = call("POST", args.url, "/api/teams", args.seller, json={"team_name": "Seller FC"})
    buyer = call("POST", args.url, "/api/teams", args.buyer, json={"team_name": "Buyer FC"})
    print(f"Seller: {seller['name']} - {len(seller['players'])} players, budget {seller['budget']}")
    print(f"Buyer:  {buyer['name']} - {len(buyer['players'])} players, budget {buyer['budget']}")

    listed_ids = {t["player_id"] for t in seller["listings"]}
    player = next((p for p in seller["players"] if p["id"] not in listed_ids), None)
    if player is None:
        print("❌ Seller has no unlisted players")
        sys.exit(1)

    listing = call(
        "POST", args.url, "/api/transfers", args.seller,
        json={"player_id": player["id"], "asking_price": args.price},
    )
    print(f"\n✓ Listed {player['name']} ({player['position']}) at {listing['price']} - transfer {listing['id']}")

    bought = call("POST", args.url, f"/api/transfers/{listing['id']}/buy", args.buyer, json={})
    print(f"✓ Bought player {bought['player_id']} for {bought['purchase_price']}")

    seller = call("GET", args.url, "/api/teams/my-team", args.seller)
    buyer = call("GET", args.url, "/api/teams/my-team", args.buyer)
    print(f"\nSeller now: {len(seller['players'])} players, budget {seller['budget']}")
    print(f"Buyer now:  {len(buyer['players'])} players, budget {buyer['budget']}")


if __name__ == "__main__":
    main()
