"""
Manual smoke test for the records API endpoints.
Run the API server first: python -m src.api.app
Then run this: python scripts/smoke_api.py <api_key>
"""

import json
import sys

import requests

BASE_URL = "http://localhost:8000"


def show(title, response):
    print("\n" + "=" * 50)
    print(f"TEST: {title}")
    print("=" * 50)
    print(f"Status Code: {response.status_code}")
    print(f"Response: {json.dumps(response.json(), indent=2, ensure_ascii=False)[:2000]}")
    return response.ok


def run(api_key):
    results = {}
    results["health"] = show("Health Check", requests.get(f"{BASE_URL}/health"))

    response = requests.post(f"{BASE_URL}/api/auth/login", json={"api_key": api_key})
    results["login"] = show("Login", response)
    if not response.ok:
        return results
    headers = {"Authorization": f"Bearer {response.json()['token']}"}

    results["profile"] = show("Profile", requests.get(f"{BASE_URL}/api/user/profile", headers=headers))
    listing = requests.get(f"{BASE_URL}/api/histories", headers=headers)
    results["histories"] = show("Histories", listing)
    if listing.ok and listing.json()["records"]:
        first = listing.json()["records"][0]["history_id"]
        results["detail"] = show(
            f"History {first}", requests.get(f"{BASE_URL}/api/histories/{first}", headers=headers)
        )
    results["dashboard"] = show("Dashboard", requests.get(f"{BASE_URL}/api/dashboard", headers=headers))
    results["logout"] = show("Logout", requests.post(f"{BASE_URL}/api/auth/logout", headers=headers))
    return results


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/smoke_api.py <api_key>")
        sys.exit(2)
    outcome = run(sys.argv[1])
    print("\nSummary:")
    for name, ok in outcome.items():
        print(f"  {'✓' if ok else '✗'} {name}")
    sys.exit(0 if all(outcome.values()) else 1)
