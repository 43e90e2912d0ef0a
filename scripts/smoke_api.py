"""
Smoke checks against a running notifications API.
Start the server first: python -m rxalerts.api.app
Then run this: python scripts/smoke_api.py
"""

import json
import os

import requests

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://localhost:8000")


def section(title):
    print("\n" + "=" * 50)
    print(f"CHECK: {title}")
    print("=" * 50)


def show(response):
    print(f"Status Code: {response.status_code}")
    print(f"Response: {json.dumps(response.json(), indent=2)[:1500]}")


def check_health():
    section("Health Check")
    response = requests.get(f"{BASE_URL}/health")
    show(response)
    return response.status_code == 200


def check_without_token():
    section("Count Without Token")
    response = requests.get(f"{BASE_URL}/api/notifications/count")
    show(response)
    return response.status_code == 401


def check_count(headers):
    section("Unread Count")
    response = requests.get(f"{BASE_URL}/api/notifications/count", headers=headers)
    show(response)
    return response.status_code == 200


def check_list(headers):
    section("Notification Lists")
    response = requests.get(f"{BASE_URL}/api/notifications", headers=headers)
    show(response)
    return response.status_code == 200


def check_seen(headers):
    section("Mark Visited Seen")
    response = requests.post(f"{BASE_URL}/api/notifications/seen", headers=headers)
    show(response)
    return response.status_code == 200 and response.json().get("unread_count") == 0


def check_report(headers):
    section("Expiry Report (90 days)")
    response = requests.get(
        f"{BASE_URL}/api/expiry/report", headers=headers, params={"time_period": "90_days"}
    )
    show(response)
    return response.status_code == 200


def check_logout(headers):
    section("Logout")
    response = requests.post(f"{BASE_URL}/api/auth/logout", headers=headers)
    show(response)
    return response.status_code == 200


def main():
    print("=" * 50)
    print("Notifications API Smoke Checks")
    print("=" * 50)
    print(f"Base URL: {BASE_URL}")
    print("Make sure the API server is running!")
    print()

    token = input("Enter a token (scripts/generate_dev_token.py): ").strip()
    if not token:
        print("ERROR: token is required")
        return
    headers = {"Authorization": f"Bearer {token}"}

    results = {}
    try:
        results["Health Check"] = check_health()
        results["Count Without Token"] = check_without_token()
        results["Unread Count"] = check_count(headers)
        results["Notification Lists"] = check_list(headers)
        results["Mark Visited Seen"] = check_seen(headers)
        results["Expiry Report"] = check_report(headers)
        results["Logout"] = check_logout(headers)
    except requests.RequestException as e:
        print(f"\n\nERROR: {e}")

    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    passed = sum(1 for v in results.values() if v)
    for name, result in results.items():
        status = "✓ PASS" if result else "✗ FAIL"
        print(f"{status}: {name}")
    print(f"\nTotal: {passed}/{len(results)} checks passed")
    print("=" * 50)


if __name__ == "__main__":
    main()
