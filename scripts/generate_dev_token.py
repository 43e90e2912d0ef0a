#!/usr/bin/env python3
"""
Issue a development token for the notifications API.
Signs a JWT with the same claims the pharmacy backend uses ({id, role}).

    python scripts/generate_dev_token.py --new-secret     # JWT_SECRET_KEY for .env
    python scripts/generate_dev_token.py --id 1 --role EMPLOYEE
"""

import argparse
import secrets

from rxalerts.api.auth import generate_token
from rxalerts.config import get_env


def main():
    parser = argparse.ArgumentParser(description="Issue a dev JWT for the notifications API")
    parser.add_argument("--id", help="user id")
    parser.add_argument("--role", default="MANAGER", choices=["MANAGER", "EMPLOYEE"])
    parser.add_argument("--username", default=None)
    parser.add_argument("--new-secret", action="store_true",
                        help="print a fresh JWT_SECRET_KEY instead of a token")
    args = parser.parse_args()

    if args.new_secret:
        # Must equal the backend's JWT secret or its tokens will not verify.
        print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
        return
    if not args.id:
        parser.error("--id is required")

    secret = get_env("JWT_SECRET_KEY")
    user_id = int(args.id) if args.id.isdigit() else args.id
    token = generate_token(user_id, args.role, args.username, secret=secret)

    print("=" * 70)
    print("Notifications API – Dev Token")
    print("=" * 70)
    print(f"\nUser: {args.username or user_id} (role={args.role})\n")
    print(token)
    print("\nUse it as:  Authorization: Bearer <token>")
    print("=" * 70)


if __name__ == "__main__":
    main()
