#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0

"""
Script to issue a signed development access token.

Usage:
    python -m relief_api.scripts.issue_dev_token <user_id> <role>

The role may be requester, responder or organization, or one of the legacy
names victim, volunteer and admin. The token is signed with JWT_SECRET.
"""

import argparse
import sys

from relief_api.models.enums import ActorRole
from relief_api.services.auth import AuthService


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("user_id", help="Token subject")
    parser.add_argument("role", help="Actor role claim")
    parser.add_argument("--email", default=None)
    parser.add_argument("--name", default=None)
    parser.add_argument("--expires", type=int, default=None, help="Lifetime in seconds")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        role = ActorRole.from_claim(args.role)
    except ValueError:
        print(f"Unknown role: {args.role}", file=sys.stderr)
        return 1

    auth_service = AuthService(access_token_expires=args.expires)
    token = auth_service.generate_access_token(args.user_id, role, email=args.email, name=args.name)

    print(token["access_token"])
    print(f"role={role.value} expires_at={token['expires_at']}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
