#!/usr/bin/env python3
"""
Control Plane Token Issuer

Mints a bearer token for a user or service identity. Tokens carry no
permissions of their own; what the principal may do comes from its access
grants (or HUB_ADMIN_PRINCIPALS).

Run from project root:
    python -m scripts.issue_token ops-admin --type User --minutes 60
"""

import argparse
from datetime import timedelta

from hubgate.config.constants import PrincipalType
from hubgate.core.security import create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint a control-plane bearer token")
    parser.add_argument("principal_id", help="Principal the token speaks for")
    parser.add_argument(
        "--type",
        dest="principal_type",
        choices=[t.value for t in PrincipalType],
        default=PrincipalType.USER.value,
    )
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime")
    args = parser.parse_args()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token(args.principal_id, PrincipalType(args.principal_type), expires))


if __name__ == "__main__":
    main()
