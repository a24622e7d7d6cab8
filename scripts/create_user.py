#!/usr/bin/env python
"""
Add a dashboard user, or reset an existing user's password.

Usage:
    python scripts/create_user.py --email residente@obra.pe
    python scripts/create_user.py --email residente@obra.pe --users data/users.json
"""
import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from obra_dashboard.auth import AuthError, LocalCredentialService
from obra_dashboard.config import config


def main():
    parser = argparse.ArgumentParser(description="Create or update a dashboard user")
    parser.add_argument("--email", type=str, required=True, help="User email")
    parser.add_argument(
        "--users",
        type=str,
        default=None,
        help="Override users file path"
    )

    args = parser.parse_args()
    users_path = Path(args.users) if args.users else config.users_path

    password = getpass.getpass("Contraseña: ")
    if password != getpass.getpass("Repita la contraseña: "):
        print("✗ Las contraseñas no coinciden")
        sys.exit(1)

    try:
        session = LocalCredentialService(users_path).add_user(args.email, password)
    except AuthError as e:
        print(f"✗ {e}")
        sys.exit(1)

    print(f"✓ User {session.email} saved to {users_path}")


if __name__ == "__main__":
    main()
