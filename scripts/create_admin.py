"""Create an administrator account.

Usage:
  python scripts/create_admin.py --name "Maria" --email maria@example.com --password '...'

The same operation backs POST /auth/register-admin.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from meeting_platform.auth.crud import create_admin
from meeting_platform.config import load_config
from meeting_platform.db import connect, init_db, is_unique_violation


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--phone", default=None)
    ap.add_argument("--access-level", default="admin")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_admin(
                conn,
                display_name=args.name,
                email=args.email,
                password=args.password,
                phone=args.phone,
                access_level=args.access_level,
            )
    except ValueError as e:
        sys.exit(f"Invalid input: {e}")
    except Exception as e:
        if is_unique_violation(e):
            sys.exit(f"An admin with email {args.email!r} already exists")
        raise

    print("Created admin:")
    print(u)


if __name__ == "__main__":
    main()
