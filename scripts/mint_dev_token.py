"""Mint development bearer tokens shaped like the identity provider's.

Usage::

    python scripts/mint_dev_token.py customer-1
    python scripts/mint_dev_token.py admin-1 --admin --minutes 480
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on PYTHONPATH when running as a script.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.core.config import settings
from app.core.security import create_access_token


def mint_dev_token(subject: str, *, admin: bool = False, minutes: int | None = None) -> str:
    scopes = ["cart:write", "orders:write"]
    if admin:
        scopes.append("admin")
    return create_access_token(subject, expires_minutes=minutes, extra={"scopes": scopes, "is_admin": admin})


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("subject", help="Owner id placed in the token 'sub' claim")
    parser.add_argument("--admin", action="store_true", help="Grant the admin scope")
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("mint_dev_token").info("Signing with %s for %s", settings.JWT_ALGORITHM, args.subject)
    print(mint_dev_token(args.subject, admin=args.admin, minutes=args.minutes))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
