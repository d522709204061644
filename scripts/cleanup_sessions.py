"""
Session record cleanup for Teamboard.

What it does:
- Deletes refresh_tokens rows past their expires_at.
- Deletes revoked rows older than the retention window
  (REVOKED_SESSION_RETENTION_DAYS, default 7).

Expiry is enforced at use time regardless; this only keeps the table small.

Usage:
  python scripts/cleanup_sessions.py --dry-run
  python scripts/cleanup_sessions.py --retention-days 14
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys


# Allow `import teamboard.*` when run from a checkout.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


from teamboard.core.config import settings  # noqa: E402
from teamboard.core.database import SessionLocal  # noqa: E402
from teamboard.services.session_store import purge_expired  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Purge expired and long-revoked session records.")
    parser.add_argument("--dry-run", action="store_true", help="Count matching records without deleting.")
    parser.add_argument(
        "--retention-days",
        type=int,
        default=settings.REVOKED_SESSION_RETENTION_DAYS,
        help="Keep revoked records this many days (default: %(default)s).",
    )
    return parser


def main(argv: list[str] | None = None, session_factory=SessionLocal) -> int:
    args = build_parser().parse_args(argv)
    if args.retention_days < 0:
        print("ERROR: --retention-days must be >= 0", file=sys.stderr)
        return 2

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    db = session_factory()
    try:
        count = purge_expired(db, retention_days=args.retention_days, dry_run=args.dry_run)
    finally:
        db.close()

    if args.dry_run:
        print(f"[dry-run] {count} session record(s) would be purged.")
    else:
        print(f"Purged {count} session record(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
