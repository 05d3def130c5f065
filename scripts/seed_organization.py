"""
Create an organization with its first ADMIN console user.
Run from the project root with .env loaded.

Usage:
  python scripts/seed_organization.py "Acme Security" admin@acme.test 'S3cret!pass'
  python scripts/seed_organization.py "Acme Security" admin@acme.test 'S3cret!pass' --status active --guard-limit 100
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.constants import PLAN_GUARD_LIMITS
from app.core.logging import setup_logging
from app.db.init_db import init_organization
from app.db.session import SessionLocal
from app.models.organization import SubscriptionStatus


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("name", help="Organization name")
    parser.add_argument("admin_email")
    parser.add_argument("admin_password")
    parser.add_argument("--admin-name", default="Organization Admin")
    parser.add_argument("--slug", default=None, help="Defaults to the lowercased, hyphenated name")
    parser.add_argument("--status", default=SubscriptionStatus.TRIAL.value, choices=[s.value for s in SubscriptionStatus])
    parser.add_argument("--plan", default=None, choices=sorted(PLAN_GUARD_LIMITS), help="Sets the guard limit unless --guard-limit is given")
    parser.add_argument("--guard-limit", type=int, default=None)
    parser.add_argument("--timezone", default=None, help="IANA timezone, e.g. Asia/Kolkata")
    args = parser.parse_args()

    setup_logging()
    db = SessionLocal()
    try:
        organization, admin = init_organization(
            db,
            name=args.name,
            admin_email=args.admin_email,
            admin_password=args.admin_password,
            admin_name=args.admin_name,
            slug=args.slug,
            subscription_status=SubscriptionStatus(args.status),
            guard_limit=args.guard_limit,
            plan=args.plan,
            timezone=args.timezone,
        )
        print(f"Organization {organization.slug} (id={organization.id}) admin={admin.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
