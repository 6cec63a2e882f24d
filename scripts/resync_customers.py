#!/usr/bin/env python3
"""
Re-run the subscription sync for stored customers.

Scans the customer table and syncs every record that has a Stripe customer,
or a single user with --user-id. Useful after missed webhooks or after a
change to the stored snapshot shape.

Usage:
    # Dry run (lists the users that would be synced)
    python scripts/resync_customers.py --dry-run

    # Sync everyone
    python scripts/resync_customers.py

    # Sync one user
    python scripts/resync_customers.py --user-id 6f1c...
"""

import argparse
import os
import sys
import time

# Add functions directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../functions"))

from shared.config import Settings  # noqa: E402
from shared.container import build_dependencies  # noqa: E402

# Rate limiting for Stripe API (25 req/sec is safe)
STRIPE_REQUESTS_PER_SECOND = 10
STRIPE_REQUEST_INTERVAL = 1.0 / STRIPE_REQUESTS_PER_SECOND


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Re-sync Stripe subscription snapshots")
    parser.add_argument("--dry-run", action="store_true", help="List users without syncing")
    parser.add_argument("--user-id", help="Sync a single user")
    args = parser.parse_args(argv)

    deps = build_dependencies(Settings.from_env())
    if deps.reconciler is None:
        print("Stripe API key not configured. Set STRIPE_SECRET_ARN or STRIPE_SECRET_KEY.")
        return 1

    if args.user_id:
        user_ids = [args.user_id]
    else:
        print(f"Scanning {deps.settings.customer_table} for Stripe customers...")
        user_ids = [
            record["userId"]
            for record in deps.directory.scan()
            if record.get("stripeCustomerId")
        ]
    print(f"Found {len(user_ids)} customers")

    if args.dry_run:
        for user_id in user_ids:
            print(f"  would sync {user_id}")
        return 0

    synced = 0
    failed = 0
    for user_id in user_ids:
        result = deps.reconciler.handle({"userId": user_id})
        if result.ok:
            synced += 1
            print(f"  {user_id}: {result.data['status']}")
        else:
            failed += 1
            print(f"  {user_id}: FAILED ({result.status_code}) {result.error['message']}")
        time.sleep(STRIPE_REQUEST_INTERVAL)

    print(f"\nDone: {synced} synced, {failed} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
