#!/usr/bin/env python3
"""
HabitPush Push Notification Testing & Debugging Tool

Helps debug reminder delivery by:
- Verifying database state
- Validating the VAPID key pair and showing the token a push service will see
- Listing stored subscriptions
- Sending a test notification to one subscription
- Running the reminder job (test mode or dry run)
"""

import sys
import os
import asyncio
import json
import argparse
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

try:
    from sqlalchemy.orm import Session
    from habitpush.core.config import settings
    from habitpush.core.database import SessionLocal
    from habitpush.models.push_subscription import PushSubscription
    from habitpush.services.push.exceptions import VapidConfigurationError
    from habitpush.services.push.models import PushSubscriptionInfo, build_test_payload
    from habitpush.services.push.vapid import VapidSigner, decode_token_claims
    from habitpush.services.push.webpush_provider import WebPushProvider
    from habitpush.services.stores import SqlHabitStore, SqlSubscriptionStore
    from habitpush.api.v1.reminders import run_reminders
    from habitpush.utils.vapid import load_vapid_key_pair
except ImportError as e:
    print(f"❌ Failed to import HabitPush modules: {e}")
    print("Make sure the backend dependencies are installed (pip install -e .)")
    sys.exit(1)

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Color codes for CLI output
class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    END = '\033[0m'

def print_success(msg: str):
    print(f"{Colors.GREEN}✓{Colors.END} {msg}")

def print_error(msg: str):
    print(f"{Colors.RED}✗{Colors.END} {msg}")

def print_warning(msg: str):
    print(f"{Colors.YELLOW}⚠{Colors.END} {msg}")

def print_info(msg: str):
    print(f"{Colors.BLUE}ℹ{Colors.END} {msg}")

# ============================================================================
# Diagnostic Functions
# ============================================================================

def check_database(db: Session) -> bool:
    """Check database connectivity and schema."""
    try:
        count = db.query(PushSubscription).count()
        print_success(f"Database connected: {count} push subscriptions found")
        return True
    except Exception as e:
        print_error(f"Database connection failed: {e}")
        return False

def check_vapid_keys(sample_endpoint: Optional[str] = None) -> bool:
    """Validate the configured VAPID key pair and show a sample token's claims."""
    try:
        key_pair = load_vapid_key_pair(settings)
    except VapidConfigurationError as e:
        print_error(f"VAPID configuration invalid: {e}")
        print_info("Generate keys with: python backend/scripts/generate_vapid_keys.py")
        return False

    print_success("VAPID keys found and valid")
    print_info(f"Public key: {key_pair.public_key_b64}")
    print_info(f"Subject: {settings.VAPID_SUBJECT}")

    if sample_endpoint:
        signer = VapidSigner(key_pair, settings.VAPID_SUBJECT)
        claims = decode_token_claims(signer.create_token(sample_endpoint))
        print_info(f"Token claims for this endpoint: {json.dumps(claims)}")
    return True

def list_subscriptions(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """List recent push subscriptions."""
    subscriptions = db.query(PushSubscription).order_by(
        PushSubscription.created_at.desc()
    ).limit(limit).all()

    if not subscriptions:
        print_warning("No push subscriptions found in database")
        return []

    print_success(f"Found {len(subscriptions)} recent subscriptions:")
    print("")

    result = []
    for sub in subscriptions:
        endpoint_display = sub.endpoint[:60] + "..." if len(sub.endpoint) > 60 else sub.endpoint

        result.append({
            "id": sub.id,
            "user_id": sub.user_id,
            "endpoint": sub.endpoint,
            "created_at": sub.created_at.isoformat() if sub.created_at else None,
        })

        print(f"  ID: {sub.id}")
        print(f"  User: {sub.user_id}")
        print(f"  Endpoint: {endpoint_display}")
        print(f"  Created: {sub.created_at}")
        print(f"  Last Used: {sub.last_used_at or 'Never'}")
        print("")

    return result

async def test_notification_send(
    db: Session,
    subscription_id: Optional[str] = None,
    dry_run: bool = False
) -> bool:
    """Send the diagnostic notification to a single subscription."""
    query = db.query(PushSubscription)
    if subscription_id:
        query = query.filter(PushSubscription.id == subscription_id)
    subscription = query.first()
    if not subscription:
        print_error(f"Subscription not found: {subscription_id}" if subscription_id
                    else "No subscriptions available for testing")
        return False

    try:
        key_pair = load_vapid_key_pair(settings)
    except VapidConfigurationError as e:
        print_error(f"VAPID configuration invalid: {e}")
        return False

    info = PushSubscriptionInfo.from_dict(subscription.get_subscription_info())
    payload = build_test_payload(icon=settings.REMINDER_ICON_URL, url=settings.REMINDER_URL)

    async with WebPushProvider.from_settings(settings, key_pair) as provider:
        if dry_run:
            headers, body = provider.build_request(info, payload)
            print_info(f"DRY RUN: Would POST {len(body)} bytes to {info.endpoint}")
            for name, value in headers.items():
                shown = value[:60] + "..." if name == "Authorization" else value
                print(f"  {name}: {shown}")
            return True

        print_info(f"Sending test notification to {subscription.id}")
        result = await provider.send(info, payload)

    if result.success:
        print_success(f"Notification sent successfully (HTTP {result.status_code})")
        return True

    print_error(f"Failed to send notification ({result.status.value}): {result.error}")
    print_info(f"Status code: {result.status_code}")
    return False

def preview_reminders(db: Session) -> List[Dict[str, Any]]:
    """Show what a reminder run would send today without contacting push services."""
    day = datetime.now(timezone.utc).date()
    habit_store = SqlHabitStore(db)
    previews = []

    for sub in SqlSubscriptionStore(db).list_subscriptions():
        habits = habit_store.get_reminder_habits(sub.user_id, day)
        completed = habit_store.get_completed_habit_ids([h.id for h in habits], day)
        incomplete = [h.title for h in habits if h.id not in completed]
        previews.append({"subscription_id": sub.id, "user_id": sub.user_id, "incomplete": incomplete})

        if not habits:
            print_info(f"{sub.id}: skip (no active habits)")
        elif not incomplete:
            print_info(f"{sub.id}: skip (all complete)")
        else:
            print_success(f"{sub.id}: would remind about {', '.join(incomplete)}")

    if not previews:
        print_warning("No push subscriptions found in database")
    return previews

async def send_reminders(db: Session, test_mode: bool = False) -> bool:
    """Run the reminder job exactly as the API endpoint does."""
    try:
        run = await run_reminders(db, test_mode=test_mode)
    except VapidConfigurationError as e:
        print_error(f"VAPID configuration invalid: {e}")
        return False

    print(json.dumps(run.to_dict(), indent=2))
    errors = [r for r in run.results if r.status.value == "error"]
    if errors:
        print_warning(f"{len(errors)} of {len(run.results)} subscriptions failed")
        return False
    print_success(f"Reminder run complete: {len(run.results)} subscriptions processed")
    return True

# ============================================================================
# CLI
# ============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="HabitPush Push Notification Testing Tool"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser(
        "database",
        help="Check database connectivity and schema"
    )

    vapid_parser = subparsers.add_parser(
        "vapid",
        help="Validate VAPID keys"
    )
    vapid_parser.add_argument(
        "--endpoint",
        help="Show the VAPID token claims for this push endpoint"
    )

    list_parser = subparsers.add_parser(
        "subscriptions",
        help="List push subscriptions"
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum subscriptions to list"
    )

    test_parser = subparsers.add_parser(
        "test-send",
        help="Send a test notification to one subscription"
    )
    test_parser.add_argument(
        "--subscription",
        help="Subscription ID (default: first subscription)"
    )
    test_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the request without sending it"
    )

    reminders_parser = subparsers.add_parser(
        "send-reminders",
        help="Run the reminder job now"
    )
    reminders_parser.add_argument(
        "--test",
        action="store_true",
        help="Send the diagnostic payload to every subscription"
    )
    reminders_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show which subscriptions would be reminded"
    )

    subparsers.add_parser(
        "diagnose",
        help="Run all checks"
    )

    args = parser.parse_args()

    db = SessionLocal()
    ok = True
    try:
        if args.command == "database":
            ok = check_database(db)

        elif args.command == "vapid":
            ok = check_vapid_keys(args.endpoint)

        elif args.command == "subscriptions":
            list_subscriptions(db, limit=args.limit)

        elif args.command == "test-send":
            ok = asyncio.run(test_notification_send(
                db,
                subscription_id=args.subscription,
                dry_run=args.dry_run
            ))

        elif args.command == "send-reminders":
            if args.dry_run:
                preview_reminders(db)
            else:
                ok = asyncio.run(send_reminders(db, test_mode=args.test))

        elif args.command == "diagnose":
            print("\n" + "=" * 60)
            print("🔍 HabitPush Push Notification Full Diagnostic")
            print("=" * 60 + "\n")

            print("📋 Checking Database...\n")
            ok = check_database(db)
            if ok:
                print("\n📋 Checking VAPID Keys...\n")
                first = db.query(PushSubscription).first()
                ok = check_vapid_keys(first.endpoint if first else None)

                print("\n📋 Listing Subscriptions...\n")
                listed = list_subscriptions(db, limit=5)

                print("📋 Previewing Today's Reminders...\n")
                preview_reminders(db)

                print("\n" + "=" * 60)
                if listed:
                    print(f"✓ Diagnostic complete - Found {len(listed)} subscriptions")
                else:
                    print("⚠ Diagnostic complete - No subscriptions found")
                    print("  Subscriptions appear when clients call pushManager.subscribe()")
                print("=" * 60 + "\n")

        else:
            parser.print_help()

    except Exception as e:
        print_error(f"Error: {e}")
        logger.exception("Diagnostic error")
        sys.exit(1)
    finally:
        db.close()

    sys.exit(0 if ok else 1)

if __name__ == "__main__":
    main()
