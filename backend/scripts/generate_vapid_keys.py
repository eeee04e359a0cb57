#!/usr/bin/env python3
"""
Generate a VAPID key pair for Web Push and print it as .env lines.

Usage:
    python scripts/generate_vapid_keys.py [--subject mailto:you@example.com]

The public key is also the browser's applicationServerKey; rotating it
invalidates every existing subscription.
"""
import argparse
import os
import sys

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from habitpush.utils.vapid import generate_vapid_keys


def main():
    parser = argparse.ArgumentParser(description="Generate VAPID keys for Web Push")
    parser.add_argument(
        "--subject",
        default="mailto:notifications@habitpush.local",
        help="Contact URI for the push service (mailto: or https:)"
    )
    args = parser.parse_args()

    if not args.subject.startswith(("mailto:", "https:")):
        parser.error("--subject must be a mailto: or https: URI")

    keys = generate_vapid_keys()

    print("# Add these to your .env")
    print(f"VAPID_PUBLIC_KEY={keys['public_key']}")
    print(f"VAPID_PRIVATE_KEY={keys['private_key']}")
    print(f"VAPID_SUBJECT={args.subject}")


if __name__ == "__main__":
    main()
