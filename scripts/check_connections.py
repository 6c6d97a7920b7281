#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify MongoDB and the AI advisor endpoint are reachable.
Usage: python scripts/check_connections.py
"""
from app.core.config import get_settings
from app.db.mongodb import init_pool
from app.services.ai_client import get_ai_client


def main():
    settings = get_settings()
    print("=" * 50)
    print("SECONDHOME - CONNECTION CHECK")
    print("=" * 50)

    # Test MongoDB
    print("\n[1] Testing MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    pool = init_pool(settings)
    if pool.ensure_connected():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")
    pool.close()

    # Test AI advisor (only if API key is set)
    print("\n[2] Testing AI advisor...")
    client = get_ai_client()
    if client is None:
        print("    ⚠️  AI: API key not configured (listings go to manual review)")
    else:
        print(f"    Base URL: {settings.ai_base_url}")
        print(f"    Model: {settings.ai_model} (timeout {settings.ai_timeout_seconds}s)")
        if client.test_connection():
            print("    ✅ AI: CONNECTED")
        else:
            print("    ❌ AI: FAILED")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
