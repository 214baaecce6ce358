#!/usr/bin/env python3
"""
Database migration script for deployments.

Runs Alembic migrations (items + hashtags tables) during build/deploy.
"""

import os
import subprocess
import sys
from pathlib import Path


def run_migrations():
    """Run all pending database migrations"""
    print("🔄 Running database migrations...")
    print(f"   Database: {os.getenv('DATABASE_URL', 'SQLite (development)')}")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent,
        )

        print(result.stdout)
        print("✅ Migrations completed successfully!")
        return 0

    except subprocess.CalledProcessError as e:
        print("❌ Migration failed:")
        print(e.stdout)
        print(e.stderr)
        return 1
    except OSError as e:
        print(f"❌ Migration failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run_migrations())
