#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts one worker that consumes both queues and runs the beat scheduler
# (manual sync retry, OAuth state cleanup).
#
# Usage:
#   python scripts/start_worker.py
#   python scripts/start_worker.py --no-beat     # when beat runs elsewhere
#
#   # Or use Celery CLI directly
#   celery -A workers.celery_app worker --beat -Q default,commerce --loglevel=info
#
# Prerequisites:
#   - Redis must be running
#   - Environment variables must be set (.env file)
# =============================================================================

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app  # noqa: E402


def main():
    """Start the Celery worker."""
    embed_beat = "--no-beat" not in sys.argv[1:]

    print("=" * 60)
    print("WornVault Celery Worker")
    print("=" * 60)
    print(f"Queues: default, commerce | beat: {'on' if embed_beat else 'off'}")
    print("Press Ctrl+C to stop")
    print()

    argv = [
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--queues=default,commerce",
    ]
    if embed_beat:
        argv.append("--beat")

    celery_app.worker_main(argv)


if __name__ == "__main__":
    main()
