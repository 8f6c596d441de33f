#!/usr/bin/env python3
"""PRISM Playbook Gate — lead-capture gate for the strategic playbook.

Launch: python3 run_server.py
Serves at http://0.0.0.0:8000 (or PORT env var)
"""

import logging

import uvicorn

from playbook_gate.config import (
    HOST, LOG_LEVEL, NOTIFIER, PORT, RESEND_API_KEY, SEND_ENDPOINT, STORAGE_BACKEND,
)


def main():
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("  PRISM Framework — Playbook Gate")
    print("=" * 60)

    if not SEND_ENDPOINT and NOTIFIER in ("", "simulated"):
        print("\n  WARNING: SEND_ENDPOINT not set, running in demo mode.")
        print("  Visitors are redirected to the playbook instead of receiving an email.")
    if NOTIFIER == "resend" and not RESEND_API_KEY:
        print("\n  WARNING: NOTIFIER=resend but RESEND_API_KEY is not set.")

    print(f"\n  Storage: {STORAGE_BACKEND}")
    url = f"http://{HOST}:{PORT}"
    print(f"  Playbook: {url}/playbook")
    print("  Press Ctrl+C to stop\n")

    from playbook_gate.app import create_app
    app = create_app()
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
