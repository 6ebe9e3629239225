#!/usr/bin/env python3
"""PTWebhook: fill in a message template and post it to a webhook (stdlib only)."""

from __future__ import annotations

from webhook_tui.app import main

if __name__ == "__main__":
    raise SystemExit(main())
