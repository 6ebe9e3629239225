from __future__ import annotations

import argparse
import os
import re
import time
import urllib.parse
from pathlib import Path
from typing import Mapping, Sequence

from .models import AppConfig

DEFAULT_WEBHOOK_HOST = "discord.com"
DEFAULT_TEMPLATES_DIR = Path("templates")
DEFAULT_TIMEOUT = 30.0

_TOKEN = r"[A-Za-z0-9_-]+"
_HOST = r"[A-Za-z0-9.-]+(?::\d+)?"
FULL_URL_RE = re.compile(rf"^https://{_HOST}/api/webhooks/\d+/{_TOKEN}/?(?:\?.*)?$")
BARE_URL_RE = re.compile(rf"^{_HOST}/api/webhooks/\d+/{_TOKEN}/?(?:\?.*)?$")
ID_TOKEN_RE = re.compile(rf"^(\d+)/({_TOKEN})$")

ENDPOINT_HELP = (
    "Invalid webhook URL format. Supported formats:\n"
    "  - https://discord.com/api/webhooks/ID/TOKEN\n"
    "  - discord.com/api/webhooks/ID/TOKEN\n"
    "  - ID/TOKEN"
)


class EndpointError(ValueError):
    pass


class ConfigError(ValueError):
    pass


class CancelToken:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


def parse_webhook_url(raw: str) -> str:
    value = (raw or "").strip()
    if FULL_URL_RE.match(value):
        url = value
    elif ID_TOKEN_RE.match(value):
        url = f"https://{DEFAULT_WEBHOOK_HOST}/api/webhooks/{value}"
    elif BARE_URL_RE.match(value):
        url = f"https://{value}"
    else:
        raise EndpointError(ENDPOINT_HELP)

    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme != "https" or not parsed.hostname:
        raise EndpointError(f"Invalid URL format: {url}")
    return url


def redact_url(url: str) -> str:
    """Hide the webhook token; the id stays visible for troubleshooting."""
    parsed = urllib.parse.urlsplit(url)
    parts = parsed.path.rstrip("/").split("/")
    if len(parts) >= 2 and parts[-1]:
        parts[-1] = "***"
    return urllib.parse.urlunsplit((parsed.scheme, parsed.netloc, "/".join(parts), "", ""))


def webhook_token(url: str) -> str:
    return urllib.parse.urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]


def parse_overrides(pairs: Sequence[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"--set expects KEY=VALUE, got {pair!r}")
        out[key] = value
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ptwebhook",
        description="Fill in a message template and send it to a webhook.",
    )
    parser.add_argument("-t", "--token", required=True, help="Webhook URL, host/path, or ID/TOKEN")
    parser.add_argument("--templates-dir", default=None, help="Directory of *.toml templates (default: ./templates)")
    parser.add_argument("--log-dir", default=None, help="Directory for log files")
    parser.add_argument("--template", default="", help="Template id to preselect (file name without .toml)")
    parser.add_argument("--plain", action="store_true", help="Line-oriented console instead of curses")
    parser.add_argument("--push", action="store_true", help="Send --template non-interactively and exit")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                        help="Field value for --push (repeatable)")
    return parser


def build_config(argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    env = os.environ if env is None else env
    args = build_parser().parse_args(argv)

    webhook_url = parse_webhook_url(args.token)

    templates_dir = Path(args.templates_dir or env.get("PTWEBHOOK_TEMPLATES_DIR") or DEFAULT_TEMPLATES_DIR)
    log_dir_raw = args.log_dir or env.get("PTWEBHOOK_LOG_DIR") or ""
    timeout_raw = env.get("PTWEBHOOK_TIMEOUT", "")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
    except ValueError as exc:
        raise ConfigError(f"PTWEBHOOK_TIMEOUT must be a number, got {timeout_raw!r}") from exc
    if timeout <= 0:
        raise ConfigError("PTWEBHOOK_TIMEOUT must be positive")

    if args.push and not args.template:
        raise ConfigError("--push requires --template")
    if args.overrides and not args.push:
        raise ConfigError("--set is only valid with --push")

    return AppConfig(
        webhook_url=webhook_url,
        templates_dir=templates_dir,
        log_dir=Path(log_dir_raw) if log_dir_raw else None,
        timeout=timeout,
        plain=args.plain,
        template=args.template,
        push=args.push,
        overrides=parse_overrides(args.overrides),
    )


def now() -> float:
    return time.monotonic()
