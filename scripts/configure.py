"""Interactive setup script for shiftsync.

Prompts for configuration values, validates them, and writes a .env file,
then runs the Google Calendar verification.

Usage:
    python scripts/configure.py
"""

import getpass
import json
import subprocess
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

ENV_FILE = Path(__file__).parent.parent / ".env"
DEFAULT_SCHEDULE_URL = "https://mysite.starbucks.com/MySchedule/Schedule.aspx"


def _prompt(label: str, default: str = "", secret: bool = False, required: bool = True) -> str:
    """Prompt for a value, showing the label and optional default."""
    display = f"  {label} [{default}]: " if default else f"  {label}: "
    while True:
        value = getpass.getpass(display) if secret else input(display).strip()
        if not value:
            if default:
                return default
            if not required:
                return ""
            print(f"    {label} is required - please enter a value.")
            continue
        return value


def _validate_service_account(raw: str) -> dict | None:
    """Parse and validate a service account JSON string. Returns the parsed dict or None."""
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"    Invalid JSON: {e}")
        return None

    required_fields = ["type", "project_id", "private_key", "client_email"]
    missing = [f for f in required_fields if f not in info]
    if missing:
        print(f"    Missing required fields: {', '.join(missing)}")
        return None

    if info.get("type") != "service_account":
        print(f"    Expected type 'service_account', got '{info.get('type')}'")
        return None

    return info


def _validate_timezone(tz: str) -> bool:
    """Return True if tz is a valid IANA timezone name."""
    try:
        ZoneInfo(tz)
        return True
    except ZoneInfoNotFoundError:
        print(f"    '{tz}' is not a valid IANA timezone name.")
        print("    See: https://en.wikipedia.org/wiki/List_of_tz_database_time_zones")
        return False


def _prompt_security_answers() -> dict[str, str]:
    """Collect question/answer pairs until an empty question is entered."""
    print("  Enter each security question exactly as the site shows it.")
    print("  Press Enter on an empty question to finish.")
    answers: dict[str, str] = {}
    while True:
        question = _prompt("Question", required=False)
        if not question:
            return answers
        answers[question] = _prompt("Answer", secret=True)


def _env_value(value: str) -> str:
    return "'" + value.replace("'", "\\'") + "'"


def main() -> None:
    print("=" * 60)
    print("  shiftsync - Interactive Setup")
    print("=" * 60)
    print()

    if ENV_FILE.exists():
        print(f"  Existing .env found at {ENV_FILE}")
        answer = input("  Overwrite it? [y/N] ").strip().lower()
        if answer != "y":
            print("  Aborted.")
            sys.exit(0)
        print()

    config: dict[str, str] = {}

    # ---- Partner site ----
    print("--- Partner site ---")
    config["PARTNER_ID"] = _prompt("Partner id")
    config["PARTNER_PASSWORD"] = _prompt("Password", secret=True)
    config["SCHEDULE_URL"] = _prompt("Schedule URL", default=DEFAULT_SCHEDULE_URL)
    print()
    config["SECURITY_ANSWERS"] = json.dumps(_prompt_security_answers())

    # ---- Google Calendar ----
    print()
    print("--- Google Calendar ---")
    print("  For GOOGLE_SERVICE_ACCOUNT_JSON, enter either:")
    print("    - A path to your downloaded JSON key file, e.g. ./gcp-service-account-key.json")
    print("    - The raw JSON contents pasted directly")

    while True:
        raw = _prompt("Service account (file path or raw JSON)")
        candidate = Path(raw)
        if candidate.exists() and candidate.suffix == ".json":
            raw = candidate.read_text(encoding="utf-8")
        sa_info = _validate_service_account(raw)
        if sa_info:
            config["GOOGLE_SERVICE_ACCOUNT_JSON"] = json.dumps(sa_info)
            print(f"    Service account: {sa_info['client_email']}")
            break

    print()
    print("  Use a calendar that holds nothing but shifts: every upcoming event on it")
    print("  that does not match a scheduled shift is deleted on each run.")
    while True:
        calendar_id = _prompt("Calendar ID (e.g. abc123@group.calendar.google.com)")
        if not calendar_id.lower().endswith("@group.calendar.google.com"):
            print("    Only a secondary calendar id (...@group.calendar.google.com) can be used.")
            continue
        config["GOOGLE_CALENDAR_ID"] = calendar_id
        break

    # ---- Optional settings ----
    print()
    print("--- Optional Settings (press Enter to keep the shown default) ---")

    while True:
        tz = _prompt("Timezone", default="America/New_York")
        if _validate_timezone(tz):
            config["LOCAL_TIMEZONE"] = tz
            break

    config["EVENT_LABEL"] = _prompt("Event title label", default="Starbucks")
    config["EVENT_LOCATION"] = _prompt("Fallback event location", required=False)

    # ---- Write .env ----
    print()
    print(f"Writing {ENV_FILE}...")
    lines = [
        "# Generated by scripts/configure.py - edit as needed\n",
        "\n",
        "# ---- Partner site ----\n",
        f"PARTNER_ID={_env_value(config['PARTNER_ID'])}\n",
        f"PARTNER_PASSWORD={_env_value(config['PARTNER_PASSWORD'])}\n",
        f"SCHEDULE_URL={config['SCHEDULE_URL']}\n",
        f"SECURITY_ANSWERS={_env_value(config['SECURITY_ANSWERS'])}\n",
        "\n",
        "# ---- Google Calendar ----\n",
        f"GOOGLE_SERVICE_ACCOUNT_JSON={_env_value(config['GOOGLE_SERVICE_ACCOUNT_JSON'])}\n",
        f"GOOGLE_CALENDAR_ID={config['GOOGLE_CALENDAR_ID']}\n",
        "\n",
        "# ---- Sync options ----\n",
        f"LOCAL_TIMEZONE={config['LOCAL_TIMEZONE']}\n",
        f"EVENT_LABEL={_env_value(config['EVENT_LABEL'])}\n",
        f"EVENT_LOCATION={_env_value(config['EVENT_LOCATION'])}\n",
        "# REMINDER_MINUTES=240,60,15\n",
        "# HEADLESS=true\n",
        "\n",
        "# ---- Navigation bounds ----\n",
        "# NAV_TIMEOUT_MS=30000\n",
        "# NAV_POLL_INTERVAL_MS=2000\n",
        "# NAV_MAX_STALLS=5\n",
        "# NAV_MAX_STEPS=12\n",
        "\n",
        "# ---- Failure notifications ----\n",
        "# NOTIFY_ENABLED=false\n",
        "# NOTIFY_EMAIL=\n",
        "# SMTP_HOST=\n",
        "# SMTP_PORT=587\n",
        "# SMTP_USERNAME=\n",
        "# SMTP_PASSWORD=\n",
    ]

    ENV_FILE.write_text("".join(lines), encoding="utf-8")
    print(f"  Written: {ENV_FILE}")

    # ---- Verify ----
    print()
    print("Verifying Google Calendar access...")
    verify_script = Path(__file__).parent / "verify_google_setup.py"
    result = subprocess.run(
        [sys.executable, str(verify_script)],
        cwd=ENV_FILE.parent,
        capture_output=True,
        text=True,
    )
    print(result.stdout.rstrip())
    if result.returncode != 0:
        if result.stderr:
            print(result.stderr.rstrip())
        print()
        print("WARNING: Verification failed - check the errors above before running the full sync.")

    print()
    print("=" * 60)
    print("  Setup complete! Install the browser once, then run the sync:")
    print("    playwright install chromium")
    print("    python -m shiftsync.main")
    print("=" * 60)


if __name__ == "__main__":
    main()
