"""
Interactive CLI for pharmacy notifications.
Log in with a backend token, then inspect and dismiss notifications.
"""

import pandas as pd

from rxalerts.api.auth import identity_from_payload, verify_token
from rxalerts.api.routes import parse_notification_id
from rxalerts.config import DISMISSALS_FILE, REPORT_PERIODS
from rxalerts.dismissals import DismissalStore
from rxalerts.medicine_api import init_provider_factory
from rxalerts.report import alert_rows, build_expiry_report, category_summary
from rxalerts.service import NotificationRegistry
from rxalerts.storage import JsonFileStore

HELP = """Commands:
  count                      unread badge count
  list                       grouped notifications
  seen                       mark everything currently visible as seen
  dismiss <id>               hide one notification
  alerts [page]              expiring-soon table, soonest first
  report [period] [category] expiry report (periods: {periods})
  refresh                    fetch a fresh snapshot now
  quit""".format(periods=", ".join(REPORT_PERIODS))


def print_lists(center) -> None:
    for name, meds in center.visible_lists.groups().items():
        print(f"\n[{name.replace('_', ' ')}] ({len(meds)})")
        if not meds:
            print("(none)")
            continue
        df = pd.DataFrame([m.to_dict() for m in meds])
        cols = [c for c in ("id", "medicine_name", "category_name", "quantity", "expire_date", "supplier_name")
                if c in df.columns]
        print(df[cols].to_string(index=False))


def print_report(report: dict) -> None:
    print(f"\n[report] period={report['time_period']} generated_at={report['generated_at']}")
    print(f"  expired: {report['expired_count']}  (value {report['total_value']:.2f})")
    print(f"  expiring soon: {report['expiring_soon_count']}")
    print(f"  expiring later: {report['expiring_later_count']}")
    print("\n[Per category]")
    print(category_summary(report))


def handle(center, line: str) -> bool:
    """Run one command; returns False when the user wants to quit."""
    parts = line.split()
    cmd, args = parts[0].lower(), parts[1:]

    if cmd in {"quit", "exit"}:
        return False
    if cmd == "count":
        print(f"Unread notifications: {center.unread_count}")
    elif cmd == "list":
        print_lists(center)
    elif cmd == "seen":
        center.mark_visited_seen()
        print(f"Marked as seen. Unread notifications: {center.unread_count}")
    elif cmd == "dismiss" and args:
        center.dismiss(parse_notification_id(args[0]))
        print(f"Dismissed {args[0]}.")
    elif cmd == "alerts":
        page = int(args[0]) if args and args[0].isdigit() else 1
        result = alert_rows(center.visible_lists.expiring_soon, center.now(), page)
        print(f"\n[alerts] page {result['page']}/{result['total_pages']} ({result['total']} total)")
        if result["rows"]:
            print(pd.DataFrame(result["rows"]).to_string(index=False))
        else:
            print("No medicines are expiring within the alert horizon.")
    elif cmd == "report":
        period = args[0] if args else None
        category = " ".join(args[1:]) or None
        print_report(build_expiry_report(center.medicines, center.now(), period, category))
    elif cmd == "refresh":
        if center.refresh():
            print("Refreshed.")
        else:
            print(f"[WARN] Refresh failed; showing previous data. Details: {center.last_error}")
    else:
        print(HELP)
    return True


def main():
    print("=== Pharmacy Notifications: expiry & low-stock alerts ===\n")

    store = JsonFileStore(DISMISSALS_FILE)
    registry = NotificationRegistry(init_provider_factory(), DismissalStore(store))

    # ── Login ────────────────────────────────────────────────────────
    try:
        token = input("Enter access token (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not token or token.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    payload = verify_token(token)
    identity = identity_from_payload(payload) if payload else None
    if identity is None:
        print("\n[ERROR] Login failed.")
        print("Details: token is invalid, expired, or has no id/role.")
        return

    print(f"\n[auth] Logged in as: {payload.get('username') or identity.user_id} (role={identity.role})")
    center = registry.open(identity, token)
    if center.last_error:
        print(f"[WARN] Initial fetch failed: {center.last_error}")
    print(f"[cli] Unread notifications: {center.unread_count}")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    try:
        while True:
            try:
                line = input("\nnotifications> ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nExiting.")
                break
            if not line:
                continue
            try:
                if not handle(center, line):
                    print("Goodbye.")
                    break
            except Exception as e:
                print("\n[ERROR] Command failed.")
                print("Details:", e)
    finally:
        registry.close_all()


if __name__ == "__main__":
    main()
