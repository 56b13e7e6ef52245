#!/usr/bin/env python3
"""
DVIR email recipient CLI

Usage:
  python scripts/manage_recipients.py --database <db> list                    # list recipients
  python scripts/manage_recipients.py --database <db> add <email>             # add (new defects only)
  python scripts/manage_recipients.py --database <db> add <email> --all-defects
  python scripts/manage_recipients.py --database <db> remove <id-or-email>    # remove (asks first)
  python scripts/manage_recipients.py --database <db> set-filter new|all      # shared setting
  python scripts/manage_recipients.py --database <db> ping                    # store connectivity
  python scripts/manage_recipients.py --database <db> test-email              # email pipeline check
  python scripts/manage_recipients.py --database <db> export [--output-dir DIR]
"""
import argparse
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dvir_emailer.panel import DvirEmailerPanel, Notifier, immediate_scheduler
from dvir_emailer.session import StaticSessionProvider


def print_notification(notification):
    """Notification -> stdout"""
    marks = {"success": "✓", "danger": "✗", "warning": "!", "info": "-"}
    print(f"{marks[notification.level.value]} {notification.message}")


def print_recipient(recipient):
    """Recipient row"""
    created = recipient.created_at or "-"
    print(f"  - {recipient.email:35s} | {recipient.defect_filter.value:4s} | {recipient.identifier:32s} | {created}")


def cmd_list(panel):
    """List recipients"""
    if not panel.refresh():
        return False
    recipients = panel.state.recipients
    print(f"\nRecipients for {panel.state.database} ({len(recipients)}):")
    print(f"Only new defects: {panel.state.send_only_new_defects}")
    print("=" * 80)
    for recipient in recipients:
        print_recipient(recipient)
    return True


def cmd_add(panel, email, all_defects):
    """Add a recipient"""
    send_only_new_defects = False if all_defects else None
    return panel.add_recipient(email, send_only_new_defects)


def cmd_remove(panel, identifier, assume_yes):
    """Remove a recipient"""
    def confirm(message):
        if assume_yes:
            return True
        return input(f"{message} [y/N] ").strip().lower() in ("y", "yes")

    return panel.remove_recipient(identifier, confirm=confirm)


def build_parser():
    parser = argparse.ArgumentParser(description='DVIR email recipient management')
    parser.add_argument('--database', required=True, help='Geotab database name')

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('list', help='list recipients')

    add = subparsers.add_parser('add', help='add a recipient')
    add.add_argument('email')
    add.add_argument('--all-defects', action='store_true',
                     help='notify about every defect, not only new ones')

    remove = subparsers.add_parser('remove', help='remove a recipient')
    remove.add_argument('identifier', help='recipient id (flat layout) or email')
    remove.add_argument('--yes', action='store_true', help='skip the confirmation prompt')

    set_filter = subparsers.add_parser('set-filter', help='shared defect filter for every recipient')
    set_filter.add_argument('defect_filter', choices=['new', 'all'])

    subparsers.add_parser('ping', help='test store connectivity')
    subparsers.add_parser('test-email', help='test the email pipeline')

    export = subparsers.add_parser('export', help='export settings as JSON')
    export.add_argument('--output-dir', default=None)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    from dvir_emailer.structured_logging import setup_logging
    setup_logging()

    from dvir_emailer.config import Config
    try:
        Config.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    panel = DvirEmailerPanel(
        notifier=Notifier(listener=print_notification),
        scheduler=immediate_scheduler,
        load_delay=0,
    )
    panel.initialize(StaticSessionProvider(args.database))

    try:
        # resolves the database, creates its configuration and loads recipients
        if not panel.focus():
            sys.exit(1)

        if args.command == "list":
            success = cmd_list(panel)
        elif args.command == "add":
            success = cmd_add(panel, args.email, args.all_defects)
        elif args.command == "remove":
            success = cmd_remove(panel, args.identifier, args.yes)
        elif args.command == "set-filter":
            success = panel.toggle_shared_setting(args.defect_filter == "new")
        elif args.command == "ping":
            success = panel.test_connection()
        elif args.command == "test-email":
            success = panel.test_email_system()
        elif args.command == "export":
            path = panel.export_settings(args.output_dir)
            if path:
                print(f"Exported to {path}")
            success = path is not None
        else:
            print(f"Unknown command: {args.command}")
            success = False

    finally:
        panel.teardown()

    if not success:
        sys.exit(1)


if __name__ == "__main__":
    main()
