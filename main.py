"""
Main application entry point
"""
import argparse
import getpass
import os
import sys

from pop3_client import config
from pop3_client.app import create_context
from pop3_client.utils.errors import MailClientError, StartupFatalError, human_friendly_message
from pop3_client.utils.logging_cfg import get_logger, setup_logging


logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check a POP3 mailbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py alice@example.com                 # List messages
  python main.py alice@example.com --delete 3      # Delete message 3
  POP3_PASSWORD=secret python main.py alice@example.com --password-env POP3_PASSWORD
        """
    )
    parser.add_argument('address', help='E-mail address to sign in with')
    parser.add_argument(
        '--password-env',
        metavar='VAR',
        help='Read the password from this environment variable instead of prompting'
    )
    parser.add_argument(
        '--delete',
        type=int,
        metavar='N',
        help='Delete message number N, then list the mailbox again'
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def print_mailbox(session) -> None:
    print(f"{session.address}: {session.message_count} message(s)")
    for message in session.messages:
        sender = message.sender_name or message.sender
        sent = message.sent_at.strftime("%Y-%m-%d %H:%M") if message.sent_at else ""
        print(f"{message.sequence_number:>4}  {sent:16}  {sender[:30]:30}  {message.subject}")


def main(argv=None):
    """Main function"""
    args = parse_args(argv)

    try:
        config.load_env()
    except ValueError as e:
        print(human_friendly_message(e), file=sys.stderr)
        sys.exit(2)
    setup_logging(debug=args.debug)

    try:
        context = create_context()
    except StartupFatalError as e:
        logger.critical(str(e))
        print(human_friendly_message(e), file=sys.stderr)
        sys.exit(2)

    if args.password_env:
        password = os.environ.get(args.password_env, "")
    else:
        password = getpass.getpass(f"Password for {args.address}: ")

    session = context.session
    try:
        session.sign_in(args.address, password)
        print_mailbox(session)

        if args.delete is not None:
            session.delete_message(args.delete)
            print(f"Deleted message {args.delete}")
            session.refresh_mailbox()
            print_mailbox(session)
    except MailClientError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(human_friendly_message(e), file=sys.stderr)
        context.exit(1)

    context.exit(0)


if __name__ == "__main__":
    main()
