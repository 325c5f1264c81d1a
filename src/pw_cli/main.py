#!/usr/bin/env python3
"""pw-cli - Store and retrieve named passwords from the command line.

Secrets are kept in the OS keyring; a JSON index next to the caller records
which keys (and tags) exist so that bare keys can be resolved.

    pw set db hunter2
    pw set db s3cret --tag prod
    pw db --tag prod --copy
    pw list --untagged
    pw rm db --tag prod
"""

import argparse
import getpass
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .backends import KeyringSecretStore, PyperclipClipboard
from .errors import ConfigurationError, PwError
from .index import JsonIndexStore
from .manager import PasswordManager
from .resolver import NO_TAG, Ambiguous, NotFound, identifier_of

# Constants
SERVICE = "pw-cli"
DEFAULT_INDEX = Path("keys.json")
INDEX_ENV = "PW_CLI_INDEX"
PASSWORD_ENV = "PW_CLI_PASSWORD"
COMMANDS = ("set", "get", "rm", "list")
VALUE_OPTIONS = ("--index", "-t", "--tag")

logger = logging.getLogger("pw_cli")


def get_index_path(args_index=None):
    """Get index path from args, then PW_CLI_INDEX, then the default."""
    if args_index:
        return Path(args_index)
    env_index = os.environ.get(INDEX_ENV)
    if env_index:
        return Path(env_index)
    return DEFAULT_INDEX


def read_password(prompt="Enter password: "):
    """Get the password to store from PW_CLI_PASSWORD or an interactive prompt."""
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        return env_password
    return getpass.getpass(prompt)


def configure_logging(verbose=False, quiet=False):
    """Send pw_cli log records to stderr at the requested level."""
    if quiet:
        level = logging.CRITICAL + 1
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)


def get_account():
    """Return the OS account name that scopes keyring entries."""
    try:
        return getpass.getuser()
    except OSError as e:
        raise ConfigurationError(f"Cannot determine the current user name: {e}") from e


def build_manager(args, account=None):
    """Wire the JSON index, the keyring and the clipboard for one invocation."""
    index_store = JsonIndexStore(get_index_path(args.index))
    secret_store = KeyringSecretStore(SERVICE, account or get_account())
    return PasswordManager(index_store, secret_store, PyperclipClipboard())


def emit(args, message=""):
    """Print a human-readable line unless running quietly."""
    if not args.quiet:
        print(message)


def report_ambiguous(args, outcome):
    emit(args, f"\"{outcome.key}\" matches several entries:")
    for identifier in outcome.identifiers:
        emit(args, f"* {identifier}")
    emit(args, "Specify one with --tag.")


def cmd_set(args, manager):
    """Store a password, registering the key (and tag) in the index."""
    password = args.password if args.password is not None else read_password()
    stored = manager.set_password(args.key, password, args.tag)
    emit(args, f"Password for \"{stored.identifier}\" set successfully.")


def cmd_get(args, manager):
    """Print (and optionally copy) a password."""
    outcome = manager.get_password(args.key, args.tag)

    if isinstance(outcome, Ambiguous):
        report_ambiguous(args, outcome)
        return

    emit(args, f"The password for \"{outcome.identifier}\" is \"{outcome.secret}\".")

    if args.copy:
        manager.copy_secret(outcome)
        emit(args, "Copied to the clipboard!")


def cmd_rm(args, manager):
    """Remove a password and its index entry."""
    outcome = manager.remove_password(args.key, args.tag)

    if isinstance(outcome, Ambiguous):
        report_ambiguous(args, outcome)
    elif isinstance(outcome, NotFound):
        emit(args, f"No entry named \"{outcome.key}\".")
    else:
        emit(args, f"\"{outcome.identifier}\" removed successfully.")


def cmd_list(args, manager):
    """List indexed entries."""
    if args.untagged:
        tag_filter = NO_TAG
    else:
        tag_filter = args.tag

    for entry in manager.list_entries(tag_filter):
        emit(args, f"* {identifier_of(entry)}")


def normalize_argv(argv):
    """Turn ``pw [flags] KEY ...`` into ``pw get [flags] KEY ...``.

    The first positional token decides: a known command is left alone,
    anything else is treated as a key to look up.
    """
    i = 0
    while i < len(argv):
        token = argv[i]
        if token == "--":
            rest = argv[i + 1:]
            if rest and rest[0] not in COMMANDS:
                return ["get"] + list(argv)
            break
        if token.startswith("-") and len(token) > 1:
            if token in VALUE_OPTIONS:
                i += 1
            i += 1
            continue
        if token in COMMANDS:
            return list(argv)
        return ["get"] + list(argv)
    return list(argv)


def add_common_flags(parser, suppress=False):
    """Flags accepted both before and after the subcommand."""
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False
    parser.add_argument('-c', '--copy', action='store_true', default=flag_default,
                        help='Copy the password to the clipboard')
    parser.add_argument('-q', '--quiet', action='store_true', default=flag_default,
                        help='Suppress all output')
    parser.add_argument('-v', '--verbose', action='store_true', default=flag_default,
                        help='Show diagnostic logging')
    parser.add_argument('--index', default=default,
                        help=f'Path to index file (default: ${INDEX_ENV} or ./{DEFAULT_INDEX})')


def build_parser():
    parser = argparse.ArgumentParser(
        prog='pw',
        description="pw-cli - Store and retrieve passwords in the OS keyring"
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {__version__}"
    )
    add_common_flags(parser)

    common = argparse.ArgumentParser(add_help=False)
    add_common_flags(common, suppress=True)

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # set
    set_parser = subparsers.add_parser('set', parents=[common], help='Store a password')
    set_parser.add_argument('key', help='Key name')
    set_parser.add_argument('password', nargs='?',
                            help=f'Password (default: ${PASSWORD_ENV} or prompt)')
    set_parser.add_argument('-t', '--tag', help='Tag to tell entries with the same key apart')

    # get
    get_parser = subparsers.add_parser('get', parents=[common], help='Show a password')
    get_parser.add_argument('key', help='Key name')
    get_parser.add_argument('-t', '--tag', help='Tag of the entry')

    # rm
    rm_parser = subparsers.add_parser('rm', parents=[common], help='Remove a password')
    rm_parser.add_argument('key', help='Key name')
    rm_parser.add_argument('-t', '--tag', help='Tag of the entry')

    # list
    list_parser = subparsers.add_parser('list', parents=[common], help='List stored keys')
    list_filter = list_parser.add_mutually_exclusive_group()
    list_filter.add_argument('-t', '--tag', help='Only entries with this tag')
    list_filter.add_argument('--untagged', action='store_true', help='Only entries without a tag')

    return parser


def main(argv=None):
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(normalize_argv(argv))

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.verbose, args.quiet)

    commands = {
        'set': cmd_set,
        'get': cmd_get,
        'rm': cmd_rm,
        'list': cmd_list,
    }

    try:
        manager = build_manager(args)
        commands[args.command](args, manager)
    except PwError as e:
        logger.debug("%s failed: %s", args.command, type(e).__name__)
        if not args.quiet:
            print(f"An error has occurred! Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
