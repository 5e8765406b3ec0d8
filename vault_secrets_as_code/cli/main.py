"""CLI entrypoint for vault-secrets-as-code."""
import sys
import json
import argparse
import logging
from pathlib import Path

import yaml

from .validators import validate_declared_secrets, validate_secret_path

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _operations():
    """Build record operations; config is only read when Vault is needed."""
    from vault_secrets_as_code.secrets.workflows.secret_operations import Operations
    return Operations()


def _describe(error: Exception) -> str:
    """Error text, with the secret key appended when the message lacks it."""
    message = str(error)
    key = getattr(error, "key", None)
    if key and key not in message:
        message += f" (key: {key})"
    return message


def cmd_version(args):
    """Show version information."""
    print(f"vault-secrets-as-code {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from vault_secrets_as_code.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and where it came from."""
    from vault_secrets_as_code.secrets.domains.config_loader import default_config_path
    from vault_secrets_as_code.secrets.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        found = "" if config_path.exists() else " (file not found)"
        print(f"Config path: {config_path}{found}")
        print("Source: preference")
        return

    default_config = default_config_path()
    found = "" if default_config.exists() else " (file not found)"
    print(f"Config path: {default_config}")
    print(f"Source: default{found}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from vault_secrets_as_code.secrets.domains.config_loader import default_config_path
    from vault_secrets_as_code.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def _load_declared(source: str) -> dict:
    path = Path(source)
    if not path.is_file():
        print(f"Error: Secrets file not found: {path}", file=sys.stderr)
        sys.exit(2)
    try:
        declared = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        print(f"Error: Failed to parse {path}: {e}", file=sys.stderr)
        sys.exit(2)
    validate_declared_secrets(declared, str(path))
    return declared


def cmd_secrets_apply(args):
    """Write the declared secrets to KV and record them in the state file."""
    validate_secret_path(args.path)
    declared = _load_declared(args.file)

    record = _operations().apply(args.path, declared)
    print(f"Applied {len(record.encrypted_secrets)} secret(s) to '{record.path}'")


def cmd_secrets_refresh(args):
    """Reconcile the stored record with what is live in KV."""
    validate_secret_path(args.path)

    result = _operations().refresh(args.path)
    if not result.drifted:
        print(f"'{args.path}' is up to date")
        return

    for label, keys in (("added", result.added), ("changed", result.changed), ("removed", result.removed)):
        for key in keys:
            print(f"  {label}: {key}")
    print(f"'{args.path}' drifted; state updated")


def cmd_secrets_destroy(args):
    validate_secret_path(args.path)
    _operations().destroy(args.path)
    print(f"Destroyed '{args.path}'")


def cmd_secrets_import(args):
    """Claim an existing KV entry without changing its data."""
    validate_secret_path(args.path)
    _operations().import_(args.path)
    print(f"Imported '{args.path}'. Run 'vsac secrets refresh {args.path}' to populate the state.")


def cmd_secrets_show(args):
    validate_secret_path(args.path)
    record = _operations().show(args.path)
    if record is None:
        print(f"Error: No state for '{args.path}'", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(record.to_dict(), indent=2, sort_keys=True))


def cmd_secrets_encrypt(args):
    """Encrypt a value with the configured transit key."""
    ciphertext = _operations().encrypt(args.value)
    print(ciphertext)


def cmd_secrets_decrypt(args):
    """Decrypt a transit ciphertext."""
    plaintext = _operations().decrypt(args.ciphertext)
    if args.quiet:
        print(plaintext)
    else:
        print(f"Plaintext: {plaintext}")


SECRETS_COMMANDS = {
    "apply": cmd_secrets_apply,
    "refresh": cmd_secrets_refresh,
    "destroy": cmd_secrets_destroy,
    "import": cmd_secrets_import,
    "show": cmd_secrets_show,
    "encrypt": cmd_secrets_encrypt,
    "decrypt": cmd_secrets_decrypt,
}

CONFIG_COMMANDS = {
    "set-path": cmd_config_set_path,
    "show": cmd_config_show,
    "clear": cmd_config_clear,
}


def build_parser():
    parser = argparse.ArgumentParser(
        prog="vsac",
        description="vault-secrets-as-code - keep Vault KV in sync with transit-encrypted secrets",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (Vault unreachable, ownership conflict, secret not found, etc.)
  2 - Usage error (invalid arguments, invalid path, malformed secrets file, etc.)

Environment variables:
  VAULT_TOKEN - Vault token used when the config sets none

Configuration:
  Default location: ~/.config/vault-secrets-as-code/config.yml
  Custom path: Set with 'vsac config set-path <path>'
  View current: Run 'vsac config show'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log per-key reconciliation decisions to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of vault-secrets-as-code"
    )

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage vault-secrets-as-code configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path to your config file in ~/.config/vault-secrets-as-code/preferences.json"
    )
    set_path_parser.add_argument("path", help="Path to config file")
    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")

    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret reconciliation operations",
        description="Apply, refresh, import and destroy managed KV secrets"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    apply_parser = secrets_subparsers.add_parser(
        "apply",
        help="Write declared secrets to KV",
        description="""
Decrypt every ciphertext in FILE and write the plaintexts to PATH.

FILE is YAML or JSON mapping secret name to transit ciphertext:
  db_password: vault:v1:AbC...
  api_key: vault:v1:XyZ...

The first apply of a path claims it (managed_by tag). Later applies
replace its contents entirely. Paths owned by another configuration
are refused.
        """
    )
    apply_parser.add_argument("path", help="KV path relative to the configured mount")
    apply_parser.add_argument("-f", "--file", required=True, help="Declared secrets file")

    refresh_parser = secrets_subparsers.add_parser(
        "refresh",
        help="Detect drift between state and KV",
        description="""
Compare live KV values with the stored record. Unchanged values keep
their ciphertext; new or changed values are re-encrypted; keys removed
from KV are dropped from the record.
        """
    )
    refresh_parser.add_argument("path", help="KV path relative to the configured mount")

    destroy_parser = secrets_subparsers.add_parser(
        "destroy",
        help="Delete a managed path and all of its versions"
    )
    destroy_parser.add_argument("path", help="KV path relative to the configured mount")

    import_parser = secrets_subparsers.add_parser(
        "import",
        help="Adopt an existing KV path",
        description="Tag an existing KV path as managed by this configuration without touching its data."
    )
    import_parser.add_argument("path", help="KV path relative to the configured mount")

    show_parser = secrets_subparsers.add_parser("show", help="Print the stored record for a path")
    show_parser.add_argument("path", help="KV path relative to the configured mount")

    encrypt_parser = secrets_subparsers.add_parser(
        "encrypt",
        help="Encrypt a value with the transit key",
        description="Print the transit ciphertext for VALUE, ready to paste into a secrets file."
    )
    encrypt_parser.add_argument("value", help="Plaintext to encrypt")

    decrypt_parser = secrets_subparsers.add_parser("decrypt", help="Decrypt a transit ciphertext")
    decrypt_parser.add_argument("ciphertext", help="Transit ciphertext (vault:vN:...)")
    decrypt_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the plaintext"
    )

    return parser, {"config": config_parser, "secrets": secrets_parser}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (Vault, ownership, not found, etc.)
        2 - Usage errors (invalid arguments, invalid path, etc.)
    """
    parser, group_parsers = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handler = CONFIG_COMMANDS.get(args.config_command)
            if handler is None:
                group_parsers["config"].print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "secrets":
            handler = SECRETS_COMMANDS.get(args.secrets_command)
            if handler is None:
                group_parsers["secrets"].print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {_describe(e)}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
