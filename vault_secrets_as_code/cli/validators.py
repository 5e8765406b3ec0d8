"""Input validation for CLI arguments."""
import re
import sys

TRANSIT_PREFIX = "vault:"


def validate_secret_path(path: str) -> None:
    """
    Validate a KV path relative to the configured mount.

    Rules: non-empty, no whitespace, no leading '/', no empty or '..' segments.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not path:
        print("Error: Secret path cannot be empty", file=sys.stderr)
        sys.exit(2)

    problem = None
    if re.search(r"\s", path):
        problem = "contains whitespace"
    elif path.startswith("/"):
        problem = "starts with '/' (paths are relative to the KV mount)"
    else:
        segments = path.rstrip("/").split("/")
        if any(segment == "" for segment in segments):
            problem = "contains an empty segment ('//')"
        elif any(segment == ".." for segment in segments):
            problem = "contains a '..' segment"

    if problem:
        print(f"Error: Invalid secret path '{path}': {problem}", file=sys.stderr)
        print("\nExamples of valid paths:", file=sys.stderr)
        print("  ✓ app/database", file=sys.stderr)
        print("  ✓ team-a/prod/api-keys", file=sys.stderr)
        sys.exit(2)


def validate_declared_secrets(declared, source: str) -> None:
    """
    Validate a declared secrets file: a mapping of key -> transit ciphertext.

    An empty mapping ({}) is allowed and empties the path on apply.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not isinstance(declared, dict):
        print(f"Error: {source} must contain a mapping of secret name to ciphertext", file=sys.stderr)
        sys.exit(2)

    for key, value in declared.items():
        if not isinstance(key, str) or not key:
            print(f"Error: Invalid secret name {key!r} in {source}", file=sys.stderr)
            sys.exit(2)
        if not isinstance(value, str) or not value.startswith(TRANSIT_PREFIX):
            print(f"Error: Value of '{key}' in {source} is not a transit ciphertext", file=sys.stderr)
            print(f"\nCiphertexts start with '{TRANSIT_PREFIX}'. Produce one with:", file=sys.stderr)
            print("  vsac secrets encrypt <value>", file=sys.stderr)
            sys.exit(2)
