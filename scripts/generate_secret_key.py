#!/usr/bin/env python3
"""
Create the signing key for the web portal's session cookies.

    python scripts/generate_secret_key.py          # print a PORTAL_SECRET_KEY line
    python scripts/generate_secret_key.py .env     # store it in .env
"""

import re
import secrets
import sys
from pathlib import Path

KEY_NAME = "PORTAL_SECRET_KEY"
KEY_LINE_RE = re.compile(rf"^{KEY_NAME}=.*$", re.MULTILINE)


def new_secret_key(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def write_key(env_path: Path, key: str) -> bool:
    """
    Set the key in *env_path*, replacing an existing assignment.
    Returns True when an old value was replaced, False when the line was added.
    """
    line = f"{KEY_NAME}={key}"
    text = env_path.read_text() if env_path.exists() else ""
    if KEY_LINE_RE.search(text):
        env_path.write_text(KEY_LINE_RE.sub(lambda _m: line, text, count=1))
        return True
    if text and not text.endswith("\n"):
        text += "\n"
    env_path.write_text(text + line + "\n")
    return False


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    key = new_secret_key()
    if not args:
        print(f"{KEY_NAME}={key}")
        return 0

    env_path = Path(args[0])
    replaced = write_key(env_path, key)
    print(f"[keys] {'Replaced' if replaced else 'Added'} {KEY_NAME} in {env_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
