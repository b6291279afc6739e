#!/usr/bin/env python3
"""Print a new ENCRYPTION_KEY for the .env file.

Usage:
    python scripts/generate_encryption_key.py
    python scripts/generate_encryption_key.py --password   # derive from a passphrase
"""

import argparse
import base64
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from momo.crypto import derive_key_from_password, generate_encryption_key


def main():
    parser = argparse.ArgumentParser(description="Generate a wallet encryption key")
    parser.add_argument("--password", action="store_true",
                        help="Derive the key from a passphrase instead of random bytes")
    args = parser.parse_args()

    if args.password:
        password = getpass.getpass("Passphrase: ")
        if not password:
            print("Empty passphrase")
            return 1
        key, salt = derive_key_from_password(password)
        print(f"ENCRYPTION_KEY={key}")
        print(f"# salt (keep it to derive the same key again): {base64.b64encode(salt).decode()}")
    else:
        print(f"ENCRYPTION_KEY={generate_encryption_key()}")

    print("# Store this key safely: wallets cannot be decrypted without it.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
