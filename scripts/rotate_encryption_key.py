#!/usr/bin/env python3
"""Re-encrypt every stored wallet secret with a new key.

Reads the current key from ENCRYPTION_KEY and re-encrypts private key,
public key and address of all wallets (tombstoned ones included) in a
single transaction. Update ENCRYPTION_KEY to the new key afterwards.

Usage:
    python scripts/rotate_encryption_key.py NEW_KEY [--dry-run]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from momo.crypto import SecretCodec, get_codec
from momo.errors import DecryptionError
from momo.ledger.database import close_db, get_db
from momo.ledger.models import Wallet

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def rotate(new_key: str, dry_run: bool) -> int:
    """Re-encrypt all wallets. Returns the number of rows rewritten."""
    codec = get_codec()
    SecretCodec(new_key)  # reject a malformed key before touching anything

    try:
        async with get_db() as session:
            result = await session.execute(select(Wallet).order_by(Wallet.id))
            wallets = list(result.scalars().all())

            for wallet in wallets:
                try:
                    wallet.private_key = codec.rotate(new_key, wallet.private_key)
                    wallet.public_key = codec.rotate(new_key, wallet.public_key)
                    wallet.address = codec.rotate(new_key, wallet.address)
                except DecryptionError:
                    logger.critical(
                        f"Wallet {wallet.id} cannot be decrypted with the current key - aborting"
                    )
                    raise

            if dry_run:
                await session.rollback()
                logger.info(f"Dry run: {len(wallets)} wallets would be re-encrypted")
            else:
                logger.info(f"Re-encrypted {len(wallets)} wallets")
    finally:
        await close_db()
    return len(wallets)


def main():
    parser = argparse.ArgumentParser(description="Rotate the wallet encryption key")
    parser.add_argument("new_key", help="New Fernet key (see generate_encryption_key.py)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Decrypt and re-encrypt without saving")
    args = parser.parse_args()

    try:
        asyncio.run(rotate(args.new_key, args.dry_run))
    except (DecryptionError, ValueError) as e:
        logger.error(f"Rotation failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
