#!/usr/bin/env python3
"""Interactive first login for the facilitator account.

Sends a login code to TELEGRAM_MANAGER_PHONE, asks for it (and for the 2FA
password when the account has one) and prints the StringSession value to
store as TELEGRAM_MANAGER_SESSION_STRING.

Usage::

    group-service-auth [--phone +79990000000]
"""

from __future__ import annotations

import argparse
import asyncio
import getpass

from dotenv import load_dotenv
from telethon import TelegramClient
from telethon.errors import SessionPasswordNeededError
from telethon.sessions import StringSession

from ..settings import GroupServiceSettings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Authorize the facilitator Telegram account")
    parser.add_argument("--phone", help="Override TELEGRAM_MANAGER_PHONE")
    parser.add_argument(
        "--env-file", default=".env", help="dotenv file to load before reading settings",
    )
    return parser.parse_args()


async def authorize(settings: GroupServiceSettings, phone: str) -> str:
    """Log in (if needed) and return the session string."""
    client = TelegramClient(
        StringSession(settings.telegram_session_string),
        settings.telegram_api_id,
        settings.telegram_api_hash,
        connection_retries=settings.telegram_connection_retries,
    )
    await client.connect()
    try:
        if await client.is_user_authorized():
            print("Already authorized.")
            return client.session.save()

        print(f"Sending login code to {phone}...")
        await client.send_code_request(phone)
        code = input("Code from Telegram: ").strip()
        try:
            await client.sign_in(phone=phone, code=code)
        except SessionPasswordNeededError:
            password = getpass.getpass("Two-factor password: ")
            await client.sign_in(password=password)

        return client.session.save()
    finally:
        await client.disconnect()


def main() -> int:
    args = parse_args()
    load_dotenv(args.env_file)
    settings = GroupServiceSettings.from_env()
    phone = args.phone or settings.telegram_phone

    if not settings.telegram_configured or not phone:
        print(
            "Set TELEGRAM_MANAGER_API_ID, TELEGRAM_MANAGER_API_HASH and "
            "TELEGRAM_MANAGER_PHONE (or pass --phone)."
        )
        return 1

    session_string = asyncio.run(authorize(settings, phone))
    print("\nAuthorized. Store this in your environment:")
    print(f"TELEGRAM_MANAGER_SESSION_STRING={session_string}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
