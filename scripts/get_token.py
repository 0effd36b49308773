#!/usr/bin/env python3
"""
Asana OAuth Account Connector

Run this script once to connect an Asana account without exposing the
relay's /oauth routes. The resulting token pair is stored in the users
table and the printed account id can be passed as ?account_id= on the
webhook target so deliveries are enriched with that account's token.

Usage:
    python scripts/get_token.py

Follow the prompts:
1. Click the generated URL
2. Authorize on Asana
3. Copy the 'code' parameter from the failed redirect URL
4. Paste it into the terminal
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path so we can import from activity_relay
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from activity_relay.auth.asana import AsanaOAuth  # noqa: E402
from activity_relay.credentials import CredentialStore  # noqa: E402
from activity_relay.db import async_session_factory, init_db  # noqa: E402


async def main():
    print("=" * 60)
    print("Asana OAuth Account Connector")
    print("=" * 60)
    print()

    oauth = AsanaOAuth()
    auth_url = oauth.get_auth_url(state="token-generator")

    print("Step 1: Visit this URL in your browser:")
    print()
    print(auth_url)
    print()
    print("Step 2: After authorizing, Asana will redirect to your configured")
    print(f"  ASANA_REDIRECT_URI ({oauth.redirect_uri or 'not set'})?code=...")
    print()
    print("If nothing is listening there the page will fail to load (that's expected).")
    print()
    print("Step 3: Paste the ENTIRE URL from your browser's address bar,")
    print("or just the 'code' value:")
    print()

    user_input = input("Paste here: ").strip()

    if "code=" in user_input:
        code = user_input.split("code=")[1].split("&")[0]
    else:
        code = user_input

    print()
    print("Exchanging code for tokens...")

    try:
        token_data = await oauth.exchange_code(code)
        await init_db()
        account_id = await CredentialStore(async_session_factory, oauth).save(token_data)
    except Exception as e:
        print()
        print("ERROR:", str(e))
        print()
        print("Make sure you:")
        print("  1. Copied the entire code value")
        print("  2. Have ASANA_CLIENT_ID and ASANA_CLIENT_SECRET in .env")
        print("  3. Set the same redirect URI in the Asana developer console")
        sys.exit(1)

    print()
    print("=" * 60)
    print(f"SUCCESS! Connected {token_data.user.name} as account {account_id}")
    print("=" * 60)
    print()
    print("Register webhooks with this account via POST /webhooks/register")
    print(f'  {{"resource_gid": "<project gid>", "account_id": {account_id}}}')
    print()


if __name__ == "__main__":
    asyncio.run(main())
