#!/usr/bin/env python3
"""
Sign in against the Firebase Auth Emulator and check the token with the API.

Usage:
    python get_test_token.py [--email EMAIL] [--password PASSWORD] [--api URL]

The emulator must be running on localhost:9099 and the API on --api
(default http://localhost:8000). The user is created in the emulator if it
does not exist yet.
"""

import argparse
import sys

import requests

EMULATOR_URL = "http://localhost:9099/identitytoolkit.googleapis.com/v1"
FIREBASE_API_KEY = "demo-key"  # Any value works with the emulator


def emulator_request(action: str, email: str, password: str) -> requests.Response:
    return requests.post(
        f"{EMULATOR_URL}/accounts:{action}?key={FIREBASE_API_KEY}",
        json={"email": email, "password": password, "returnSecureToken": True},
        timeout=10,
    )


def get_id_token(email: str, password: str) -> str:
    """Sign in, signing up first when the emulator has no such user."""
    response = emulator_request("signInWithPassword", email, password)
    if response.status_code != 200 and "EMAIL_NOT_FOUND" in response.text:
        print(f"User {email} not found in the emulator, creating it")
        response = emulator_request("signUp", email, password)

    if response.status_code != 200:
        print(f"✗ Emulator error {response.status_code}: {response.text}")
        sys.exit(1)

    return response.json()["idToken"]


def check_session(api_url: str, token: str) -> None:
    """Ask the API who the token belongs to."""
    response = requests.get(
        f"{api_url}/api/v1/session",
        headers={"Authorization": f"Bearer {token}"},
        timeout=10,
    )
    response.raise_for_status()
    session = response.json()

    if not session["authenticated"]:
        print("✗ The API did not accept the token. Is FIREBASE_AUTH_EMULATOR_HOST set for it?")
        sys.exit(1)

    user = session["user"]
    print(f"✓ API resolved the token to user {user['user_id']} ({user['email']})")
    print(f"  provider: {user['provider']}, created: {user['created_at']}")


def main():
    parser = argparse.ArgumentParser(description="Get an emulator ID token for the API")
    parser.add_argument("--email", default="test@example.com")
    parser.add_argument("--password", default="hello1234")
    parser.add_argument("--api", default="http://localhost:8000")
    parser.add_argument(
        "--skip-api", action="store_true", help="Only print the token, do not call the API"
    )
    args = parser.parse_args()

    try:
        token = get_id_token(args.email, args.password)
    except requests.exceptions.ConnectionError:
        print("✗ Could not connect to the Firebase Auth Emulator")
        print("  firebase emulators:start --only auth")
        sys.exit(1)

    print(f"✓ Signed in as {args.email}")
    print(f'\nexport TOKEN="{token}"\n')

    if args.skip_api:
        return

    try:
        check_session(args.api, token)
    except requests.exceptions.RequestException as e:
        print(f"✗ Could not check the token with the API at {args.api}: {e}")
        sys.exit(1)

    print("\nTry the seeded data:")
    print(f'  curl -H "Authorization: Bearer $TOKEN" {args.api}/api/v1/history')


if __name__ == "__main__":
    main()
