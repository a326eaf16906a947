"""Sign this machine in as a restaurant device.

The device fingerprint is derived once and kept in ``--state-dir`` so later
runs present the same identity to the server.
"""
import argparse
import getpass
import json
from pathlib import Path

import requests

from ewaiter.services.device_identity import LocalDeviceIdentity

DEFAULT_STATE_DIR = Path.home() / ".ewaiter"


def login(server: str, fingerprint: str, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    payload = {"email": args.email, "password": password, "tenant_id": args.tenant_id, "role": args.role}
    response = requests.post(
        f"{server}/auth/login",
        json=payload,
        headers={"X-Device-Id": fingerprint},
        timeout=args.timeout,
    )
    if response.status_code != 200:
        print(f"Login failed ({response.status_code}): {response.json().get('detail')}")
        return 1

    body = response.json()
    token_path = args.state_dir / "token.json"
    token_path.write_text(json.dumps(body), encoding="utf-8")
    table = f", table {body['table_number']}" if body.get("table_number") else ""
    print(f"Signed in to restaurant {body['tenant_id']} as {body['role']}{table}")
    return 0


def logout(server: str, fingerprint: str, args: argparse.Namespace) -> int:
    token_path = args.state_dir / "token.json"
    if not token_path.exists():
        print("Not signed in")
        return 0
    token = json.loads(token_path.read_text(encoding="utf-8"))["access_token"]
    response = requests.post(
        f"{server}/auth/logout",
        headers={"X-Device-Id": fingerprint, "Authorization": f"Bearer {token}"},
        timeout=args.timeout,
    )
    if response.status_code not in (204, 401):
        print(f"Logout failed ({response.status_code})")
        return 1
    token_path.unlink()
    print("Signed out")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="E-Waiter device sign-in")
    parser.add_argument("--server", required=True)
    parser.add_argument("--state-dir", type=Path, default=DEFAULT_STATE_DIR)
    parser.add_argument("--timeout", type=float, default=10.0)
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", default=None)
    login_parser.add_argument("--tenant-id", required=True)
    login_parser.add_argument("--role", choices=["owner", "staff", "table"], default=None)

    subparsers.add_parser("logout")
    subparsers.add_parser("whoami")

    args = parser.parse_args()
    args.state_dir.mkdir(parents=True, exist_ok=True)
    fingerprint = LocalDeviceIdentity(args.state_dir / "device_id").current_fingerprint()

    if args.command == "whoami":
        print(fingerprint)
        return 0

    server = args.server.rstrip("/")
    try:
        if args.command == "login":
            return login(server, fingerprint, args)
        return logout(server, fingerprint, args)
    except requests.RequestException as exc:
        print(f"Server unreachable: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
