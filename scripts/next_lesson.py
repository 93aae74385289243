"""Log in to SchoolSoft and print the next lesson.

Usage:
    python scripts/next_lesson.py
    python scripts/next_lesson.py --config conf/schoolsoft.yml

Credentials are read from conf/schoolsoft.yml using Credentials.from_file(); pass
--prompt to type them in instead.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from datetime import datetime
from pathlib import Path

# Import after sys.path adjustment to allow running as script
SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from schoolsoft import Client, ClientSettings, Credentials, SchoolsoftError  # noqa: E402


def _prompt_credentials() -> Credentials:
    return Credentials(
        username=input("Username: ").strip(),
        password=getpass.getpass("Password: "),
        school=input("School: ").strip(),
    )


async def _next_lesson(settings: ClientSettings, credentials: Credentials) -> int:
    async with Client(settings) as client:
        try:
            user = await client.login_with(credentials)
        except SchoolsoftError as exc:
            print(f"Failed to login: {exc}", file=sys.stderr)
            return 1

        print(f"Logged in as {user.name}")
        now = datetime.now()
        schedule = await user.get_schedule(today=now.date())

    found = schedule.next_lesson(now)
    if found is None:
        print("No upcoming lessons")
        return 0

    day, lesson = found
    print(f"{day:%A %Y-%m-%d} {lesson.start:%H:%M}-{lesson.end:%H:%M} {lesson.name} ({lesson.room})")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--config", type=Path, default=None, help="Path to schoolsoft.yml")
    parser.add_argument("--prompt", action="store_true", help="Ask for credentials")
    args = parser.parse_args()

    if args.prompt:
        settings = ClientSettings()
        credentials = _prompt_credentials()
    else:
        settings = ClientSettings.from_file(args.config)
        credentials = Credentials.from_file(args.config)

    return asyncio.run(_next_lesson(settings, credentials))


if __name__ == "__main__":
    sys.exit(main())
