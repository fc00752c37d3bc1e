"""Terminal client that polls a poker session and prints the table."""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

from urllib import error, request

from pokerroom.backend.config import load_settings

ROOT_DIR = Path(__file__).resolve().parents[2]
HIDDEN_VOTE = "voted"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Poker room session watcher")
    parser.add_argument("--server", default=f"http://{settings.host}:{settings.port}")
    parser.add_argument("--session-id", required=True)
    parser.add_argument("--interval", type=float, default=settings.poll_interval)
    parser.add_argument("--once", action="store_true")
    parser.add_argument("--start-server", action="store_true")
    return parser.parse_args(argv)


def wait_for_server(server_url: str, timeout_s: float = 8.0) -> bool:
    start = time.time()
    while time.time() - start < timeout_s:
        try:
            with request.urlopen(f"{server_url}/api/poker-values", timeout=0.5) as response:
                if int(response.status) < 500:
                    return True
        except (error.URLError, TimeoutError):
            pass
        time.sleep(0.2)
    return False


def maybe_start_server(server_url: str) -> subprocess.Popen[str] | None:
    env = os.environ.copy()
    host_port = server_url.removeprefix("http://")
    host, port = host_port.split(":", maxsplit=1)
    command = [
        sys.executable,
        "-m",
        "uvicorn",
        "pokerroom.backend.api:app",
        "--host",
        host,
        "--port",
        port,
    ]
    process = subprocess.Popen(command, cwd=str(ROOT_DIR), env=env)
    if wait_for_server(server_url):
        return process
    stop_server(process)
    return None


def stop_server(process: subprocess.Popen[str], timeout_s: float = 5.0) -> None:
    process.terminate()
    try:
        process.wait(timeout=timeout_s)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def build_details_url(server: str, session_id: str) -> str:
    return f"{server.rstrip('/')}/api/sessions/{quote(session_id, safe='')}"


def fetch_session_details(server: str, session_id: str) -> dict[str, Any]:
    with request.urlopen(build_details_url(server, session_id), timeout=5) as response:
        return json.loads(response.read().decode("utf-8"))


def render_session(view: dict[str, Any]) -> str:
    session = view["session"]
    lines = [f"Session {session['name']} ({session['id']})"]

    story = view.get("current_story")
    if story is None:
        lines.append("No active story")
    else:
        lines.append(f"Story: {story['title']}")

    votes_by_participant = {entry["participant_id"]: entry for entry in view.get("votes") or []}
    bets_by_participant = {entry["participant_id"]: entry for entry in view.get("bets") or []}
    for participant in view.get("participants", []):
        label = participant["name"] + (" (host)" if participant["is_host"] else "")
        vote = votes_by_participant.get(participant["id"])
        if vote is None:
            status = "-"
        elif vote["vote_value"] is None:
            status = HIDDEN_VOTE
        else:
            status = vote["vote_value"]
        bet = bets_by_participant.get(participant["id"])
        if bet is not None and bet["bet_value"] is not None:
            status = f"{status} (bet {bet['bet_value']})"
        lines.append(f"  {label}: {status}")

    summary = view.get("summary")
    if summary is not None:
        average = summary["average"] if summary["average"] is not None else "n/a"
        consensus = "yes" if summary["consensus"] else "no"
        lines.append(f"Votes: {summary['vote_count']}, average: {average}, consensus: {consensus}")
    return "\n".join(lines)


def watch(server: str, session_id: str, interval: float, once: bool = False) -> int:
    last_rendered = None
    while True:
        try:
            view = fetch_session_details(server, session_id)
        except error.HTTPError as exc:
            if exc.code == 404:
                print(f"Session {session_id} not found", file=sys.stderr)
                return 1
            print(f"Session {session_id} unavailable: HTTP {exc.code}", file=sys.stderr)
            view = None
        except error.URLError as exc:
            print(f"Server unreachable: {exc.reason}", file=sys.stderr)
            view = None

        if view is None:
            if once:
                return 1
        else:
            rendered = render_session(view)
            if rendered != last_rendered:
                print(rendered, flush=True)
                last_rendered = rendered
            if once:
                return 0
        time.sleep(interval)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    server_process: subprocess.Popen[str] | None = None
    if args.start_server:
        server_process = maybe_start_server(args.server)
        if server_process is None:
            print("Server could not be started.", file=sys.stderr)
            return 1
    elif not wait_for_server(args.server):
        print("Server unreachable. Use --start-server or run uvicorn manually.", file=sys.stderr)
        return 1

    try:
        return watch(server=args.server, session_id=args.session_id, interval=args.interval, once=args.once)
    except KeyboardInterrupt:
        return 0
    finally:
        if server_process is not None:
            stop_server(server_process)


if __name__ == "__main__":
    raise SystemExit(main())
