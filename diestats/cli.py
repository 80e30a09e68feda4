"""
Die Stats CLI - Command-line interface for the engine.

Usage:
    diestats serve                 Run the REST API
    diestats replay <plays_file>   Replay a recorded match and print the result

A plays file is JSON:
    {
        "match": {"creator_id": "host", "score_limit": 11, ...},
        "players": ["alice", "bob", "carol", "dave"],
        "plays": [{"player_id": "alice", "throw_type": "hit", "team": "team1"}, ...]
    }
"""

import argparse
import json
import logging
import os
import sys


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Die Stats - Live match scoring engine",
        prog="diestats",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Replay a recorded match")
    replay_parser.add_argument("plays_file", help="Path to plays JSON file")

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else os.getenv("DIESTATS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "replay":
        cmd_replay(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the REST API with uvicorn."""
    import uvicorn

    uvicorn.run("diestats.api.app:app", host=args.host, port=args.port, reload=args.reload)


def cmd_replay(args):
    """Replay a recorded match."""
    from pydantic import ValidationError

    from .api.service import APIService
    from .api.schemas import (
        CreateMatchRequest, JoinMatchRequest, StatusChangeRequest, StatusAction,
        SubmitPlayRequest, ErrorResponse,
    )

    try:
        with open(args.plays_file, "r", encoding="utf-8") as f:
            recording = json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {args.plays_file}")
        sys.exit(1)

    service = APIService()
    try:
        create = CreateMatchRequest(**{"creator_id": "replay", **recording.get("match", {})})
        plays = [SubmitPlayRequest(**play) for play in recording.get("plays", [])]
    except ValidationError as e:
        print(f"Error: Invalid plays file: {e}")
        sys.exit(1)

    match = service.create_match(create)
    if isinstance(match, ErrorResponse):
        print(f"Error: {match.error}")
        sys.exit(1)

    for identity in recording.get("players", []):
        service.join_match(JoinMatchRequest(room_code=match.room_code, identity=identity))
    service.change_status(
        match.match_id,
        StatusChangeRequest(action=StatusAction.START, requested_by=create.creator_id),
    )

    rejected = 0
    for number, play in enumerate(plays, start=1):
        result = service.submit_play(match.match_id, play)
        if isinstance(result, ErrorResponse):
            rejected += 1
            print(f"  play {number}: rejected ({result.error_code.value}) {result.error}")
            continue
        for change in result.state_changes:
            print(f"  play {number}: {change}")

    state = service.get_live_state(match.match_id)
    if isinstance(state, ErrorResponse):
        print(f"Error: {state.error}")
        sys.exit(1)

    print(f"\nMatch {match.room_code} ({state.status.value})")
    print(f"Team 1: {state.team_scores.team1}")
    print(f"Team 2: {state.team_scores.team2}")
    print("\nPlayers:")
    for player in state.players:
        print(
            f"  {player.position}. {player.name:<16} {player.score:>3} pts"
            f"  {player.hits}/{player.throws} hits  {player.catches} catches"
        )
    if rejected:
        print(f"\n{rejected} play(s) rejected")
        sys.exit(2)


if __name__ == "__main__":
    main()
