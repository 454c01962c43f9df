from __future__ import annotations

import argparse
import math
from typing import Sequence

from geocoin.content.config import GameConfig, load_game_config_json
from geocoin.content.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from geocoin.sim.core import Session, StatusReport
from geocoin.sim.grid import Cell, LatLng
from geocoin.sim.position import Direction, ManualPositionFeed, SensorState

DIRECTION_COMMANDS = {
    "n": Direction.NORTH,
    "north": Direction.NORTH,
    "s": Direction.SOUTH,
    "south": Direction.SOUTH,
    "e": Direction.EAST,
    "east": Direction.EAST,
    "w": Direction.WEST,
    "west": Direction.WEST,
}
HELP_TEXT = "Commands: show | n/s/e/w | collect <i> <j> | deposit <i> <j> | sensor | gps <lat> <lng> | reset | quit"


class AsciiViewer:
    """Read-only projection of session state for terminal display."""

    def render(self, session: Session) -> str:
        here = session.tracker.cell
        lines = [
            f"pos=({session.position.lat},{session.position.lng}) cell={here.key()} "
            f"history={len(session.tracker.history)} sensor={session.sensor.state.value}",
            f"wallet: {session.wallet.summary()}",
        ]
        caches = session.visible_caches()
        if not caches:
            lines.append("<no pits nearby>")
        for cell, cache in caches:
            marker = "*" if cell == here else " "
            lines.append(f"{marker} pit {cell.key():>16} coins={cache.coin_count}")
        return "\n".join(lines)


class SessionController:
    """Parses terminal commands into session intents; does not own state."""

    def __init__(self, session: Session, feed: ManualPositionFeed) -> None:
        self.session = session
        self.feed = feed

    def handle(self, raw: str) -> str | None:
        parts = raw.split()
        if not parts:
            return None
        command = parts[0].lower()
        if command in DIRECTION_COMMANDS and len(parts) == 1:
            return self._format(self.session.move(DIRECTION_COMMANDS[command]))
        if command in {"collect", "deposit"} and len(parts) == 3:
            cell = _parse_cell(parts[1], parts[2])
            if cell is None:
                return "cell must be two integers"
            intent = self.session.collect if command == "collect" else self.session.deposit
            return self._format(intent(cell))
        if command == "sensor" and len(parts) == 1:
            return self._format(self.session.toggle_sensor())
        if command == "gps" and len(parts) == 3:
            try:
                point = LatLng(float(parts[1]), float(parts[2]))
            except ValueError:
                return "gps needs numeric lat and lng"
            if not (math.isfinite(point.lat) and math.isfinite(point.lng)):
                return "gps needs numeric lat and lng"
            if self.session.sensor.state is not SensorState.TRACKING:
                return "sensor is off; run 'sensor' first"
            self.feed.push(point)
            return f"fix delivered ({point.lat},{point.lng})"
        if command == "reset" and len(parts) == 1:
            return self._format(self.session.reset())
        return "unknown command"

    @staticmethod
    def _format(report: StatusReport) -> str:
        count = f" pit={report.cache_count}" if report.cache_count is not None else ""
        return f"[{report.outcome}] {report.message}{count} | {report.wallet_summary}"


def _parse_cell(raw_i: str, raw_j: str) -> Cell | None:
    try:
        return Cell(int(raw_i), int(raw_j))
    except ValueError:
        return None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m geocoin.cli.viewer", description="Terminal geocoin viewer.")
    parser.add_argument("--save-path", help="JSON key/value file used for persistence; in-memory when omitted.")
    parser.add_argument("--config", help="Optional game config JSON path.")
    return parser


def build_session(save_path: str | None, config_path: str | None, feed: ManualPositionFeed) -> Session:
    config = load_game_config_json(config_path) if config_path else GameConfig()
    storage: KeyValueStorage = JsonFileStorage(save_path) if save_path else MemoryStorage()
    return Session(storage=storage, config=config, position_source=feed)


def run_demo(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    feed = ManualPositionFeed()
    session = build_session(args.save_path, args.config, feed)
    for warning in session.load_warnings:
        print(f"[geocoin.viewer] warning: {warning}")

    view = AsciiViewer()
    controller = SessionController(session, feed)

    print(f"Geocoin demo. {HELP_TEXT}")
    print(view.render(session))

    while True:
        try:
            raw = input("> ").strip()
        except EOFError:
            break
        if raw in {"quit", "exit"}:
            break
        if raw == "show":
            print(view.render(session))
            continue
        response = controller.handle(raw)
        if response is not None:
            print(response)
    session.stop_sensor()


if __name__ == "__main__":
    run_demo()
