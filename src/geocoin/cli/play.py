from __future__ import annotations

import argparse
from typing import Sequence

from geocoin.cli.pygame_viewer import DEFAULT_SAVE_PATH, run_pygame_viewer
from geocoin.content.io import clear_session
from geocoin.content.storage import JsonFileStorage


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m geocoin.cli.play", description="Canonical geocoin launcher.")
    parser.add_argument("--save-path", default=DEFAULT_SAVE_PATH, help="Session key/value JSON file to load and update.")
    parser.add_argument("--config", help="Optional game config JSON path.")
    parser.add_argument("--reset", action="store_true", help="Clear the saved session before starting.")
    parser.add_argument("--headless", action="store_true", help="Run startup path in headless mode.")
    return parser


def _reset_save(save_path: str) -> None:
    storage = JsonFileStorage(save_path)
    for warning in storage.warnings:
        print(f"[geocoin.play] warning: {warning}")
    clear_session(storage)
    if storage.warnings:
        storage.flush()
    print(f"[geocoin.play] cleared session keys path={save_path}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.reset:
        _reset_save(args.save_path)
    return run_pygame_viewer(
        save_path=args.save_path,
        config_path=args.config,
        headless=args.headless,
    )


if __name__ == "__main__":
    raise SystemExit(main())
