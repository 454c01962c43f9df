from __future__ import annotations

import argparse
import importlib.metadata
import os
import platform
import sys
from dataclasses import dataclass
from typing import Any

from geocoin.content.config import GameConfig, load_game_config_json
from geocoin.content.storage import JsonFileStorage
from geocoin.sim.core import Session, StatusReport
from geocoin.sim.grid import Cell, origin_of
from geocoin.sim.hash import session_hash
from geocoin.sim.position import Direction, ManualPositionFeed, SensorState

TILE_PIXELS = 40
WINDOW_SIZE = (1280, 820)
PANEL_WIDTH = 380
VIEWPORT_MARGIN = 12
PANEL_MARGIN = 12
DEFAULT_SAVE_PATH = "saves/geocoin_session.json"
STATUS_HISTORY_LIMIT = 12

BACKGROUND_COLOR = (17, 18, 25)
GRID_COLOR = (44, 47, 58)
PIT_COLOR = (210, 160, 70)
EMPTY_PIT_COLOR = (120, 100, 70)
SELECTED_COLOR = (80, 160, 255)
PLAYER_COLOR = (255, 243, 130)
TEXT_COLOR = (240, 240, 240)

pygame: Any | None = None

KEY_DIRECTIONS: dict[str, Direction] = {
    "K_UP": Direction.NORTH,
    "K_w": Direction.NORTH,
    "K_DOWN": Direction.SOUTH,
    "K_s": Direction.SOUTH,
    "K_RIGHT": Direction.EAST,
    "K_d": Direction.EAST,
    "K_LEFT": Direction.WEST,
    "K_a": Direction.WEST,
}


@dataclass
class SessionController:
    """Viewer intent adapter; the session remains the source of truth."""

    session: Session
    feed: ManualPositionFeed
    selected_cell: Cell | None = None

    def move(self, direction: Direction) -> StatusReport:
        return self.session.move(direction)

    def select(self, cell: Cell) -> None:
        self.selected_cell = cell

    def click_cell(self, cell: Cell) -> None:
        """Select a pit, or deliver a simulated fix at the cell while tracking."""
        if self.session.sensor.state is SensorState.TRACKING:
            self.feed.push(origin_of(cell, self.session.config.tile_width))
            return
        self.select(cell)

    def collect_selected(self) -> StatusReport | None:
        if self.selected_cell is None:
            return None
        return self.session.collect(self.selected_cell)

    def deposit_selected(self) -> StatusReport | None:
        if self.selected_cell is None:
            return None
        return self.session.deposit(self.selected_cell)

    def toggle_sensor(self) -> StatusReport:
        return self.session.toggle_sensor()

    def reset(self) -> StatusReport:
        self.selected_cell = None
        return self.session.reset()


def _viewport_rect() -> pygame.Rect:
    panel_x = WINDOW_SIZE[0] - PANEL_WIDTH - PANEL_MARGIN
    width = panel_x - (VIEWPORT_MARGIN * 2)
    return pygame.Rect(VIEWPORT_MARGIN, VIEWPORT_MARGIN, width, WINDOW_SIZE[1] - (VIEWPORT_MARGIN * 2))


def _panel_rect() -> pygame.Rect:
    panel_x = WINDOW_SIZE[0] - PANEL_WIDTH - PANEL_MARGIN
    return pygame.Rect(panel_x, PANEL_MARGIN, PANEL_WIDTH, WINDOW_SIZE[1] - (PANEL_MARGIN * 2))


def cell_to_pixel(cell: Cell, view_cell: Cell, center: tuple[float, float]) -> tuple[float, float]:
    """Pixel center of ``cell`` with ``view_cell`` drawn at ``center``; north is up."""
    return (
        center[0] + (cell.j - view_cell.j) * TILE_PIXELS,
        center[1] - (cell.i - view_cell.i) * TILE_PIXELS,
    )


def pixel_to_cell(pixel_x: float, pixel_y: float, view_cell: Cell, center: tuple[float, float]) -> Cell:
    dj = round((pixel_x - center[0]) / TILE_PIXELS)
    di = round((center[1] - pixel_y) / TILE_PIXELS)
    return Cell(view_cell.i + di, view_cell.j + dj)


def _tile_rect(cell: Cell, view_cell: Cell, center: tuple[float, float]) -> pygame.Rect:
    x, y = cell_to_pixel(cell, view_cell, center)
    half = TILE_PIXELS / 2
    return pygame.Rect(int(x - half), int(y - half), TILE_PIXELS, TILE_PIXELS)


def _draw_world(
    screen: pygame.Surface,
    controller: SessionController,
    center: tuple[float, float],
    font: pygame.font.Font,
    *,
    clip_rect: pygame.Rect,
) -> None:
    session = controller.session
    view_cell = session.tracker.cell
    old_clip = screen.get_clip()
    screen.set_clip(clip_rect)
    for cell in sorted(session.visible_cells()):
        pygame.draw.rect(screen, GRID_COLOR, _tile_rect(cell, view_cell, center), 1)
    for cell, cache in session.visible_caches():
        rect = _tile_rect(cell, view_cell, center).inflate(-6, -6)
        color = PIT_COLOR if cache.coin_count else EMPTY_PIT_COLOR
        pygame.draw.rect(screen, color, rect)
        label = font.render(str(cache.coin_count), True, BACKGROUND_COLOR)
        screen.blit(label, label.get_rect(center=rect.center))
    if controller.selected_cell is not None:
        pygame.draw.rect(screen, SELECTED_COLOR, _tile_rect(controller.selected_cell, view_cell, center), 3)
    player_x, player_y = cell_to_pixel(view_cell, view_cell, center)
    pygame.draw.circle(screen, PLAYER_COLOR, (int(player_x), int(player_y)), 8)
    pygame.draw.circle(screen, (15, 15, 15), (int(player_x), int(player_y)), 8, 1)
    screen.set_clip(old_clip)


def _panel_lines(controller: SessionController, status_lines: list[str]) -> list[str]:
    session = controller.session
    lines = [
        f"cell={session.tracker.cell.key()}",
        f"pos=({session.position.lat},{session.position.lng})",
        f"history={len(session.tracker.history)} sensor={session.sensor.state.value}",
        f"wallet: {session.wallet.summary()}",
    ]
    if controller.selected_cell is not None:
        cache = session.cache_at(controller.selected_cell)
        if cache is None:
            lines.append(f"selected {controller.selected_cell.key()}: no pit")
        else:
            lines.append(cache.describe())
    lines.append("")
    lines.append("WASD/arrows move | LMB select | C collect")
    lines.append("E deposit | G sensor | R reset | ESC quit")
    lines.append("")
    lines.extend(status_lines[-STATUS_HISTORY_LIMIT:])
    return lines


def _draw_panel(screen: pygame.Surface, font: pygame.font.Font, lines: list[str]) -> None:
    rect = _panel_rect()
    pygame.draw.rect(screen, (28, 30, 40), rect)
    pygame.draw.rect(screen, (64, 68, 84), rect, 1)
    y = rect.y + 10
    for line in lines:
        surface = font.render(line, True, TEXT_COLOR)
        screen.blit(surface, (rect.x + 10, y))
        y += 20


def _format_report(report: StatusReport) -> str:
    count = f" ({report.cache_count} left)" if report.cache_count is not None else ""
    return f"{report.outcome}: {report.message}{count}"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m geocoin.cli.pygame_viewer",
        description="Run the geocoin pygame viewer.",
    )
    parser.add_argument(
        "--save-path",
        default=DEFAULT_SAVE_PATH,
        help="JSON key/value file holding curPos, knownCells, wallet and travelHist.",
    )
    parser.add_argument("--config", help="Optional game config JSON path.")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[geocoin.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[geocoin.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _build_viewer_session(save_path: str, config_path: str | None, feed: ManualPositionFeed) -> Session:
    config = load_game_config_json(config_path) if config_path else GameConfig()
    session = Session(storage=JsonFileStorage(save_path), config=config, position_source=feed)
    for warning in session.load_warnings:
        print(f"[geocoin.viewer] warning: {warning}")
    print(
        "[geocoin.viewer] loaded "
        f"path={save_path} cell={session.tracker.cell.key()} "
        f"known_cells={len(session.store.known_cells)} "
        f"wallet={session.wallet.coin_count} "
        f"session_hash={session_hash(session)}"
    )
    return session


def run_pygame_viewer(
    *,
    save_path: str = DEFAULT_SAVE_PATH,
    config_path: str | None = None,
    headless: bool = False,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[geocoin.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[geocoin.viewer] failed during pygame.init(): "
            f"{exc}. Hint: verify a working SDL video driver (set SDL_VIDEODRIVER=dummy for headless mode).",
            file=sys.stderr,
        )
        return 1

    feed = ManualPositionFeed()
    try:
        session = _build_viewer_session(save_path, config_path, feed)
    except Exception as exc:
        print(f"[geocoin.viewer] failed to initialize session: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    controller = SessionController(session=session, feed=feed)
    status_lines: list[str] = [f"wallet: {session.wallet.summary()}"]
    session.add_listener(lambda report: status_lines.append(_format_report(report)))

    try:
        pygame_module.display.set_caption("Geocoin")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[geocoin.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: GUI sessions require a valid display; use --headless or GEOCOIN_HEADLESS=1.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    driver_name = pygame_module.display.get_driver()
    print(f"[geocoin.viewer] display initialized: {driver_name}, window size={WINDOW_SIZE}")

    if headless:
        print(f"[geocoin.viewer] visible pits={len(session.visible_caches())}")
        session.stop_sensor()
        pygame_module.quit()
        return 0

    key_directions = {getattr(pygame_module, name): direction for name, direction in KEY_DIRECTIONS.items()}
    clock = pygame_module.time.Clock()
    font = pygame_module.font.SysFont("consolas", 18)
    tile_font = pygame_module.font.SysFont("consolas", 14)
    viewport_rect = _viewport_rect()
    world_center = (float(viewport_rect.centerx), float(viewport_rect.centery))

    running = True
    while running:
        clock.tick(30)
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN:
                if event.key == pygame_module.K_ESCAPE:
                    running = False
                elif event.key in key_directions:
                    controller.move(key_directions[event.key])
                elif event.key == pygame_module.K_c:
                    controller.collect_selected()
                elif event.key == pygame_module.K_e:
                    controller.deposit_selected()
                elif event.key == pygame_module.K_g:
                    controller.toggle_sensor()
                elif event.key == pygame_module.K_r:
                    controller.reset()
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 1 and viewport_rect.collidepoint(event.pos):
                cell = pixel_to_cell(event.pos[0], event.pos[1], session.tracker.cell, world_center)
                controller.click_cell(cell)

        screen.fill(BACKGROUND_COLOR)
        _draw_world(screen, controller, world_center, tile_font, clip_rect=viewport_rect)
        pygame.draw.rect(screen, (64, 68, 84), viewport_rect, 1)
        _draw_panel(screen, font, _panel_lines(controller, status_lines))
        pygame_module.display.flip()

    session.stop_sensor()
    print(f"[geocoin.viewer] exit session_hash={session_hash(session)}")
    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    headless = args.headless or _env_flag_enabled("GEOCOIN_HEADLESS")
    raise SystemExit(run_pygame_viewer(save_path=args.save_path, config_path=args.config, headless=headless))


if __name__ == "__main__":
    main()
