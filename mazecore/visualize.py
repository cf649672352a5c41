"""Replay multiple autopilot runs in a grid window."""
from __future__ import annotations

import math
import pygame

from .maze import WALL

FONT_SIZE = 16
# Text rows inside a panel, as offsets from its top edge
LABEL_Y = 5
TIME_LABEL_Y = 22
OVERLAY_Y = 36


def visualize_results_grid(
    results,
    window_size=(1200, 800),
    fps=60,
):
    """Visualize multiple simulation results in a single Pygame window."""

    sims = sorted(results.items(), key=lambda kv: kv[0])
    n_sims = len(sims)
    if n_sims == 0:
        print("No simulations to visualize.")
        return

    pygame.init()
    W, H = window_size
    screen = pygame.display.set_mode((W, H))
    pygame.display.set_caption("Tilt Maze - Autopilot Replay")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont(None, FONT_SIZE)

    # Pick a near-square grid to pack all panels
    cols = math.ceil(math.sqrt(n_sims))
    rows = math.ceil(n_sims / cols)

    cell_w = W / cols
    cell_h = (H - 30) / rows
    margin = 18

    log_lists = [data["log"] for _, data in sims]
    max_len = max(len(log) for log in log_lists)

    def panel_geometry(ix, maze):
        # Top-left corner and tile size of the ix-th panel's board
        col = ix % cols
        row = ix // cols
        tile = max(1, int(min((cell_w - 2 * margin) / maze.width, (cell_h - 2 * margin - OVERLAY_Y) / maze.height)))
        left = int(col * cell_w + margin)
        top = int(row * cell_h + margin + OVERLAY_Y)
        return left, top, tile

    def world_to_panel(ix, maze, x, z):
        left, top, tile = panel_geometry(ix, maze)
        sx = left + (x + maze.half_width) * tile + tile / 2
        sy = top + (z + maze.half_height) * tile + tile / 2
        return int(sx), int(sy)

    frame = 0
    playing = True
    running = True

    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    # Toggle playback pause
                    playing = not playing
                elif event.key == pygame.K_r:
                    # Restart replay from frame zero
                    frame = 0
                    playing = True

        if playing:
            frame += 1
            if frame >= max_len:
                frame = max_len - 1
                playing = False

        frame = max(0, min(frame, max_len - 1))

        screen.fill((10, 10, 10))

        for idx, (seed, data) in enumerate(sims):
            log = data["log"]
            maze = data["maze"]
            won = data["won"]

            col = idx % cols
            row = idx // cols
            cell_rect = pygame.Rect(int(col * cell_w), int(row * cell_h), int(cell_w), int(cell_h))

            # Panel background and border
            pygame.draw.rect(screen, (20, 20, 20), cell_rect, 0)
            pygame.draw.rect(screen, (60, 60, 60), cell_rect, 1)

            # Maze walls inside this panel
            left, top, tile = panel_geometry(idx, maze)
            for y in range(maze.height):
                for x in range(maze.width):
                    if maze.cells[y, x] == WALL:
                        pygame.draw.rect(screen, (120, 90, 60), pygame.Rect(left + x * tile, top + y * tile, tile, tile))
            hole = world_to_panel(idx, maze, 0.0, 0.0)
            pygame.draw.circle(screen, (200, 200, 200), hole, max(2, tile // 3), 1)

            if len(log) > 0:
                local_idx = min(frame, len(log) - 1)
                state = log[local_idx]
                sx, sy = world_to_panel(idx, maze, state["x"], state["z"])
                # Marble marker: green while rolling, gold once it dropped in
                color = (0, 200, 0) if not state["falling"] else (255, 200, 0)
                pygame.draw.circle(screen, color, (sx, sy), max(2, tile // 3))

                overlay = f"t={state['t']:.2f}s  v={state['speed']:.3f}  wp={state['path_index']}"
                text = font.render(overlay, True, (220, 220, 220))
                screen.blit(text, (cell_rect.right - 5 - text.get_width(), cell_rect.y + OVERLAY_Y))

            label1 = f"seed={seed}  path={data['path_length']}  bounces={data['bounces']}"
            if won:
                label2_color = (255, 255, 0)
                time_label = f"won  t={data['time']:.2f}s"
            else:
                label2_color = (255, 80, 80)
                time_label = f"unfinished after {data['steps']} ticks"

            text1 = font.render(label1, True, (255, 255, 255))
            text2 = font.render(time_label, True, label2_color)
            screen.blit(text1, (cell_rect.x + 5, cell_rect.y + LABEL_Y))
            screen.blit(text2, (cell_rect.x + 5, cell_rect.y + TIME_LABEL_Y))

        # Global UI hint across all panels
        hint = "SPACE: pause/resume   R: replay   ESC: quit"
        hint_text = font.render(hint, True, (200, 200, 200))
        screen.blit(hint_text, (10, H - 25))

        pygame.display.flip()
        clock.tick(fps)

    pygame.quit()
