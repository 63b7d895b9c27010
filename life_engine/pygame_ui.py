# Interactive viewer for a Grid. Requires the `ui` extra (pygame).
#
# Keys: space start/stop, n single step, r reset (walls kept),
# shift+r reset including walls, o origin of life, p population plot, esc quit.
# Mouse: left click places a basic organism, right click paints a wall.
import io

import pygame
from matplotlib.figure import Figure

from .cells import CellState, unpack_rgb
from .world import Grid

# --- UI Constants ---
GRID_SIZE = 100
CELL_SIZE = 6
SIDE_PANEL_WIDTH = 260
PLOT_HEIGHT = 200
FPS = 30

# Colors
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
GRAY = (200, 200, 200)


class ModelUI:
    def __init__(self, grid=None):
        self.grid = grid if grid is not None else Grid(GRID_SIZE, GRID_SIZE)
        self.history = []
        self.running = False

    def reset(self, clear_walls=False):
        self.grid.reset(clear_walls)
        self.grid.origin_of_life()
        self.history = []
        self.running = False

    def step(self):
        stats = self.grid.step()
        self.history.append(stats["population"])


def window_size(grid):
    """(board width, board height, window width, window height) in pixels."""
    board_w = grid.width * CELL_SIZE
    board_h = grid.height * CELL_SIZE
    return board_w, board_h, board_w + SIDE_PANEL_WIDTH, board_h + PLOT_HEIGHT


def draw_grid(screen, grid):
    for y in range(grid.height):
        for x in range(grid.width):
            color = unpack_rgb(grid.get_pixel(x, y))
            pygame.draw.rect(screen, color, (x*CELL_SIZE, y*CELL_SIZE, CELL_SIZE, CELL_SIZE))


def draw_text(screen, text, pos, font, color=BLACK):
    surf = font.render(text, True, color)
    screen.blit(surf, pos)


def plot_history(history, size):
    """Render the population curve to a pygame surface of at most `size`."""
    fig = Figure(figsize=(6, 2))
    ax = fig.subplots()
    ax.plot(history, label='organisms', color='tab:green')
    ax.set_xlabel('tick')
    ax.set_ylabel('count')
    ax.set_title('Population')
    ax.legend(loc='upper right')
    fig.tight_layout()
    buf = io.BytesIO()
    fig.savefig(buf, format='png')
    buf.seek(0)
    img = pygame.image.load(buf, 'population.png')
    if img.get_width() > size[0] or img.get_height() > size[1]:
        img = pygame.transform.smoothscale(img, size)
    return img


def tile_under(pos):
    return pos[0] // CELL_SIZE, pos[1] // CELL_SIZE


def main(grid=None):
    pygame.init()
    model_ui = ModelUI(grid)
    board_w, board_h, window_w, window_h = window_size(model_ui.grid)
    screen = pygame.display.set_mode((window_w, window_h))
    pygame.display.set_caption('Life Engine (Pygame)')
    clock = pygame.time.Clock()
    font = pygame.font.SysFont(None, 24)
    model_ui.reset()

    plot_visible = False
    plot_img = None
    plotted_len = 0

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    model_ui.running = not model_ui.running
                elif event.key == pygame.K_n and not model_ui.running:
                    model_ui.step()
                elif event.key == pygame.K_r:
                    model_ui.reset(clear_walls=bool(event.mod & pygame.KMOD_SHIFT))
                elif event.key == pygame.K_o:
                    model_ui.grid.origin_of_life()
                elif event.key == pygame.K_p:
                    plot_visible = not plot_visible
            elif event.type == pygame.MOUSEBUTTONDOWN and event.pos[0] < board_w and event.pos[1] < board_h:
                x, y = tile_under(event.pos)
                if event.button == 1:
                    model_ui.grid.create_basic_organism(x, y)
                elif event.button == 3 and model_ui.grid.is_position_clear(x, y):
                    model_ui.grid.set_cell(x, y, CellState.WALL)

        if model_ui.running:
            model_ui.step()

        screen.fill(WHITE)
        draw_grid(screen, model_ui.grid)
        pygame.draw.line(screen, GRAY, (board_w, 0), (board_w, board_h), 2)
        draw_text(screen, 'Running' if model_ui.running else 'Paused', (board_w+10, 10), font)
        draw_text(screen, f'Ticks: {model_ui.grid.ticks}', (board_w+10, 40), font)
        draw_text(screen, f'Organisms: {model_ui.grid.organism_count}', (board_w+10, 70), font)
        counts = model_ui.grid.counts()
        draw_text(screen, f'Food: {counts["food"]}', (board_w+10, 100), font)
        draw_text(screen, f'Walls: {counts["wall"]}', (board_w+10, 130), font)
        draw_text(screen, 'p: toggle plot', (board_w+10, 170), font, GRAY)
        if plot_visible:
            # Replot on new history, at most every 10 ticks while running.
            stale = plotted_len != len(model_ui.history)
            if plot_img is None or (stale and (not model_ui.running or model_ui.grid.ticks % 10 == 0)):
                plot_img = plot_history(model_ui.history, (window_w, PLOT_HEIGHT))
                plotted_len = len(model_ui.history)
            screen.blit(plot_img, (0, board_h))
        else:
            plot_img = None
        pygame.display.flip()
        clock.tick(FPS)
    pygame.quit()


if __name__ == '__main__':
    main()
