"""
Interactive Pygame Viewer for Density Fields

Paint density with the mouse and watch it drawn through the grayscale
density pass.

Controls:
  Mouse L     Paint density
  G           Toggle linear / gamma display (rebuilds the pass)
  C           Clear the canvas
  H           Toggle HUD overlay
  S           Save screenshot
  Q / ESC     Quit
"""

import os
import time
import numpy as np
import pygame

from .brush import DensityCanvas, window_to_normalized
from .colorize import DisplayMode
from .config import DisplayConfig
from .pipeline import DensityPipeline, TargetFormat
from .timer import Timer, FpsCounter


MAX_DT = 0.1  # cap dt so a stalled frame doesn't dump a blob of density


class Viewer:

    def __init__(self, config=None):
        if config is None:
            config = DisplayConfig()
        # pygame surfaces want 8-bit pixels
        self.config = config.model_copy(update={"target_format": TargetFormat.rgba8unorm})

        self.canvas = DensityCanvas(self.config.resolution)
        self.pipeline = DensityPipeline(self.config)
        self.timer = Timer()
        self.fps_counter = FpsCounter()

        self.running = True
        self.show_hud = True
        self.button_pressed = False
        self.cursor = np.zeros(2, dtype=np.float32)
        self.hud_font = None

    @property
    def window_size(self):
        return self.config.window_width, self.config.window_height

    def _toggle_mode(self):
        mode = self.pipeline.display_mode
        new_mode = DisplayMode.gamma if mode is DisplayMode.linear else DisplayMode.linear
        self.pipeline.set_display_mode(new_mode)
        print(f"[DV] Display mode: {new_mode.value}")

    def _render_frame(self):
        """Upload the canvas, run the pass, wrap the target in a surface."""
        self.pipeline.update(self.canvas.field)
        target = self.pipeline.pass_.draw()
        rgb = target[..., :3]
        return pygame.surfarray.make_surface(rgb.swapaxes(0, 1).copy())

    def _draw_hud(self, screen, fps):
        if not self.show_hud:
            return

        stats = self.canvas.stats
        line = (f"{self.pipeline.display_mode.value}  |  "
                f"Mass: {stats['mass']:.1f}  |  Max: {stats['max']:.2f}  |  "
                f"{self.config.resolution}x{self.config.resolution}  |  FPS: {fps}")

        bg_surface = pygame.Surface((self.config.window_width, 24), pygame.SRCALPHA)
        bg_surface.fill((0, 0, 0, 140))
        screen.blit(bg_surface, (0, 0))

        text_surface = self.hud_font.render(line, True, (210, 215, 225))
        screen.blit(text_surface, (10, 6))

    def _handle_mouse(self, dt):
        if not self.button_pressed:
            return
        self.canvas.paint(self.cursor, dt,
                          radius=self.config.brush_radius,
                          density=self.config.brush_density)

    def _save_screenshot(self, surface):
        screenshots_dir = os.path.join(os.getcwd(), "screenshots")
        os.makedirs(screenshots_dir, exist_ok=True)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        mode = self.pipeline.display_mode.value
        path = os.path.join(screenshots_dir, f"density_{mode}_{timestamp}.png")
        pygame.image.save(surface, path)
        print(f"[DV] Screenshot saved: {path}")

    def _handle_keydown(self, event, frame):
        key = event.key

        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False

        elif key == pygame.K_g:
            self._toggle_mode()

        elif key == pygame.K_c:
            self.canvas.clear()

        elif key == pygame.K_h:
            self.show_hud = not self.show_hud

        elif key == pygame.K_s and frame is not None:
            self._save_screenshot(frame)

    def run(self):
        """Main viewer loop."""
        pygame.init()

        screen = pygame.display.set_mode(self.window_size)
        pygame.display.set_caption("Density Field")
        clock = pygame.time.Clock()
        self.hud_font = pygame.font.SysFont("menlo", 13)

        frame = None
        while self.running:
            dt = min(self.timer.delta(), MAX_DT)
            self.timer.tick()

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.KEYDOWN:
                    self._handle_keydown(event, frame)
                elif event.type == pygame.MOUSEMOTION:
                    self.cursor = window_to_normalized(*event.pos, self.window_size)
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    self.button_pressed = True
                elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                    self.button_pressed = False

            self._handle_mouse(dt)

            try:
                frame = self._render_frame()
            except (ValueError, RuntimeError) as e:
                print(f"[DV] Render error: {e}")
            else:
                screen.blit(frame, (0, 0))

            self.fps_counter.add_frame()
            self._draw_hud(screen, self.fps_counter.fps())

            pygame.display.flip()
            clock.tick(60)

        pygame.quit()
