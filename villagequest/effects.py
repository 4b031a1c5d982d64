from __future__ import annotations

import math
import random

import pygame


# ============================================================
# PARTICLE FEEDBACK
# ============================================================

class Particle:
    def __init__(self, x, y, color, vx=0.0, vy=0.0, life=0.5, size=4, gravity=0.0):
        self.x, self.y = x, y
        self.color = color
        self.vx, self.vy = vx, vy
        self.life = life
        self.max_life = life
        self.size = size
        self.gravity = gravity

    def update(self, dt):
        self.x += self.vx * dt
        self.y += self.vy * dt
        self.vy += self.gravity * dt
        self.life -= dt
        return self.life > 0

    def draw(self, screen):
        size = max(1, int(self.size * (self.life / self.max_life)))
        pygame.draw.circle(screen, self.color, (int(self.x), int(self.y)), size)


class EffectsManager:
    def __init__(self):
        self.particles = []
        self.rings = []  # [x, y, age, duration]

    def update(self, dt):
        self.particles = [p for p in self.particles if p.update(dt)]
        for ring in self.rings:
            ring[2] += dt
        self.rings = [r for r in self.rings if r[2] < r[3]]

    def draw(self, screen):
        for x, y, age, duration in self.rings:
            t = age / duration
            radius = int(4 + 14 * t)
            pygame.draw.ellipse(screen, (255, 255, 255), (x - radius, y - radius // 2, radius * 2, radius), 2)
        for p in self.particles:
            p.draw(screen)

    def _burst(self, x, y, colors, count, speed, life, size, gravity=0.0):
        for _ in range(count):
            angle = random.uniform(0, 2 * math.pi)
            v = random.uniform(*speed)
            self.particles.append(Particle(
                x, y, random.choice(colors),
                math.cos(angle) * v, math.sin(angle) * v,
                random.uniform(*life), random.randint(*size), gravity,
            ))

    def click_marker(self, x, y):
        """Expanding ring where the player clicked the ground."""
        self.rings.append([x, y, 0.0, 0.4])

    def item_gained(self, x, y):
        colors = [(255, 240, 120), (255, 255, 255), (255, 200, 80)]
        self._burst(x, y, colors, 18, (40, 140), (0.4, 0.8), (3, 5), gravity=-60)

    def blocked(self, x, y):
        self._burst(x, y, [(170, 160, 150), (120, 115, 110)], 10, (15, 50), (0.3, 0.6), (3, 6))
