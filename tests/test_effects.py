"""Tests for Particle and EffectsManager."""

import pygame

from villagequest.effects import EffectsManager, Particle


class TestParticle:
    def test_moves_by_velocity(self):
        p = Particle(100, 100, (0, 0, 0), vx=10, vy=-20, life=1.0)
        p.update(0.5)
        assert (p.x, p.y) == (105, 90)

    def test_gravity(self):
        p = Particle(0, 0, (0, 0, 0), gravity=10, life=1.0)
        p.update(0.5)
        assert p.vy == 5

    def test_alive_then_dead(self):
        p = Particle(0, 0, (0, 0, 0), life=0.3)
        assert p.update(0.1) is True
        assert p.update(0.3) is False

    def test_draw(self):
        surf = pygame.Surface((20, 20))
        Particle(10, 10, (255, 0, 0), life=1.0, size=3).draw(surf)
        assert tuple(surf.get_at((10, 10)))[:3] == (255, 0, 0)


class TestEffectsManager:
    def test_starts_empty(self):
        em = EffectsManager()
        assert em.particles == []
        assert em.rings == []

    def test_click_marker_expires(self):
        em = EffectsManager()
        em.click_marker(50, 50)
        em.update(0.2)
        assert len(em.rings) == 1
        em.update(0.3)
        assert em.rings == []

    def test_item_gained_burst(self):
        em = EffectsManager()
        em.item_gained(10, 10)
        assert len(em.particles) == 18

    def test_blocked_burst_fades(self):
        em = EffectsManager()
        em.blocked(10, 10)
        assert len(em.particles) == 10
        em.update(1.0)
        assert em.particles == []

    def test_draw_does_not_raise(self):
        em = EffectsManager()
        em.click_marker(20, 20)
        em.item_gained(20, 20)
        em.update(0.1)
        em.draw(pygame.Surface((40, 40)))
