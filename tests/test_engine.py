"""Headless tests for SceneEngine wiring: input, frame order, dialogs, travel."""

import pygame

from villagequest.sequencer import RESOLVING


def _run_frames(engine, n, dt=0.05):
    for _ in range(n):
        engine.update(dt)


class TestEngineInit:
    def test_loads_start_scene(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert engine.scene_id == "village"
        assert engine.load_error is None
        assert engine.motion.position == (30.0, 100.0)
        assert engine.store.current_scene_id == "village"

    def test_visible_interactions(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert [it.id for it in engine.registry.visible] == ["statue", "gate", "well"]
        assert engine.registry.background.image == "assets/village.png"

    def test_grid_from_mask(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert engine.grid.cols == 20
        assert engine.grid.is_walkable_px(50, 50)
        assert not engine.grid.is_walkable_px(100, 10)

    def test_player_starts_idle(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert engine.player_anim.animation.name == "system_idle"

    def test_catalog_loaded(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert engine.catalog.get(3).name == "Coin"

    def test_missing_scene(self, make_engine, content_dir):
        engine = make_engine(content_dir, scene="cave")
        assert engine.scene is None
        assert "cave" in engine.load_error
        assert engine.registry.visible == []
        assert engine.grid.walkable_count() == 0
        engine.draw()


class TestGroundClick:
    def test_walks_to_click(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((30, 150))
        assert len(engine.effects.rings) == 1
        _run_frames(engine, 100)
        assert engine.motion.position == (30.0, 150.0)

    def test_walk_animation_and_telemetry(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((60, 100))
        engine.update(0.02)
        assert engine.store.player_moving is True
        assert engine.store.player_direction == "walk_e"
        assert engine.player_anim.animation.name == "walk_e"
        _run_frames(engine, 60)
        assert engine.store.player_moving is False
        assert engine.player_anim.animation.name == "system_idle"


class TestDialog:
    def test_click_statue_opens_dialog(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((50, 30))
        assert engine.dialog.dialog == "An old statue. It wobbles."
        assert engine.sequencer.state == RESOLVING
        assert engine.store.state_tag == "village_start"

    def test_acknowledge_applies_mutation(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((50, 30))
        engine.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
        assert engine.dialog is None
        assert engine.store.state_tag == "after_statue"
        assert engine.store.has_item(3)

        engine.update(0.01)
        assert engine.registry.is_visible("hole")
        assert not engine.registry.is_visible("statue")
        assert engine.registry.background.image == "assets/village_after.png"
        assert len(engine.effects.particles) > 0

    def test_clicks_ignored_while_dialog_open(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((50, 30))
        engine.on_click((30, 150))
        assert not engine.motion.has_path
        assert engine.dialog is not None

    def test_dialog_button(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((50, 30))
        engine.on_click(engine._dialog_button_rect().center)
        assert engine.dialog is None
        assert engine.store.state_tag == "after_statue"

    def test_draw_with_dialog(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((50, 30))
        engine.draw()


class TestItems:
    def test_apply_held_item(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.store.add_item(3)
        assert engine.apply_item("well", 3)
        assert engine.dialog.dialog == "You drop the coin in."
        engine.acknowledge_dialog()
        assert not engine.store.has_item(3)
        assert engine.store.has_item(4)

    def test_item_not_held(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        assert engine.apply_item("well", 4) is False
        assert engine.dialog is None

    def test_drag_item_onto_interaction(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.store.add_item(3)
        engine.update(0)
        (item, rect), = engine._inventory_slots()
        engine.on_click(rect.center)
        assert engine.tray.dragging == 3
        engine.on_release((65, 190))
        assert engine.tray.dragging is None
        assert engine.dialog.dialog == "You drop the coin in."

    def test_lost_item_deselected(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.store.add_item(3)
        engine.tray.toggle(3)
        engine.store.remove_item(3)
        engine.update(0)
        assert engine.tray.selected is None

    def test_draw_inventory(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.store.add_item(3)
        engine.store.add_item(4)
        engine.update(0)
        engine.draw()


class TestWorldMap:
    def test_toggle(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_m))
        assert engine.store.map_visible is True
        assert engine.world_map.marker == (50, 50)
        engine.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
        assert engine.store.map_visible is False
        assert engine.running is True

    def test_travel_loads_scene(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.toggle_map()
        assert engine.world_map.click("forest")
        engine.draw()
        _run_frames(engine, 40, dt=0.1)
        assert engine.world_map is None
        assert engine.store.map_visible is False
        assert engine.scene_id == "forest"
        assert engine.store.current_scene_id == "forest"

    def test_motion_frozen_while_map_open(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.on_click((30, 150))
        engine.toggle_map()
        _run_frames(engine, 5)
        assert engine.motion.position == (30.0, 100.0)


class TestQuit:
    def test_quit_event(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.handle_event(pygame.event.Event(pygame.QUIT))
        assert engine.running is False


class TestBrokenContent:
    def test_malformed_object_sidecar_skips_animation(self, make_engine, content_dir, village_scene_dict):
        import json
        from PIL import Image

        assets = content_dir / "scenes" / "village" / "assets"
        Image.new("RGBA", (20, 20), (0, 0, 0, 255)).save(str(assets / "statue.png"))
        (assets / "statue.json").write_text(json.dumps({"frames": {"a": {"frame": {"x": "oops"}}}}))
        village_scene_dict["interactions"][0]["idle_animation"] = {"spritesheet": "assets/statue.png", "name": "idle"}
        (content_dir / "scenes" / "village" / "scene.json").write_text(json.dumps(village_scene_dict))

        engine = make_engine(content_dir)
        assert engine.registry.is_visible("statue")
        assert engine.object_anims["statue"].playing is False
        engine.draw()


class TestMapMarkerAnimation:
    def test_idle_while_waiting(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.toggle_map()
        engine.update(0.05)
        assert engine.marker_anim.animation.name == "system_idle"

    def test_walk_animation_advances_while_moving(self, make_engine, content_dir):
        engine = make_engine(content_dir)
        engine.toggle_map()
        engine.world_map.click("forest")
        engine.update(0.05)
        assert engine.marker_anim.animation.name == "walk_e"
        assert engine.marker_anim.frame_index == 0
        _run_frames(engine, 2)
        assert engine.world_map.moving
        assert engine.marker_anim.frame_index == 1
        engine.draw()
