"""pygame front end: loads a scene, routes input, runs the frame loop, draws."""

from __future__ import annotations

from io import BytesIO
import logging

import pygame
from PIL import Image
import requests

from villagequest.animations import AnimationPlayer, Spritesheet, load_spritesheet
from villagequest.config import Config
from villagequest.content import AnimationRef, ContentLoader, Interaction, SceneDocument
from villagequest.effects import EffectsManager
from villagequest.interactions import InteractionRegistry
from villagequest.inventory import InventoryCatalog, InventoryTray
from villagequest.motion import BLOCKED, AgentMotionController
from villagequest.navgrid import WalkabilityGrid, build_walkability_grid
from villagequest.sequencer import InteractionSequencer, Resolution
from villagequest.state import GameStateStore, MutationEvent
from villagequest.worldmap import WorldMap


logger = logging.getLogger(__name__)

DEFAULT_OBJECT_SIZE = (48, 48)
MARKER_SCALE = 1 / 3


def pil_to_surface(img: Image.Image) -> pygame.Surface:
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    surface = pygame.image.frombytes(img.tobytes(), img.size, "RGBA")
    return surface.convert_alpha() if pygame.display.get_surface() else surface


class SceneEngine:
    def __init__(self, config: Config, store: GameStateStore | None = None, loader: ContentLoader | None = None):
        self.config = config
        self.running = True

        pygame.init()
        self.screen = pygame.display.set_mode((config.GAME_WIDTH, config.GAME_HEIGHT))
        pygame.display.set_caption("Village Quest")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, 24)
        self.font_large = pygame.font.Font(None, 32)

        try:
            pygame.mixer.init()
            self.audio = True
        except pygame.error as e:
            logger.warning("Audio disabled: %s", e)
            self.audio = False
        self.soundtrack_channel = None

        self.loader = loader or ContentLoader(config.CONTENT_ROOT, timeout=config.HTTP_TIMEOUT)
        self.store = store or GameStateStore(
            state_tag=config.DEFAULT_STATE_TAG,
            inventory=[False] * config.INVENTORY_SIZE,
            current_scene_id=config.DEFAULT_SCENE,
        )
        self.store.subscribe(self._on_store_changed)
        self._state_dirty = False
        self._last_inventory = list(self.store.inventory)

        self.game_config = self.loader.load_config()
        if self.game_config is None:
            logger.warning("No usable config.json; the player is drawn as a placeholder")
        self.catalog = InventoryCatalog(self.loader.load_inventory())
        self.map_doc = self.loader.load_map()
        self.world_map: WorldMap | None = None

        self.surfaces: dict[str, pygame.Surface | None] = {}
        self.sheets: dict[str, Spritesheet | None] = {}
        self.frame_cache: dict[tuple, pygame.Surface] = {}
        self.sounds: dict[str, pygame.mixer.Sound | None] = {}

        self.effects = EffectsManager()
        self.tray = InventoryTray()
        self.registry = InteractionRegistry(resolver=self._resolve_assets)
        self.player_anim = AnimationPlayer()
        self._player_sheet: Spritesheet | None = None
        self._player_sheet_location = ""
        self.object_anims: dict[str, AnimationPlayer] = {}
        self.object_sheets: dict[str, tuple[str, Spritesheet]] = {}
        self.marker_anim = AnimationPlayer()
        self._marker_anim_type: str | None = None
        self._marker_sheet: tuple[str, Spritesheet] | None = None
        self.hovered: str | None = None
        self.dialog: Resolution | None = None

        self.load_scene(self.store.current_scene_id)

    # ------------------------------------------------------------
    # Scene lifecycle
    # ------------------------------------------------------------

    def load_scene(self, scene_id: str):
        self._stop_soundtrack()
        self.scene: SceneDocument | None = self.loader.load_scene(scene_id)
        self.scene_id = scene_id
        self.dialog = None
        self.hovered = None
        self.object_anims = {}
        self.object_sheets = {}
        self.load_error = None

        grid = None
        start = (self.config.GAME_WIDTH / 2, self.config.GAME_HEIGHT / 2)
        if self.scene is None:
            self.load_error = f"Failed to load scene {scene_id}"
            logger.error(self.load_error)
        else:
            start = self.scene.player_position.as_tuple()
            mask = self.loader.load_image(self.loader.scene_asset(scene_id, self.scene.walkable_mask))
            if mask is not None:
                grid = build_walkability_grid(mask, self.config.CELL_SIZE, self.config.WALKABLE_MAJORITY)
            else:
                logger.warning("Scene %s has no usable walkability mask; the player cannot move", scene_id)
        if grid is None:
            grid = WalkabilityGrid.empty(self.config.GAME_WIDTH, self.config.GAME_HEIGHT, self.config.CELL_SIZE)
        self.grid = grid

        speed = self.config.PLAYER_SPEED
        if self.game_config and self.game_config.player.speed:
            speed = self.game_config.player.speed
        self.motion = AgentMotionController(
            grid, start, speed=speed, snap_threshold=self.config.SNAP_THRESHOLD,
            on_moving_changed=self._on_moving_changed,
            on_direction_changed=self._on_direction_changed,
        )
        self.registry.load(self.scene)
        self.sequencer = InteractionSequencer(
            self.registry, self.motion,
            on_mutation=self.apply_mutation,
            on_sound=self.play_sound,
            on_animation=self._set_object_animation,
            on_dialog=self._show_dialog,
        )
        self._sync_player_animation()
        self.registry.refresh(self.store.snapshot())
        self.store.set_current_scene(scene_id)
        if self.scene and self.scene.soundtrack:
            self._start_soundtrack(self.loader.scene_asset(scene_id, self.scene.soundtrack))

    def _asset(self, rel_path: str) -> str:
        return self.loader.scene_asset(self.scene_id, rel_path)

    def _resolve_assets(self, visible: list[Interaction], background, on_ready):
        if background is not None:
            self._surface(self._asset(background.image))
        for it in visible:
            if it.sprite:
                self._surface(self._asset(it.sprite))
            if it.id not in self.object_anims:
                self.object_anims[it.id] = AnimationPlayer()
                self._set_object_animation(it.id, it.idle_animation)
        on_ready()

    def _on_store_changed(self, store: GameStateStore):
        self._state_dirty = True

    def apply_mutation(self, event: MutationEvent):
        """Hand an outcome's mutation to the store that owns the game state."""
        self.store.apply(event)

    # ------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------

    def _surface(self, location: str) -> pygame.Surface | None:
        if location not in self.surfaces:
            img = self.loader.load_image(location)
            self.surfaces[location] = pil_to_surface(img) if img is not None else None
        return self.surfaces[location]

    def _sheet(self, location: str) -> Spritesheet | None:
        if location not in self.sheets:
            self.sheets[location] = load_spritesheet(self.loader, location)
        return self.sheets[location]

    def _frame_surface(self, sheet_location: str, sheet: Spritesheet, frame, scale: float = 1.0) -> pygame.Surface:
        key = (sheet_location, frame.box, scale)
        surf = self.frame_cache.get(key)
        if surf is None:
            surf = pil_to_surface(sheet.frame_image(frame))
            if scale != 1.0:
                w = max(1, int(frame.w * scale))
                h = max(1, int(frame.h * scale))
                surf = pygame.transform.smoothscale(surf, (w, h))
            self.frame_cache[key] = surf
        return surf

    def _sound(self, location: str):
        if not self.audio:
            return None
        if location not in self.sounds:
            try:
                self.sounds[location] = pygame.mixer.Sound(file=BytesIO(self.loader.read_bytes(location)))
            except (OSError, pygame.error, requests.RequestException) as e:
                logger.warning("Skipping sound %s: %s", location, e)
                self.sounds[location] = None
        return self.sounds[location]

    def play_sound(self, key: str):
        sound = self._sound(self._asset(key))
        if sound is not None:
            sound.play()

    def _start_soundtrack(self, location: str):
        sound = self._sound(location)
        if sound is not None:
            self.soundtrack_channel = sound.play(loops=-1)

    def _stop_soundtrack(self):
        if self.soundtrack_channel is not None:
            self.soundtrack_channel.stop()
            self.soundtrack_channel = None

    # ------------------------------------------------------------
    # Animation wiring
    # ------------------------------------------------------------

    def _on_moving_changed(self, moving: bool):
        self.store.set_player_moving(moving)
        self._sync_player_animation()

    def _on_direction_changed(self, direction: str):
        self.store.set_player_direction(direction)
        self._sync_player_animation()

    def _sync_player_animation(self):
        anim_type = self.motion.animation_type
        desc = self.game_config.animation_for(anim_type) if self.game_config else None
        if desc is None:
            self.player_anim.stop()
            return
        sheet = self._sheet(self.loader.resolve(desc.spritesheet))
        self._player_sheet = sheet
        self._player_sheet_location = self.loader.resolve(desc.spritesheet)
        self.player_anim.play(sheet.get(desc.animation) if sheet else None)

    def _sync_marker_animation(self):
        """Play the player animation matching the map marker's motion."""
        anim_type = self.world_map.animation_type
        if anim_type == self._marker_anim_type:
            return
        self._marker_anim_type = anim_type
        desc = self.game_config.animation_for(anim_type) if self.game_config else None
        if desc is None:
            self.marker_anim.stop()
            return
        location = self.loader.resolve(desc.spritesheet)
        sheet = self._sheet(location)
        anim = sheet.get(desc.animation) if sheet else None
        if anim is None:
            self.marker_anim.stop()
            return
        self._marker_sheet = (location, sheet)
        self.marker_anim.play(anim)

    def _set_object_animation(self, interaction_id: str, ref: AnimationRef | None):
        player = self.object_anims.setdefault(interaction_id, AnimationPlayer())
        if ref is None:
            player.stop()
            return
        location = self._asset(ref.spritesheet)
        sheet = self._sheet(location)
        anim = sheet.get(ref.name) if sheet else None
        if anim is None:
            logger.debug("Animation %s missing for %s; holding frame", ref.name, interaction_id)
            player.stop()
            return
        self.object_sheets[interaction_id] = (location, sheet)
        player.play(anim, restart=True)

    def _set_hovered(self, interaction_id: str | None):
        if interaction_id == self.hovered:
            return
        previous, self.hovered = self.hovered, interaction_id
        if previous and self.registry.is_clickable(previous):
            it = self.registry.get(previous)
            if it is not None and it.hover_animation:
                self._set_object_animation(previous, it.idle_animation)
        if interaction_id:
            it = self.registry.get(interaction_id)
            if it is not None and it.hover_animation:
                self._set_object_animation(interaction_id, it.hover_animation)

    def _show_dialog(self, resolution: Resolution):
        self.dialog = resolution

    # ------------------------------------------------------------
    # Input
    # ------------------------------------------------------------

    def object_bounds(self, it: Interaction) -> tuple[float, float, float, float]:
        surf = self._object_surface(it)
        w, h = surf.get_size() if surf else DEFAULT_OBJECT_SIZE
        return it.position.x, it.position.y, w, h

    def interaction_at(self, x: float, y: float) -> Interaction | None:
        return self.registry.hit_test(x, y, self.object_bounds)

    def _inventory_slots(self):
        """Screen rects of the owned items in the inventory bar."""
        owned = self.catalog.owned(self.store.snapshot())
        size = self.config.INVENTORY_ICON_SIZE
        gap = 16
        total = len(owned) * size + max(0, len(owned) - 1) * gap
        x = (self.config.GAME_WIDTH - total) // 2
        y = self.config.GAME_HEIGHT - self.config.INVENTORY_BAR_HEIGHT + 8
        slots = []
        for item in owned:
            slots.append((item, pygame.Rect(x, y, size, size)))
            x += size + gap
        return slots

    def _inventory_item_at(self, pos):
        for item, rect in self._inventory_slots():
            if rect.collidepoint(pos):
                return item
        return None

    def _dialog_rect(self) -> pygame.Rect:
        w = min(self.config.DIALOG_WIDTH, self.config.GAME_WIDTH - 40)
        h = 170
        return pygame.Rect((self.config.GAME_WIDTH - w) // 2, self.config.GAME_HEIGHT - h - 100, w, h)

    def _dialog_button_rect(self) -> pygame.Rect:
        box = self._dialog_rect()
        return pygame.Rect(box.right - 130, box.bottom - 46, 110, 32)

    def acknowledge_dialog(self):
        if self.dialog is None:
            return
        self.dialog = None
        self.sequencer.acknowledge()

    def apply_item(self, interaction_id: str, item_index: int) -> bool:
        """Drag-and-drop of an inventory item onto an interaction."""
        if not self.store.has_item(item_index):
            return False
        return self.sequencer.click(interaction_id, item_index)

    def toggle_map(self):
        if self.store.map_visible:
            self.store.set_map_visible(False)
            self.world_map = None
            return
        if not self.store.map_enabled or self.map_doc is None or self.dialog is not None:
            return
        self.world_map = WorldMap(
            self.map_doc, self.scene_id,
            speed=self.config.MARKER_SPEED, fade_ms=self.config.FADE_DURATION_MS,
            on_moving_changed=self.store.set_player_moving,
            on_direction_changed=self.store.set_player_direction,
        )
        self._marker_anim_type = None
        self._sync_marker_animation()
        self.store.set_map_visible(True)

    def handle_event(self, event):
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                if self.store.map_visible:
                    self.toggle_map()
                else:
                    self.running = False
            elif event.key == pygame.K_m:
                self.toggle_map()
            elif event.key in (pygame.K_SPACE, pygame.K_RETURN):
                self.acknowledge_dialog()
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self.on_click(event.pos)
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self.on_release(event.pos)
        elif event.type == pygame.MOUSEMOTION:
            if self.dialog is None and not self.store.map_visible:
                it = self.interaction_at(*event.pos)
                self._set_hovered(it.id if it else None)

    def on_click(self, pos):
        if self.dialog is not None:
            if self._dialog_button_rect().collidepoint(pos):
                self.acknowledge_dialog()
            return
        if self.store.map_visible:
            self._click_map(pos)
            return
        item = self._inventory_item_at(pos)
        if item is not None:
            self.tray.toggle(item.index)
            self.tray.start_drag(item.index)
            return
        it = self.interaction_at(*pos)
        if it is not None:
            selected = self.tray.selected
            if selected is not None:
                self.tray.selected = None
                self.apply_item(it.id, selected)
            else:
                self.sequencer.click(it.id)
            return
        if self.sequencer.walk_to(pos):
            self.effects.click_marker(*pos)

    def on_release(self, pos):
        index = self.tray.end_drag()
        if index is None or self._inventory_item_at(pos) is not None:
            return
        it = self.interaction_at(*pos)
        if it is not None:
            self.tray.selected = None
            self.apply_item(it.id, index)

    def _click_map(self, pos):
        if self.world_map is None:
            return
        ox, oy, scale = self._map_transform()
        loc = self.world_map.location_at((pos[0] - ox) / scale, (pos[1] - oy) / scale)
        if loc is not None:
            self.world_map.click(loc.id)

    # ------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------

    def update(self, dt: float):
        # Fixed order: state check, motion, sequencer.
        if self._state_dirty:
            self._state_dirty = False
            snapshot = self.store.snapshot()
            self.registry.refresh(snapshot)
            self.tray.prune(snapshot)
            self._celebrate_new_items()

        if self.world_map is not None:
            travel = self.world_map.tick(dt)
            if travel is not None:
                self.store.set_map_visible(False)
                self.world_map = None
                self.load_scene(travel)
                return
            self._sync_marker_animation()
            self.marker_anim.update(dt * 1000.0)
            return

        result = self.motion.tick(dt)
        if result == BLOCKED:
            self.effects.blocked(*self.motion.position)
        self.sequencer.update(result)

        ms = dt * 1000.0
        self.player_anim.update(ms)
        for player in self.object_anims.values():
            player.update(ms)
        self.effects.update(dt)

    def _celebrate_new_items(self):
        current = list(self.store.inventory)
        for idx, (before, now) in enumerate(zip(self._last_inventory, current)):
            if now and not before and self.catalog.get(idx) is not None:
                self.effects.item_gained(*self.motion.position)
        self._last_inventory = current

    def run(self):
        while self.running:
            dt = self.clock.tick(self.config.FPS) / 1000.0
            for event in pygame.event.get():
                self.handle_event(event)
            self.update(dt)
            self.draw()
        self._stop_soundtrack()
        pygame.quit()

    # ------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------

    def _object_surface(self, it: Interaction) -> pygame.Surface | None:
        player = self.object_anims.get(it.id)
        current = self.object_sheets.get(it.id)
        if player is not None and current is not None and player.frame is not None:
            location, sheet = current
            return self._frame_surface(location, sheet, player.frame)
        if it.sprite:
            return self._surface(self._asset(it.sprite))
        return None

    def _wrap_text_px(self, text: str, max_width_px: int):
        """Word-wrap using pixel width (prevents clipping)."""
        words = text.split()
        if not words:
            return [""]
        lines = []
        cur = words[0]
        for w in words[1:]:
            candidate = f"{cur} {w}"
            if self.font.size(candidate)[0] <= max_width_px:
                cur = candidate
            else:
                lines.append(cur)
                cur = w
        lines.append(cur)
        return lines

    def draw(self):
        self.screen.fill((34, 34, 34))

        background = self.registry.background
        if background is not None:
            surf = self._surface(self._asset(background.image))
            if surf:
                self.screen.blit(surf, (0, 0))

        for it in self.registry.visible:
            surf = self._object_surface(it)
            if surf:
                self.screen.blit(surf, (int(it.position.x), int(it.position.y)))

        self._draw_player()
        self.effects.draw(self.screen)

        if self.load_error:
            self.screen.blit(self.font.render(self.load_error, True, (255, 255, 255)), (10, 10))

        self.draw_inventory_bar()
        if self.dialog is not None:
            self.draw_dialog()
        if self.world_map is not None:
            self.draw_map()
        pygame.display.flip()

    def _draw_player(self):
        x, y = self.motion.position
        frame = self.player_anim.frame
        if self._player_sheet is not None and frame is not None:
            surf = self._frame_surface(self._player_sheet_location, self._player_sheet, frame)
            # Feet at the agent position.
            self.screen.blit(surf, (int(x - surf.get_width() / 2), int(y - surf.get_height())))
        else:
            pygame.draw.circle(self.screen, (240, 170, 190), (int(x), int(y) - 12), 12)

    def draw_inventory_bar(self):
        slots = self._inventory_slots()
        if not slots:
            return
        bar_h = self.config.INVENTORY_BAR_HEIGHT
        panel = pygame.Surface((self.config.GAME_WIDTH, bar_h), pygame.SRCALPHA)
        panel.fill((0, 0, 0, 180))
        self.screen.blit(panel, (0, self.config.GAME_HEIGHT - bar_h))
        for item, rect in slots:
            icon = self._surface(self.loader.resolve(item.icon))
            if icon:
                self.screen.blit(pygame.transform.smoothscale(icon, rect.size), rect.topleft)
            if self.tray.selected == item.index:
                pygame.draw.rect(self.screen, (250, 204, 21), rect.inflate(4, 4), 2, border_radius=4)
            label = self.font.render(item.name, True, (255, 255, 255))
            self.screen.blit(label, (rect.centerx - label.get_width() // 2, rect.bottom + 2))
        hovered = self._inventory_item_at(pygame.mouse.get_pos())
        if hovered is not None and hovered.tooltip and self.tray.dragging is None:
            tip = self.font.render(hovered.tooltip, True, (255, 255, 255))
            x = max(4, min(self.config.GAME_WIDTH - tip.get_width() - 4, pygame.mouse.get_pos()[0] - tip.get_width() // 2))
            y = self.config.GAME_HEIGHT - bar_h - tip.get_height() - 6
            pygame.draw.rect(self.screen, (20, 20, 20), (x - 4, y - 2, tip.get_width() + 8, tip.get_height() + 4))
            self.screen.blit(tip, (x, y))
        if self.tray.dragging is not None:
            item = self.catalog.get(self.tray.dragging)
            icon = self._surface(self.loader.resolve(item.icon)) if item else None
            if icon:
                mx, my = pygame.mouse.get_pos()
                size = self.config.INVENTORY_ICON_SIZE
                self.screen.blit(pygame.transform.smoothscale(icon, (size, size)), (mx - size // 2, my - size // 2))

    def draw_dialog(self):
        box = self._dialog_rect()
        panel = pygame.Surface(box.size, pygame.SRCALPHA)
        panel.fill((15, 15, 25, 225))
        self.screen.blit(panel, box.topleft)
        pygame.draw.rect(self.screen, (90, 90, 120), box, 2, border_radius=4)

        ty = box.y + 16
        for line in self._wrap_text_px(self.dialog.dialog, box.width - 32)[:5]:
            self.screen.blit(self.font.render(line, True, (230, 230, 230)), (box.x + 16, ty))
            ty += 22

        button = self._dialog_button_rect()
        pygame.draw.rect(self.screen, (60, 60, 100), button, border_radius=4)
        label = self.font.render(self.dialog.button, True, (255, 255, 255))
        self.screen.blit(label, label.get_rect(center=button.center))

    def _map_transform(self) -> tuple[float, float, float]:
        doc = self.map_doc
        scale = min(self.config.GAME_WIDTH / doc.width, self.config.GAME_HEIGHT / doc.height, 1)
        ox = (self.config.GAME_WIDTH - doc.width * scale) / 2
        oy = (self.config.GAME_HEIGHT - doc.height * scale) / 2
        return ox, oy, scale

    def draw_map(self):
        wm = self.world_map
        doc = self.map_doc
        shade = pygame.Surface(self.screen.get_size(), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 230))
        self.screen.blit(shade, (0, 0))

        ox, oy, scale = self._map_transform()
        bg = self._surface(self.loader.resolve(doc.background))
        if bg:
            size = (int(doc.width * scale), int(doc.height * scale))
            self.screen.blit(pygame.transform.smoothscale(bg, size), (int(ox), int(oy)))

        for loc in doc.interactions:
            icon = self._surface(self.loader.resolve(loc.sprite))
            if icon:
                size = max(1, int(48 * scale))
                icon = pygame.transform.smoothscale(icon, (size, size))
                if wm.interaction_disabled:
                    icon.set_alpha(150)
                self.screen.blit(icon, (int(ox + loc.position.x * scale), int(oy + loc.position.y * scale)))

        if wm.marker is not None:
            mx = ox + wm.marker[0] * scale
            my = oy + wm.marker[1] * scale
            frame = self.marker_anim.frame
            if self._marker_sheet is not None and frame is not None:
                location, sheet = self._marker_sheet
                surf = self._frame_surface(location, sheet, frame, MARKER_SCALE * scale)
                self.screen.blit(surf, (int(mx + 8), int(my - surf.get_height() * 0.8)))
            else:
                pygame.draw.circle(self.screen, (240, 170, 190), (int(mx), int(my)), 6)

        if wm.fade > 0:
            veil = pygame.Surface(self.screen.get_size())
            veil.fill((0, 0, 0))
            veil.set_alpha(int(255 * wm.fade))
            self.screen.blit(veil, (0, 0))
