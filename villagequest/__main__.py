"""Command-line entry point: python -m villagequest [--content PATH|URL] [--scene ID] [--state TAG] [--debug]"""

import logging
import sys

from villagequest.config import Config, Settings


def _arg(name: str, default=None):
    if name in sys.argv:
        try:
            return sys.argv[sys.argv.index(name) + 1]
        except IndexError:
            raise SystemExit(f"Missing value for {name}.")
    return default


def main():
    settings = Settings()
    config = settings.apply(Config())
    config.CONTENT_ROOT = _arg("--content", config.CONTENT_ROOT)
    config.DEFAULT_SCENE = _arg("--scene", config.DEFAULT_SCENE)
    config.DEFAULT_STATE_TAG = _arg("--state", config.DEFAULT_STATE_TAG)

    level = "DEBUG" if "--debug" in sys.argv else settings.log_level.upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # pygame is imported after logging is configured.
    from villagequest.engine import SceneEngine

    print(f"Village Quest: content={config.CONTENT_ROOT} scene={config.DEFAULT_SCENE}")
    print("Click to walk, click objects to interact, drag items onto objects, M for the map, ESC to quit.")
    engine = SceneEngine(config)
    engine.run()


if __name__ == "__main__":
    main()
