"""One-off script for debugging a real morph request end to end."""

from __future__ import annotations

import argparse
from pathlib import Path

from config.settings import load_config
from modules.services.gemini_service import GeminiMorphService
from modules.services.history_service import MorphHistory
from modules.session import state
from modules.ui.callbacks import build_callbacks
from modules.utils.image_utils import data_uri_to_image
from modules.utils.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send one face morph request to Gemini.")
    parser.add_argument("image", type=Path, help="Portrait to morph")
    parser.add_argument("--prompt", default="turn into a vampire")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=Path, default=Path("debug_morph_output.png"))
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.image.exists():
        raise FileNotFoundError(f"Missing input image: {args.image}")

    # 1. Real configuration and service
    config = load_config()
    setup_logging(config)
    callbacks = build_callbacks(config, morph_service=GeminiMorphService(config))

    # 2. Same transitions the UI runs
    session = state.new_session(prompt=args.prompt, seed=args.seed)
    view = callbacks["on_upload"](session, MorphHistory(limit=config.history_limit), str(args.image))
    for view in callbacks["on_submit"](view.session, view.history, args.prompt, args.seed):
        print("Status:", view.status)

    image = data_uri_to_image(view.morphed_image)
    if image is None:
        print("No image generated, check logs/application.log.")
        return
    image.save(args.output)
    print("Image saved:", args.output.resolve())


if __name__ == "__main__":
    main()
