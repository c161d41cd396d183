"""Command line entry point: run the analysis server or analyze photos against it."""
import argparse
import json
import sys
from typing import Optional, Sequence

from .client import RoomPhotoClient
from .config import load_config
from .errors import CleaningCardsError
from .image_io import load_photo
from .json_recovery import normalize_cards


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cleaning-cards",
        description="Turn room photos into short cleanup instruction cards.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the analysis HTTP server.")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0).")
    serve.add_argument("--port", type=int, help="Override PORT from .env (default 8787).")
    serve.add_argument("--debug", action="store_true", help="Run Flask in debug mode.")

    analyze = sub.add_parser("analyze", help="Prepare a photo and request cleaning cards.")
    analyze.add_argument("image", help="Path to the room photo (JPEG, PNG, HEIC...).")
    analyze.add_argument("--locale", default="ja-JP", help="Locale tag sent to the server.")
    analyze.add_argument("--base-url", dest="base_url", help="Override API_BASE_URL from .env.")

    followup = sub.add_parser("followup", help="Compare a before/after pair against earlier cards.")
    followup.add_argument("before", help="Path to the photo the cards were generated from.")
    followup.add_argument("after", help="Path to the photo taken after cleaning.")
    followup.add_argument(
        "--cards",
        required=True,
        help='Previous cards as JSON, e.g. \'[{"instruction": "..."}]\', or @path to a JSON file.',
    )
    followup.add_argument("--locale", default="ja-JP", help="Locale tag sent to the server.")
    followup.add_argument("--base-url", dest="base_url", help="Override API_BASE_URL from .env.")
    return parser.parse_args(argv)


def _read_cards(value: str):
    if value.startswith("@"):
        with open(value[1:], "r", encoding="utf-8") as f:
            value = f.read()
    data = json.loads(value)
    if isinstance(data, dict):
        data = data.get("cards", [])
    return normalize_cards(data)


def _print_json(obj: dict) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    cfg = load_config()

    if args.command == "serve":
        from .server import create_app

        app = create_app(cfg)
        app.run(host=args.host, port=args.port or cfg.port, debug=args.debug)
        return 0

    client = RoomPhotoClient(args.base_url or cfg.api_base_url, quiet=not cfg.debug)
    photo_opts = {"max_size": cfg.image_max_size, "quality": cfg.image_quality, "heic_quality": cfg.heic_quality}
    try:
        if args.command == "analyze":
            photo = load_photo(args.image, locale=args.locale, **photo_opts)
            result = client.analyze(photo, locale=args.locale)
            _print_json(result.to_dict())
        else:
            before = load_photo(args.before, **photo_opts)
            after = load_photo(args.after, **photo_opts)
            cards = _read_cards(args.cards)
            result = client.analyze_followup(after, before, cards, locale=args.locale)
            _print_json(result.to_dict())
    except (CleaningCardsError, OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
