"""
CLI to run one image through the pipeline -> JSON.
"""
from __future__ import annotations
import argparse, json, logging
import cv2
from core.config import Settings
from core.live import build_coordinator
from core.extract import frame_from_bgr

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--image", required=True, help="Path to input image")
    p.add_argument("--server", default=None, help="Emotion server URL (overrides EMOTION_SERVER_URL)")
    p.add_argument("--out", default=None, help="Optional path to output JSON")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    img = cv2.imread(args.image)
    if img is None:
        raise SystemExit(f"Could not read image: {args.image}")

    overrides = {"EMOTION_INTERVAL": 0.0}
    if args.server:
        overrides["EMOTION_SERVER_URL"] = args.server
    settings = Settings(**overrides)

    coord = build_coordinator(settings)
    try:
        state = coord.process_frame(frame_from_bgr(img))
    finally:
        coord.close()
    result = state.model_dump() if state is not None else {}
    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"Result written to {args.out}")

if __name__ == "__main__":
    main()
