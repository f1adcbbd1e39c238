#!/usr/bin/env python3
"""
simulator.py — Document activity simulator for InsightMint testing.

Creates document files with supported extensions in a directory and
rewrites them a few times, the way an editor saving a document would.
Run it against a directory the engine watches to drive the
directory-watch strategy end to end:

    # Terminal 1
    python -m insightmint.insightmint_main watch --watch-dirs /tmp/im_sim

    # Terminal 2
    python -m insightmint.simulator --target-dir /tmp/im_sim --count 5

The directory watch only confirms a change when a reader window title
contains the file name, so open one of the generated files in a reader
while the simulator is rewriting it.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import tempfile
import time

from insightmint.extractors import DEFAULT_EXTENSIONS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("insightmint.simulator")


def simulate_document_activity(
    target_dir: str,
    count: int = 5,
    rewrites: int = 3,
    interval: float = 1.0,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
) -> list[str]:
    """Create *count* documents in *target_dir* and rewrite each *rewrites* times.

    Extensions cycle through *extensions*.  Returns the created paths.

    Args:
        target_dir: Directory to write into (created if missing).
        count:      Number of documents.
        rewrites:   Extra writes per document after creation.
        interval:   Seconds between successive writes.
    """
    os.makedirs(target_dir, exist_ok=True)
    logger.info("Starting document activity in: %s", target_dir)

    paths: list[str] = []
    for i in range(count):
        ext = extensions[i % len(extensions)]
        path = os.path.join(target_dir, f"report_{i:03d}{ext}")
        with open(path, "w") as f:
            f.write(f"Simulated document #{i}.\n")
        paths.append(path)
    logger.info("Created %d documents.", len(paths))

    for round_no in range(rewrites):
        time.sleep(interval)
        for path in paths:
            try:
                with open(path, "a") as f:
                    f.write(f"Revision {round_no + 1}.\n")
            except OSError as exc:
                logger.warning("Rewrite failed for %s: %s", path, exc)
        logger.info("Rewrite %d/%d done.", round_no + 1, rewrites)

    return paths


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(
        prog="insightmint-simulator",
        description="Create and rewrite documents to exercise the directory watch.",
    )
    parser.add_argument(
        "--target-dir",
        default=None,
        help="Directory to operate in (default: auto-created temp dir).",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=5,
        help="Number of documents to create (default: 5).",
    )
    parser.add_argument(
        "--rewrites",
        type=int,
        default=3,
        help="Rewrites per document (default: 3).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between rewrites (default: 1).",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove the target directory afterwards.",
    )

    args = parser.parse_args()

    target = args.target_dir or tempfile.mkdtemp(prefix="insightmint_sim_")

    try:
        simulate_document_activity(target, args.count, args.rewrites, args.interval)
    finally:
        if args.cleanup and os.path.isdir(target):
            shutil.rmtree(target, ignore_errors=True)
            logger.info("Cleaned up: %s", target)
        else:
            logger.info("Files remain in: %s", target)


if __name__ == "__main__":
    main()
